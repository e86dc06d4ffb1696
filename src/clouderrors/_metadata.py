from __future__ import annotations

import logging
import threading
import urllib.error
import urllib.request
from typing import Any, Callable, Optional

logger = logging.getLogger("clouderrors")

METADATA_URL = "http://metadata.google.internal/computeMetadata/v1/project/numeric-project-id"
METADATA_TIMEOUT_S = 3

# (error, project_number)
MetadataCallback = Callable[[Optional[Exception], Any], None]


class MetadataResolver:
    """Fetches the numeric project id from the GCE metadata server.

    The request runs on a daemon thread; ``callback(error, number)`` is
    invoked exactly once from that thread.
    """

    def __init__(self, url: str = METADATA_URL, timeout: float = METADATA_TIMEOUT_S) -> None:
        self._url = url
        self._timeout = timeout

    def __call__(self, callback: MetadataCallback) -> None:
        self.fetch_project_number(callback)

    def fetch_project_number(self, callback: MetadataCallback) -> None:
        thread = threading.Thread(
            target=self._run, args=(callback,), daemon=True, name="clouderrors-metadata"
        )
        thread.start()

    def _run(self, callback: MetadataCallback) -> None:
        try:
            number = self._fetch()
        except Exception as exc:
            callback(exc, None)
            return
        callback(None, number)

    def _fetch(self) -> int:
        req = urllib.request.Request(self._url, headers={"Metadata-Flavor": "Google"})
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                raw = resp.read().decode(errors="replace").strip()
        except urllib.error.HTTPError as exc:
            raise RuntimeError(f"metadata server returned HTTP {exc.code}") from exc
        except urllib.error.URLError as exc:
            raise RuntimeError(f"metadata server unreachable: {exc.reason}") from exc
        if not raw.isdigit():
            raise ValueError(f"unexpected project number from metadata server: {raw!r}")
        logger.debug("clouderrors: metadata server returned project number %s", raw)
        return int(raw)
