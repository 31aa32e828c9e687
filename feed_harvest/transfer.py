from __future__ import annotations

import warnings
from contextlib import closing
from pathlib import Path

import requests
from urllib3.exceptions import InsecureRequestWarning

from .config_schema import TransferConfig
from .errors import TransferError


class MediaFetcher:
    """
    Streams a remote file to disk.

    A failed transfer leaves whatever was written; callers retry from scratch.
    """

    def __init__(
        self,
        *,
        config: TransferConfig | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._cfg = config or TransferConfig()
        self._session = session or requests.Session()

    def fetch(self, url: str, destination: str | Path) -> int:
        """
        Download `url` into `destination` and return the number of bytes written.

        Raises TransferError on any stream or write error, and when the result is
        empty. An empty file is left in place for the caller to remove.
        """
        src = (url or "").strip()
        if not src:
            raise TransferError("media url must be a non-empty string")

        dest = Path(destination)
        written = 0

        try:
            with warnings.catch_warnings():
                if not self._cfg.verify_tls:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                response = self._session.get(
                    src,
                    stream=True,
                    timeout=self._cfg.timeout_seconds,
                    verify=self._cfg.verify_tls,
                )
            with closing(response):
                response.raise_for_status()
                dest.parent.mkdir(parents=True, exist_ok=True)
                with dest.open("wb") as fh:
                    for chunk in response.iter_content(chunk_size=self._cfg.chunk_size):
                        if chunk:
                            fh.write(chunk)
                            written += len(chunk)
        except requests.RequestException as e:
            raise TransferError(f"Download failed for {src}: {e}") from e
        except OSError as e:
            raise TransferError(f"Failed to write {dest}: {e}") from e

        if written == 0:
            raise TransferError(f"Downloaded file is empty: {dest.name}")

        return written
