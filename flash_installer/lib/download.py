from __future__ import annotations

import asyncio
import hashlib
import logging
import time
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence

import requests

from ..errors import ChecksumMismatchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1 << 20


def verify_checksum(path: Path, checksum: Optional[Mapping[str, Any]]) -> bool:
    """True if the file exists and matches the checksum (if one is given)."""

    if not path.is_file():
        return False
    if not checksum or not checksum.get("sum"):
        return True

    h = hashlib.new(str(checksum.get("algorithm") or "sha256"))
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest().lower() == str(checksum["sum"]).lower()


class HttpDownloader:
    """Downloads file groups over HTTP(S) into the cache and verifies them."""

    def __init__(self, session: Optional[requests.Session] = None, *, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    async def check_file(self, path: Path, checksum: Optional[Mapping[str, Any]]) -> bool:
        return await asyncio.to_thread(verify_checksum, Path(path), checksum)

    async def download(
        self,
        files: Sequence[Mapping[str, Any]],
        progress: Callable[[float, float], None],
        next_file: Callable[[int, int], None],
        activity: Callable[[str], None],
    ) -> None:
        loop = asyncio.get_running_loop()

        def report(fraction: float, speed: float) -> None:
            loop.call_soon_threadsafe(progress, fraction, speed)

        activity("preparing")
        missing = [f for f in files if not await self.check_file(Path(f["path"]), f.get("checksum"))]
        if not missing:
            logger.info("All %d files already cached", len(files))
            return

        activity("downloading")
        for i, f in enumerate(missing, start=1):
            path = Path(f["path"])
            await asyncio.to_thread(self._fetch, f["url"], path, report)
            if not await self.check_file(path, f.get("checksum")):
                raise ChecksumMismatchError(f"checksum mismatch: {path.name}")
            next_file(i, len(missing))

    def _fetch(self, url: str, path: Path, report: Callable[[float, float], None]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(path.name + ".part")
        logger.info("GET %s -> %s", url, path)

        with self.session.get(url, stream=True, timeout=self.timeout) as r:
            r.raise_for_status()
            total = int(r.headers.get("content-length") or 0)
            done = 0
            started = time.monotonic()
            with partial.open("wb") as out:
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    out.write(chunk)
                    done += len(chunk)
                    elapsed = max(time.monotonic() - started, 1e-6)
                    report(done / total if total else 0.0, done / elapsed / 1_000_000)
        partial.replace(path)
