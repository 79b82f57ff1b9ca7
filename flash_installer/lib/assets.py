from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def unpack_archive(archive: str, dest: str, *, dry_run: bool = False) -> None:
    a = Path(archive)
    d = Path(dest)
    if not a.exists():
        raise FileNotFoundError(archive)

    if dry_run:
        logger.info("Would unpack %s -> %s", str(a), str(d))
        return

    d.mkdir(parents=True, exist_ok=True)
    logger.info("Unpacking %s -> %s", str(a), str(d))
    shutil.unpack_archive(str(a), str(d))


class ArchiveUnpacker:
    """Unpacks zip and tar archives into the cache."""

    def __init__(self, *, dry_run: bool = False):
        self.dry_run = dry_run

    async def unpack(self, archive: Path, dest: Path) -> None:
        await asyncio.to_thread(unpack_archive, str(archive), str(dest), dry_run=self.dry_run)
