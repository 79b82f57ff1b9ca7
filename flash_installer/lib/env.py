from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


def _user_cache() -> str:
    return str(Path.home() / ".cache" / "flash-installer")


@dataclass(frozen=True)
class Paths:
    cache_root: str = _user_cache()
    catalog_default: str = "devices"
    log_default: str = str(Path(_user_cache()) / "flash-installer.log")


PATHS = Paths()
