from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Cache:
    """Files are kept per device codename, then per file group."""

    root: Path
    codename: str

    def group_dir(self, group: str) -> Path:
        return self.root / self.codename / group

    def path(self, group: str, name: str) -> Path:
        return self.group_dir(group) / name
