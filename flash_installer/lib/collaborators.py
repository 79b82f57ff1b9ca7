from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Sequence

ProgressFn = Callable[[float], None]


class DeviceTool(Protocol):
    """Capabilities shared by every device-tool collaborator."""

    async def has_access(self) -> bool:
        ...


class AdbTool(DeviceTool, Protocol):
    async def format(self, partition: str) -> None:
        ...

    async def sideload(self, file: Path, progress: ProgressFn) -> None:
        ...

    async def reboot(self, state: str) -> None:
        ...

    async def reconnect(self) -> None:
        ...


class FastbootTool(DeviceTool, Protocol):
    async def flash(self, images: Sequence[Mapping[str, Any]], progress: ProgressFn) -> None:
        ...

    async def erase(self, partition: str) -> None:
        ...

    async def format(self, partition: str, fs_type: Optional[str] = None, size: Optional[str] = None) -> None:
        ...

    async def boot(self, image: Path, partition: Optional[str] = None) -> None:
        ...

    async def update(self, image: Path, wipe: bool = False) -> None:
        ...

    async def reboot(self) -> None:
        ...

    async def reboot_bootloader(self) -> None:
        ...

    async def continue_boot(self) -> None:
        ...

    async def set_active(self, slot: str) -> None:
        ...

    async def oem_unlock(self, code: Optional[str] = None) -> None:
        ...


class HeimdallTool(DeviceTool, Protocol):
    async def flash(self, images: Sequence[Mapping[str, Any]]) -> None:
        ...


class SystemImageClient(Protocol):
    async def install(self, options: Mapping[str, Any], progress: ProgressFn) -> None:
        ...


class Downloader(Protocol):
    async def download(
        self,
        files: Sequence[Mapping[str, Any]],
        progress: Callable[[float, float], None],
        next_file: Callable[[int, int], None],
        activity: Callable[[str], None],
    ) -> None:
        ...

    async def check_file(self, path: Path, checksum: Optional[Mapping[str, Any]]) -> bool:
        ...


class Unpacker(Protocol):
    async def unpack(self, archive: Path, dest: Path) -> None:
        ...


class DeviceCatalog(Protocol):
    def get_device(self, codename: str) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class Tools:
    """The collaborators one run talks to."""

    adb: AdbTool
    fastboot: FastbootTool
    heimdall: HeimdallTool
    downloader: Downloader
    unpacker: Unpacker
    system_image: Optional[SystemImageClient] = None
