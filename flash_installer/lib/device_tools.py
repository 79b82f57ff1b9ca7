"""Command-line device tools.

Tool output is only inspected here: failures leave this module as
InstallerError with a typed FailureKind.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from ..errors import FailureKind, InstallerError
from .collaborators import ProgressFn
from .command import CmdResult, run_cmd_async

logger = logging.getLogger(__name__)

# First match wins.
OUTPUT_KINDS: Sequence[tuple[FailureKind, tuple[str, ...]]] = (
    (FailureKind.KILLED, ("killed",)),
    (FailureKind.LOW_BATTERY, ("low battery", "low power", "battery is too low")),
    (FailureKind.UNLOCK_DISABLED, ("enable unlocking", "flashing unlock is not allowed", "oem unlock is not allowed")),
    (FailureKind.BOOTLOADER_LOCKED, ("bootloader locked", "not allowed in locked state", "device is locked")),
    (FailureKind.UNAUTHORIZED, ("unauthorized",)),
    (FailureKind.DEVICE_OFFLINE, ("device offline", "error: closed")),
    (FailureKind.NO_DEVICE, ("no devices", "no device", "device not found", "failed to detect compatible")),
)


def classify_output(text: str) -> FailureKind:
    lowered = text.lower()
    for kind, needles in OUTPUT_KINDS:
        if any(n in lowered for n in needles):
            return kind
    return FailureKind.GENERIC


class CommandLineTool:
    binary = ""

    def __init__(self, executable: Optional[str] = None, *, serial: Optional[str] = None, dry_run: bool = False):
        self.executable = executable or self.binary
        self.serial = serial
        self.dry_run = dry_run

    def _argv(self, args: Sequence[str]) -> list[str]:
        argv = [self.executable]
        if self.serial:
            argv += ["-s", self.serial]
        return argv + list(args)

    async def _exec(self, *args: str, check: bool = True) -> CmdResult:
        try:
            result = await run_cmd_async(self._argv(args), check=False, dry_run=self.dry_run)
        except RuntimeError as e:
            raise InstallerError(str(e)) from e
        if check and result.returncode != 0:
            # Negative return codes mean the tool died from a signal.
            kind = FailureKind.KILLED if result.returncode < 0 else classify_output(result.output)
            raise InstallerError(f"{self.binary} {' '.join(args)}: {result.output or result.returncode}", kind=kind)
        return result

    async def has_access(self) -> bool:
        raise NotImplementedError


class Adb(CommandLineTool):
    binary = "adb"

    async def has_access(self) -> bool:
        if self.dry_run:
            return True
        result = await self._exec("get-state", check=False)
        return result.returncode == 0 and result.stdout.strip() in {"device", "recovery", "sideload"}

    async def format(self, partition: str) -> None:
        await self._exec("shell", "twrp", "wipe", partition)

    async def sideload(self, file: Path, progress: ProgressFn) -> None:
        progress(0)
        await self._exec("sideload", str(file))
        progress(1)

    async def reboot(self, state: str) -> None:
        if state in ("", "system"):
            await self._exec("reboot")
        else:
            await self._exec("reboot", state)

    async def reconnect(self) -> None:
        await self._exec("reconnect")


class Fastboot(CommandLineTool):
    binary = "fastboot"

    async def has_access(self) -> bool:
        if self.dry_run:
            return True
        result = await self._exec("devices", check=False)
        return result.returncode == 0 and bool(result.stdout.strip())

    async def flash(self, images: Sequence[Mapping[str, Any]], progress: ProgressFn) -> None:
        total = len(images)
        for i, image in enumerate(images):
            progress(i / total)
            cmd = "flash:raw" if image.get("raw") else "flash"
            await self._exec(cmd, str(image["partition"]), str(image["file"]))
        progress(1)

    async def erase(self, partition: str) -> None:
        await self._exec("erase", partition)

    async def format(self, partition: str, fs_type: Optional[str] = None, size: Optional[str] = None) -> None:
        cmd = "format"
        if fs_type:
            cmd += f":{fs_type}"
            if size:
                cmd += f":{size}"
        await self._exec(cmd, partition)

    async def boot(self, image: Path, partition: Optional[str] = None) -> None:
        if partition:
            await self._exec("flash", partition, str(image))
            await self._exec("reboot")
        else:
            await self._exec("boot", str(image))

    async def update(self, image: Path, wipe: bool = False) -> None:
        args = ["-w"] if wipe else []
        await self._exec(*args, "update", str(image))

    async def reboot(self) -> None:
        await self._exec("reboot")

    async def reboot_bootloader(self) -> None:
        await self._exec("reboot-bootloader")

    async def continue_boot(self) -> None:
        await self._exec("continue")

    async def set_active(self, slot: str) -> None:
        await self._exec(f"--set-active={slot}")

    async def oem_unlock(self, code: Optional[str] = None) -> None:
        if code:
            await self._exec("oem", "unlock", str(code))
        else:
            await self._exec("flashing", "unlock")


class Heimdall(CommandLineTool):
    binary = "heimdall"

    def _argv(self, args: Sequence[str]) -> list[str]:
        return [self.executable] + list(args)

    async def has_access(self) -> bool:
        if self.dry_run:
            return True
        result = await self._exec("detect", check=False)
        return result.returncode == 0

    async def flash(self, images: Sequence[Mapping[str, Any]]) -> None:
        args = ["flash"]
        for image in images:
            args += [f"--{image['partition']}", str(image["file"])]
        await self._exec(*args)
