from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from .base import announce, cached_file, wait_for_access, with_paths

if TYPE_CHECKING:
    from ..context import RunContext

NAMESPACE = "fastboot"


async def wait(payload: Any, ctx: "RunContext") -> None:
    await wait_for_access(ctx, ctx.tools.fastboot, "Fastboot", "fastboot:wait")


async def flash(payload: List[Dict[str, Any]], ctx: "RunContext") -> None:
    announce(ctx, "Flashing firmware", "Flashing firmware partitions using fastboot")
    await ctx.tools.fastboot.flash(with_paths(ctx, payload or []), ctx.ui.progress_callback())
    ctx.ui.progress(0)


async def erase(payload: Dict[str, Any], ctx: "RunContext") -> None:
    partition = payload["partition"]
    announce(ctx, "Cleaning up", f"Erasing {partition} partition")
    await ctx.tools.fastboot.erase(partition)


async def format_partition(payload: Dict[str, Any], ctx: "RunContext") -> None:
    partition = payload["partition"]
    announce(ctx, "Cleaning up", f"Formatting {partition} partition")
    fs_type = payload.get("type") or payload.get("partitionType")
    await ctx.tools.fastboot.format(partition, fs_type, payload.get("size"))


async def boot(payload: Dict[str, Any], ctx: "RunContext") -> None:
    announce(ctx, "Rebooting", "Your device is being rebooted...", False)
    await ctx.tools.fastboot.boot(cached_file(ctx, payload), payload.get("partition"))


async def update(payload: Dict[str, Any], ctx: "RunContext") -> None:
    announce(ctx, "Updating system", "Applying fastboot update zip. This may take a while...")
    await ctx.tools.fastboot.update(cached_file(ctx, payload), bool(ctx.settings.get("wipe", False)))


async def reboot(payload: Any, ctx: "RunContext") -> None:
    announce(ctx, "Rebooting", "Rebooting system")
    await ctx.tools.fastboot.reboot()


async def reboot_bootloader(payload: Any, ctx: "RunContext") -> None:
    announce(ctx, "Rebooting", "Rebooting to bootloader")
    await ctx.tools.fastboot.reboot_bootloader()


async def continue_boot(payload: Any, ctx: "RunContext") -> None:
    announce(ctx, "Continuing boot", "Resuming boot")
    await ctx.tools.fastboot.continue_boot()


async def set_active(payload: Dict[str, Any], ctx: "RunContext") -> None:
    slot = payload["slot"]
    announce(ctx, "Setting up slots", f"Setting slot {slot} active")
    await ctx.tools.fastboot.set_active(slot)


async def oem_unlock(payload: Any, ctx: "RunContext") -> None:
    announce(ctx, "Unlocking", "Unlocking the bootloader")
    code = payload.get("code") if isinstance(payload, dict) else payload
    await ctx.tools.fastboot.oem_unlock(code)


ACTIONS = {
    "wait": wait,
    "flash": flash,
    "erase": erase,
    "format": format_partition,
    "boot": boot,
    "update": update,
    "reboot": reboot,
    "reboot_bootloader": reboot_bootloader,
    "continue": continue_boot,
    "set_active": set_active,
    "oem_unlock": oem_unlock,
}
