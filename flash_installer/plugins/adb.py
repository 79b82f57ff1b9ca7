from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from .base import announce, cached_file, wait_for_access

if TYPE_CHECKING:
    from ..context import RunContext

NAMESPACE = "adb"


async def wait(payload: Any, ctx: "RunContext") -> None:
    await wait_for_access(ctx, ctx.tools.adb, "Adb", "adb:wait")


async def format_partition(payload: Dict[str, Any], ctx: "RunContext") -> None:
    partition = payload["partition"]
    announce(ctx, "Preparing system for installation", f"Formatting {partition}")
    await ctx.tools.adb.format(partition)


async def sideload(payload: Dict[str, Any], ctx: "RunContext") -> None:
    announce(ctx, f"Sideloading {payload['group']}", "Your new operating system is being installed...")
    await ctx.tools.adb.sideload(cached_file(ctx, payload), ctx.ui.progress_callback())
    ctx.ui.progress(0)


async def reboot(payload: Dict[str, Any], ctx: "RunContext") -> None:
    to_state = (payload or {}).get("to_state") or "system"
    announce(ctx, "Rebooting", f"Rebooting to {to_state}", False)
    await ctx.tools.adb.reboot(to_state)


async def reconnect(payload: Any, ctx: "RunContext") -> None:
    announce(ctx, "Reconnecting", "Connection to device was lost", False)
    await ctx.tools.adb.reconnect()


ACTIONS = {
    "wait": wait,
    "format": format_partition,
    "sideload": sideload,
    "reboot": reboot,
    "reconnect": reconnect,
}
