from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from .base import announce, wait_for_access, with_paths

if TYPE_CHECKING:
    from ..context import RunContext

NAMESPACE = "heimdall"


async def wait(payload: Any, ctx: "RunContext") -> None:
    await wait_for_access(ctx, ctx.tools.heimdall, "Heimdall", "heimdall:wait")


async def flash(payload: List[Dict[str, Any]], ctx: "RunContext") -> None:
    announce(ctx, "Flashing firmware", "Flashing firmware partitions using heimdall")
    await ctx.tools.heimdall.flash(with_paths(ctx, payload or []))


ACTIONS = {
    "wait": wait,
    "flash": flash,
}
