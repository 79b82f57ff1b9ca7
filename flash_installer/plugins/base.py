from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Sequence

from ..errors import FailureKind, RunAborted, classify
from ..events import Prompt
from ..lib.collaborators import DeviceTool

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)


def announce(ctx: "RunContext", status: str, under: str, determinate: bool = True) -> None:
    ctx.ui.working("particles")
    ctx.ui.status(status, determinate)
    ctx.ui.under(under)


async def wait_for_access(ctx: "RunContext", tool: DeviceTool, label: str, action_id: str) -> None:
    """Poll the tool until the device is reachable, asking the user on each miss."""

    announce(ctx, "Waiting for device", f"{label} is scanning for devices")
    while True:
        try:
            if await tool.has_access():
                return
        except Exception as e:
            if classify(e) is FailureKind.KILLED:
                raise
            # An inconclusive check lets the run continue.
            logger.warning("%s access check failed: %s", label, e)
            return
        decision = await ctx.ui.ask(Prompt.CONNECTION_LOST, action=action_id, cause=f"{label} found no device")
        if not decision.resumes:
            raise RunAborted("connection lost")


def cached_file(ctx: "RunContext", payload: Mapping[str, Any]) -> Path:
    return ctx.cache.path(payload["group"], payload["file"])


def with_paths(ctx: "RunContext", images: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [{**image, "file": str(ctx.cache.path(image["group"], image["file"]))} for image in images]
