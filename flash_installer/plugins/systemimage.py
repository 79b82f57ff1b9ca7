from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..errors import InstallerError

if TYPE_CHECKING:
    from ..context import RunContext

NAMESPACE = "systemimage"


async def install(payload: Any, ctx: "RunContext") -> None:
    client = ctx.tools.system_image
    if client is None:
        raise InstallerError("no system-image client configured")

    ctx.ui.progress(0)
    ctx.ui.working("particles")
    ctx.ui.status(f"Downloading {ctx.os.name}", True)
    ctx.ui.under("Checking local files")
    await client.install(ctx.system_image_options(), ctx.ui.progress_callback())
    ctx.ui.progress(0)


ACTIONS = {
    "install": install,
}
