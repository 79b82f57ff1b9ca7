from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..errors import ChecksumMismatchError, FailureKind, InstallerError, RunAborted
from ..events import Prompt

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)

NAMESPACE = "core"

DEFAULT_SUCCESS_MESSAGE = "All done! Enjoy exploring your new OS!"

# Which protocol the device ends up speaking after a user action.
USER_ACTION_WAIT = {
    "recovery": "adb:wait",
    "system": "adb:wait",
    "bootloader": "fastboot:wait",
    "download": "heimdall:wait",
}


async def end(payload: Any, ctx: "RunContext") -> None:
    ctx.ui.done()
    ctx.ui.status(f"{ctx.os.name} successfully installed!", False)
    ctx.ui.under(ctx.os.success_message or DEFAULT_SUCCESS_MESSAGE)
    return None


async def group(payload: Any, ctx: "RunContext") -> Optional[List[Dict[str, Any]]]:
    return list(payload) if payload else None


async def user_action(payload: Dict[str, Any], ctx: "RunContext") -> Optional[List[Dict[str, Any]]]:
    name = payload.get("action")
    if name not in ctx.user_actions:
        raise InstallerError(f"Unknown user_action: {name}")

    decision = await ctx.ui.ask(Prompt.USER_ACTION, ctx.user_actions[name], action=f"{NAMESPACE}:user_action")
    if not decision.resumes:
        raise RunAborted(f"user action {name} declined")
    wait = USER_ACTION_WAIT.get(name)
    if wait is None:
        return None
    return [{"actions": [{wait: None}]}]


async def download(payload: Dict[str, Any], ctx: "RunContext") -> None:
    group_name = payload["group"]
    files = [
        {
            **f,
            "path": str(ctx.cache.path(group_name, f.get("name") or Path(f["url"]).name)),
        }
        for f in payload.get("files") or []
    ]

    def on_progress(progress: float, speed: float) -> None:
        ctx.ui.progress(progress * 100)
        ctx.ui.speed(round(speed * 100) / 100)
        ctx.ui.under("Downloading")

    def on_next(current: int, total: int) -> None:
        logger.info("Downloaded file %d of %d", current, total)
        ctx.ui.status(f"{current} of {total} files downloaded and verified", True)

    def on_activity(activity: str) -> None:
        if activity == "downloading":
            logger.info("Downloading %s files", group_name)
            ctx.ui.working("download")
        elif activity == "preparing":
            logger.info("Checking previously downloaded %s files", group_name)
            ctx.ui.working("particles")
            ctx.ui.status("Preparing download", True)
            ctx.ui.under(f"Checking {group_name} files...")

    try:
        await ctx.tools.downloader.download(files, on_progress, on_next, on_activity)
    except Exception as e:
        logger.error("Download error: %s", e)
        ctx.ui.no_network()
        raise InstallerError(f"core:download {e}", kind=FailureKind.NETWORK_UNAVAILABLE) from e

    ctx.ui.working("particles")
    ctx.ui.progress(0)
    ctx.ui.speed(0)
    return None


async def manual_download(payload: Dict[str, Any], ctx: "RunContext") -> None:
    group_name = payload["group"]
    file = payload["file"]
    target = ctx.cache.path(group_name, file["name"])
    checksum = file.get("checksum")

    ctx.ui.working("particles")
    ctx.ui.status("Manual download")
    ctx.ui.under(f"Checking {group_name} files...")

    if await ctx.tools.downloader.check_file(target, checksum):
        return None

    ctx.ui.under("Manual download required!")
    decision = await ctx.ui.ask(
        Prompt.MANUAL_DOWNLOAD,
        {"file": file, "group": group_name},
        action=f"{NAMESPACE}:manual_download",
    )
    if not decision.resumes:
        raise RunAborted(f"manual download of {file['name']} declined")
    if not decision.value:
        raise InstallerError(f"no file supplied for {file['name']}")

    target.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(shutil.copyfile, str(decision.value), str(target))
    if not await ctx.tools.downloader.check_file(target, checksum):
        raise ChecksumMismatchError()
    logger.info("Manual download of %s verified", file["name"])
    return None


async def unpack(payload: Dict[str, Any], ctx: "RunContext") -> None:
    group_name = payload["group"]
    base = ctx.cache.group_dir(group_name)

    ctx.ui.working("particles")
    ctx.ui.status(f"Unpacking {group_name}", True)
    ctx.ui.under("Unpacking...")
    try:
        for f in payload.get("files") or []:
            await ctx.tools.unpacker.unpack(base / f["archive"], base / f["dir"])
    except Exception as e:
        raise InstallerError(f"Unpack error: {e}") from e
    return None


ACTIONS = {
    "end": end,
    "group": group,
    "user_action": user_action,
    "download": download,
    "manual_download": manual_download,
    "unpack": unpack,
}
