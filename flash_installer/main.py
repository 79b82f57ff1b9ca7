from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from typing import Any, Dict, List, Optional

import yaml

from .config_model import DirectoryCatalog, load_device_config
from .console import ConsoleShell
from .errors import RunAborted
from .installer import Installer, find_os
from .lib.assets import ArchiveUnpacker
from .lib.collaborators import Tools
from .lib.device_tools import Adb, Fastboot, Heimdall
from .lib.download import HttpDownloader
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging

logger = logging.getLogger(__name__)


def parse_options(pairs: List[str]) -> Dict[str, Any]:
    """Parse ``var=value`` pairs; values are read as YAML scalars (true, 3, ...)."""

    out: Dict[str, Any] = {}
    for pair in pairs:
        var, sep, value = pair.partition("=")
        if not sep or not var:
            raise ValueError(f"--set expects var=value, got {pair!r}")
        out[var.strip()] = yaml.safe_load(value) if value else ""
    return out


def build_tools(*, dry_run: bool = False) -> Tools:
    return Tools(
        adb=Adb(dry_run=dry_run),
        fastboot=Fastboot(dry_run=dry_run),
        heimdall=Heimdall(dry_run=dry_run),
        downloader=HttpDownloader(),
        unpacker=ArchiveUnpacker(dry_run=dry_run),
    )


async def run(
    *,
    config_path: Optional[str],
    catalog_path: str,
    device: Optional[str],
    os_choice: str,
    options: Dict[str, Any],
    cache_root: str,
    assume_yes: bool = False,
    dry_run: bool = False,
    pace_s: float = 0.25,
) -> bool:
    """Run one installation from the command line."""

    installer = Installer(
        shell=ConsoleShell(assume_yes=assume_yes),
        tools=build_tools(dry_run=dry_run),
        cache_root=cache_root,
        catalog=DirectoryCatalog(catalog_path),
        pace_s=pace_s,
    )

    if config_path:
        installer.set_config(load_device_config(config_path))
    elif device:
        if not await installer.set_device(device):
            return False
    else:
        raise ValueError("either --config or --device is required")

    try:
        names = await installer.select_os()
    except RunAborted as e:
        logger.warning("Aborted before installation: %s", e)
        return False
    logger.info("Available operating systems: %s", ", ".join(names))

    for var, value in options.items():
        installer.set_option(var, value)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, installer.cancel)
    except (NotImplementedError, RuntimeError):
        pass

    return await installer.install(find_os(installer.config, os_choice))


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="flash-installer")
    p.add_argument("--config", default=None, help="Path to a device config (json|yaml)")
    p.add_argument("--catalog", default=PATHS.catalog_default, help="Directory of device configs")
    p.add_argument("--device", default=None, help="Device codename to look up in the catalog")
    p.add_argument("--os", default="0", help="Operating system index or name")
    p.add_argument("--set", action="append", default=[], metavar="VAR=VALUE", help="Set a configuration option")
    p.add_argument("--cache", default=PATHS.cache_root, help="Download cache root")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--pace", type=float, default=0.25, help="Delay in seconds between steps")
    p.add_argument("--yes", action="store_true", help="Accept defaults and continue on every prompt")
    p.add_argument("--dry-run", action="store_true", help="Log device commands without running them")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log)

    try:
        options = parse_options(args.set)
    except ValueError as e:
        p.error(str(e))

    ok = asyncio.run(
        run(
            config_path=args.config,
            catalog_path=args.catalog,
            device=args.device,
            os_choice=args.os,
            options=options,
            cache_root=args.cache,
            assume_yes=bool(args.yes),
            dry_run=bool(args.dry_run),
            pace_s=args.pace,
        )
    )
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
