from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .config_model import DeviceConfig, Step
from .context import RunContext, Settings
from .errors import KilledError, RunAborted
from .events import Prompt, Ui, UserInterface
from .interpreter import Interpreter
from .lib.cache import Cache
from .lib.collaborators import DeviceCatalog, Tools
from .plugins import REGISTRY
from .recovery import RecoveryPolicy
from .registry import ActionRegistry

logger = logging.getLogger(__name__)

END_STEP = Step.from_raw({"actions": [{"core:end": None}]})


class Installer:
    """One installer session: device and OS selection, then a single run at a time."""

    def __init__(
        self,
        *,
        shell: UserInterface,
        tools: Tools,
        cache_root: Union[str, Path],
        catalog: Optional[DeviceCatalog] = None,
        registry: Optional[ActionRegistry] = None,
        policy: Optional[RecoveryPolicy] = None,
        pace_s: float = 0.0,
    ):
        self.ui = Ui(shell)
        self.tools = tools
        self.cache_root = Path(cache_root)
        self.catalog = catalog
        self.interpreter = Interpreter(registry or REGISTRY, policy=policy, pace_s=pace_s)
        logger.debug("Registered actions: %s", ", ".join(self.interpreter.registry.list_actions()))
        self.config: Optional[DeviceConfig] = None
        self._options: Dict[str, Any] = {}
        self._context: Optional[RunContext] = None
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    @property
    def active(self) -> bool:
        return self._context is not None

    def set_config(self, config: Union[DeviceConfig, Mapping[str, Any]]) -> DeviceConfig:
        self.config = config if isinstance(config, DeviceConfig) else DeviceConfig.from_raw(dict(config))
        return self.config

    async def set_device(self, codename: str) -> bool:
        """Fetch the device config from the catalog. False if the device is unsupported."""

        self.ui.working("particles")
        self.ui.status("Preparing installation", True)
        self.ui.under(f"Fetching {codename} config")
        if self.catalog is None:
            raise RuntimeError("no device catalog configured")
        try:
            raw = await asyncio.to_thread(self.catalog.get_device, codename)
            self.set_config(raw)
        except Exception as e:
            logger.error("Failed to load config for %s: %s", codename, e)
            self.ui.device_unsupported(codename)
            return False
        logger.info("Device selected: %s", codename)
        return True

    async def select_os(self) -> List[str]:
        """Show unlock instructions (if any) and return the OS names to choose from."""

        config = self._require_config()
        if config.unlock:
            decision = await self.ui.ask(
                Prompt.UNLOCK, {"unlock": config.unlock, "user_actions": config.user_actions}
            )
            if not decision.resumes:
                raise RunAborted("unlock instructions declined")
        return [os_config.name for os_config in config.operating_systems]

    def set_option(self, var: str, value: Any) -> None:
        if self.active:
            raise RuntimeError("cannot change options while an installation is running")
        self._options[var] = value

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            logger.warning("Cancelling installation")
            self._cancel_requested = True
            self._task.cancel()

    async def install(self, index: int) -> bool:
        """Install the selected OS. Returns True when the run reached its end."""

        if self.active:
            raise RuntimeError("an installation is already running")
        config = self._require_config()
        os_config = config.select_os(index)
        logger.info("Installing %s on your %s (%s)", os_config.name, config.name, config.codename)

        ctx = RunContext(
            device=config,
            os=os_config,
            settings=Settings(),
            ui=self.ui,
            tools=self.tools,
            cache=Cache(root=self.cache_root, codename=config.codename),
        )
        self._context = ctx
        self._task = asyncio.current_task()
        self._cancel_requested = False
        try:
            await self._prerequisites(ctx)
            await self._eula(ctx)
            await self._configure(ctx)
            return await self.interpreter.run([*os_config.steps, END_STEP], ctx)
        except (KilledError, RunAborted) as e:
            logger.warning("Installation aborted: %s", e)
            self.ui.working("particles")
            return False
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            logger.warning("Installation cancelled")
            self.ui.working("particles")
            return False
        finally:
            task = self._task
            if self._cancel_requested and task is not None and task.cancelling():
                task.uncancel()
            self._context = None
            self._task = None

    async def _prerequisites(self, ctx: RunContext) -> None:
        if not ctx.os.prerequisites:
            return
        decision = await self.ui.ask(
            Prompt.PREREQUISITES, {"prerequisites": ctx.os.prerequisites, "user_actions": ctx.user_actions}
        )
        if not decision.resumes:
            raise RunAborted("prerequisites not met")

    async def _eula(self, ctx: RunContext) -> None:
        if not ctx.os.eula:
            return
        decision = await self.ui.ask(Prompt.EULA, {"eula": ctx.os.eula})
        if not decision.resumes:
            raise RunAborted("EULA declined")

    async def _configure(self, ctx: RunContext) -> None:
        settings = ctx.settings
        settings.update(ctx.os.option_defaults())
        settings.update(self._options)
        if ctx.os.options:
            logger.info("Configuring...")
            decision = await self.ui.ask(Prompt.CONFIGURE, {"options": ctx.os.options, "values": dict(settings)})
            if not decision.resumes:
                raise RunAborted("configuration cancelled")
            settings.update(decision.value or {})
        else:
            logger.debug("Nothing to configure")
        settings.freeze()
        logger.info("Settings: %s", dict(settings))

    def _require_config(self) -> DeviceConfig:
        if self.config is None:
            raise RuntimeError("no device selected")
        return self.config


def find_os(config: DeviceConfig, name_or_index: str) -> int:
    if name_or_index.isdigit():
        return int(name_or_index)
    for i, o in enumerate(config.operating_systems):
        if o.name.lower() == name_or_index.lower():
            return i
    raise ValueError(f"{config.codename}: unknown operating system {name_or_index!r}")
