"""Outbound notifications and user decisions.

The graphical shell is an external collaborator. The installer only talks to
it through :class:`UserInterface`: fire-and-forget notifications, and
decisions that suspend the run until the shell resolves them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Protocol

from .errors import KilledError

logger = logging.getLogger(__name__)


class Event(str, Enum):
    WORKING = "working"
    STATUS = "status"
    UNDER = "under"
    PROGRESS = "progress"
    SPEED = "speed"
    DONE = "done"
    NO_NETWORK = "no_network"
    DEVICE_UNSUPPORTED = "device_unsupported"


class Prompt(str, Enum):
    UNLOCK = "unlock"
    EULA = "eula"
    PREREQUISITES = "prerequisites"
    CONFIGURE = "configure"
    USER_ACTION = "user_action"
    MANUAL_DOWNLOAD = "manual_download"
    CONNECTION_LOST = "connection_lost"
    OEM_LOCK = "oem_lock"
    LOW_POWER = "low_power"
    ERROR = "error"


class Choice(str, Enum):
    CONTINUE = "continue"
    RETRY = "retry"
    IGNORE = "ignore"
    ABORT = "abort"


@dataclass(frozen=True)
class PromptRequest:
    prompt: Prompt
    data: Mapping[str, Any] = field(default_factory=dict)
    action: Optional[str] = None
    step: Optional[Mapping[str, Any]] = None
    cause: Optional[str] = None


@dataclass(frozen=True)
class Decision:
    choice: Choice = Choice.CONTINUE
    value: Any = None

    @property
    def resumes(self) -> bool:
        return self.choice in (Choice.CONTINUE, Choice.RETRY)


class UserInterface(Protocol):
    def notify(self, event: Event, *args: Any) -> None:
        ...

    async def decide(self, request: PromptRequest) -> Decision:
        ...


class Ui:
    """Convenience wrapper the handlers use to talk to the shell."""

    def __init__(self, shell: UserInterface):
        self.shell = shell

    def working(self, indicator: str = "particles") -> None:
        self.shell.notify(Event.WORKING, indicator)

    def status(self, text: str, determinate: Optional[bool] = None) -> None:
        if determinate is None:
            self.shell.notify(Event.STATUS, text)
        else:
            self.shell.notify(Event.STATUS, text, determinate)

    def under(self, text: str) -> None:
        self.shell.notify(Event.UNDER, text)

    def progress(self, percent: float) -> None:
        self.shell.notify(Event.PROGRESS, percent)

    def speed(self, rate: float) -> None:
        self.shell.notify(Event.SPEED, rate)

    def done(self) -> None:
        self.shell.notify(Event.DONE)

    def no_network(self) -> None:
        self.shell.notify(Event.NO_NETWORK)

    def device_unsupported(self, codename: str) -> None:
        self.shell.notify(Event.DEVICE_UNSUPPORTED, codename)

    def progress_callback(self):
        return lambda fraction: self.progress(fraction * 100)

    async def ask(
        self,
        prompt: Prompt,
        data: Optional[Mapping[str, Any]] = None,
        *,
        action: Optional[str] = None,
        step: Optional[Mapping[str, Any]] = None,
        cause: Optional[str] = None,
    ) -> Decision:
        request = PromptRequest(prompt=prompt, data=dict(data or {}), action=action, step=step, cause=cause)
        logger.debug("Waiting for user decision: %s", prompt.value)
        try:
            decision = await self.shell.decide(request)
        except asyncio.CancelledError:
            raise KilledError(f"{prompt.value} prompt cancelled") from None
        logger.debug("User decided %s on %s", decision.choice.value, prompt.value)
        return decision
