from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Sequence, Union

from .conditions import evaluate
from .config_model import Step, parse_steps
from .errors import ActionFailure, KilledError, RunAborted, UnknownActionError
from .recovery import Outcome, RecoveryPolicy
from .registry import ActionRegistry, parse_action

if TYPE_CHECKING:
    from .context import RunContext

logger = logging.getLogger(__name__)

StepLike = Union[Step, Mapping[str, Any]]


@dataclass
class StepAttempt:
    """Recovery bookkeeping for one step, kept across its replays."""

    reconnections: int = 0
    unlock_attempted: bool = False
    replays: int = 0


def describe(step: Step) -> str:
    return json.dumps(step.raw or {"actions": list(step.actions)}, default=str, sort_keys=True)


class Interpreter:
    """Runs step lists strictly in order, one action at a time."""

    def __init__(
        self,
        registry: ActionRegistry,
        *,
        policy: Optional[RecoveryPolicy] = None,
        pace_s: float = 0.0,
    ):
        self.registry = registry
        self.policy = policy or RecoveryPolicy()
        self.pace_s = pace_s

    async def run(self, steps: Iterable[StepLike], ctx: "RunContext") -> bool:
        """Run a chain of steps. Returns False if the run was terminated."""

        try:
            await self.run_steps(steps, ctx)
        except (KilledError, RunAborted, ActionFailure) as e:
            # Termination is the normal way to stop a run; nothing escalates past here.
            logger.warning("Aborting run: %s", e)
            ctx.ui.working("particles")
            return False
        return True

    async def run_steps(self, steps: Iterable[StepLike], ctx: "RunContext") -> None:
        for step in steps:
            await self.step(Step.from_raw(step), ctx)

    async def step(self, step: Step, ctx: "RunContext") -> None:
        """Run one step, replaying it in place for as long as recovery asks to."""

        attempt = StepAttempt()
        while True:
            await self._pace()
            if not evaluate(step.condition, ctx.settings):
                logger.debug("Skipping step %s (condition not met)", describe(step))
                return

            logger.debug("Running step %s", describe(step))
            try:
                await self.actions(step.actions, ctx)
                return
            except ActionFailure as failure:
                outcome = await self.policy.handle(failure, step, ctx, interpreter=self, attempt=attempt)

            if outcome is not Outcome.REPLAY:
                return
            attempt.replays += 1
            logger.info("Replaying step %s (replay %d)", describe(step), attempt.replays)

    async def actions(self, actions: Sequence[Mapping[str, Any]], ctx: "RunContext") -> None:
        for action in actions:
            await self.action(action, ctx)

    async def action(self, action: Mapping[str, Any], ctx: "RunContext") -> None:
        try:
            action_id, namespace, verb, payload = parse_action(action)
        except UnknownActionError as e:
            raise ActionFailure(e.action_id, e) from e

        try:
            handler = self.registry.lookup(action_id)
            logger.debug("Running %s action %s", namespace, verb)
            substeps = await handler(payload, ctx)
            steps = parse_steps(substeps, where=f"{action_id} substeps") if substeps else []
        except RunAborted:
            # A declined prompt inside a handler ends the run; it is not a failure to recover.
            raise
        except Exception as e:
            raise ActionFailure(action_id, e) from e

        if steps:
            # Substeps finish before this action is considered done.
            await self.run_steps(steps, ctx)

    async def _pace(self) -> None:
        await asyncio.sleep(self.pace_s)
