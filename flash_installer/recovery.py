"""Failure classification and recovery.

Given a failed step, the policy picks exactly one resolution. Rules are tried
in order and the first match wins:

1. optional step       -> swallow, step counts as completed
2. step with fallback  -> run the fallback actions instead (failures propagate)
3. low battery         -> block on a "charge device" prompt, replay on resume
4. bootloader locked   -> unlock flow once per step, then replay the step
5. no device           -> "connection lost" prompt, replay on resume
6. offline/unauthorized-> automatic reconnect (bounded per step), then rule 5
7. killed              -> re-raise
8. anything else       -> retry / ignore / abort prompt

Killed is checked before every other rule: it is the cancellation signal and
is never intercepted, not even by optional steps.

The policy never replays anything itself. It returns an Outcome and the
interpreter replays the failed step in place, never the whole run.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from .conditions import evaluate
from .errors import ActionFailure, FailureKind, RunAborted
from .events import Choice, Decision, Prompt

if TYPE_CHECKING:
    from .config_model import Step
    from .context import RunContext
    from .interpreter import Interpreter, StepAttempt

logger = logging.getLogger(__name__)

MAX_RECONNECTIONS = 3

_LOCKED = (FailureKind.BOOTLOADER_LOCKED, FailureKind.UNLOCK_DISABLED)
_RECONNECTABLE = (FailureKind.DEVICE_OFFLINE, FailureKind.UNAUTHORIZED)


class Outcome(str, Enum):
    """What the interpreter does with the step once recovery returns."""

    DONE = "done"
    REPLAY = "replay"


class RecoveryPolicy:
    def __init__(self, *, max_reconnections: int = MAX_RECONNECTIONS):
        self.max_reconnections = max_reconnections

    async def handle(
        self,
        failure: ActionFailure,
        step: "Step",
        ctx: "RunContext",
        *,
        interpreter: "Interpreter",
        attempt: "StepAttempt",
    ) -> Outcome:
        kind = failure.kind
        logger.debug("Attempting to handle %s from %s: %s", kind.value, failure.action_id, failure.error)

        if kind is FailureKind.KILLED:
            raise failure.error
        if step.optional:
            logger.info("Ignoring failure of optional step (%s): %s", failure.action_id, failure.error)
            return Outcome.DONE
        if step.fallback:
            logger.warning("%s failed, running fallback: %s", failure.action_id, failure.error)
            await interpreter.actions(step.fallback, ctx)
            return Outcome.DONE
        if kind is FailureKind.LOW_BATTERY:
            return await self._low_battery(failure, step, ctx)
        if kind in _LOCKED and not attempt.unlock_attempted:
            return await self._unlock(failure, step, ctx, interpreter, attempt)
        if kind is FailureKind.NO_DEVICE:
            return await self._connection_lost(failure, step, ctx)
        if kind in _RECONNECTABLE:
            return await self._reconnect(failure, step, ctx, interpreter, attempt)
        return await self._generic(failure, step, ctx)

    async def _ask(
        self,
        ctx: "RunContext",
        prompt: Prompt,
        failure: ActionFailure,
        step: "Step",
        data: Optional[Dict[str, Any]] = None,
    ) -> Decision:
        return await ctx.ui.ask(
            prompt,
            data,
            action=failure.action_id,
            step=step.raw,
            cause=str(failure.error),
        )

    async def _low_battery(self, failure, step, ctx) -> Outcome:
        logger.warning("Device battery too low: %s", failure.error)
        decision = await self._ask(ctx, Prompt.LOW_POWER, failure, step)
        if not decision.resumes:
            raise RunAborted("installation stopped on low battery")
        return Outcome.REPLAY

    async def _unlock(self, failure, step, ctx, interpreter, attempt) -> Outcome:
        attempt.unlock_attempted = True
        logger.warning("Bootloader locked (%s), running unlock flow", failure.action_id)

        decision = await self._ask(ctx, Prompt.OEM_LOCK, failure, step, {"enable": False})
        if not decision.resumes:
            raise RunAborted("bootloader unlock declined")

        unlock = ctx.device.unlock_step
        if not evaluate(unlock.condition, ctx.settings):
            logger.debug("Skipping unlock flow (condition not met)")
            return Outcome.REPLAY

        while True:
            try:
                await interpreter.actions(unlock.actions, ctx)
                break
            except ActionFailure as unlock_failure:
                if unlock_failure.kind is FailureKind.KILLED:
                    raise unlock_failure.error
                if unlock_failure.kind is FailureKind.UNLOCK_DISABLED:
                    decision = await self._ask(ctx, Prompt.OEM_LOCK, unlock_failure, step, {"enable": True})
                    if not decision.resumes:
                        raise RunAborted("OEM unlocking was not enabled")
                    continue
                if unlock.optional:
                    logger.info("Ignoring failure of optional unlock flow: %s", unlock_failure.error)
                    break
                if unlock.fallback:
                    logger.warning("Unlock flow failed, running its fallback: %s", unlock_failure.error)
                    await interpreter.actions(unlock.fallback, ctx)
                    break
                logger.warning("Unlock flow failed: %s", unlock_failure.error)
                return await self._generic(unlock_failure, step, ctx)

        return Outcome.REPLAY

    async def _connection_lost(self, failure, step, ctx) -> Outcome:
        decision = await self._ask(ctx, Prompt.CONNECTION_LOST, failure, step, {"resumable": step.resumable})
        if not decision.resumes:
            raise RunAborted("connection lost")
        return Outcome.REPLAY

    async def _reconnect(self, failure, step, ctx, interpreter, attempt) -> Outcome:
        if attempt.reconnections >= self.max_reconnections:
            logger.warning("Maximum automatic reconnection attempts exceeded")
            return await self._connection_lost(failure, step, ctx)

        attempt.reconnections += 1
        try:
            await interpreter.action({"adb:reconnect": None}, ctx)
        except ActionFailure as e:
            if e.kind is FailureKind.KILLED:
                raise e.error
            logger.warning("Failed to reconnect automatically: %s", e.error)
            return await self._connection_lost(failure, step, ctx)

        logger.warning("Automatic reconnection %d", attempt.reconnections)
        return Outcome.REPLAY

    async def _generic(self, failure, step, ctx) -> Outcome:
        logger.error("%s failed: %s", failure.action_id, failure.error)
        decision = await self._ask(ctx, Prompt.ERROR, failure, step)
        if decision.choice is Choice.RETRY:
            return Outcome.REPLAY
        if decision.choice in (Choice.IGNORE, Choice.CONTINUE):
            logger.warning("Ignoring failure of %s", failure.action_id)
            return Outcome.DONE
        raise RunAborted(f"{failure.action_id} failed: {failure.error}")
