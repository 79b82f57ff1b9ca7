"""Text front-end for the CLI.

Notifications are printed; decisions are read from stdin on a worker thread
so the run keeps its event loop.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Callable, Dict, Mapping, Optional, TextIO

from .errors import KilledError
from .events import Choice, Decision, Event, Prompt, PromptRequest

_YES = {"", "y", "yes", "c", "continue"}
_ERROR_CHOICES = {"r": Choice.RETRY, "retry": Choice.RETRY, "i": Choice.IGNORE, "ignore": Choice.IGNORE}


def _coerce(option: Mapping[str, Any], answer: str, default: Any) -> Any:
    if not answer:
        return default
    if option.get("type") == "checkbox":
        return answer.lower() in {"y", "yes", "true", "1", "on"}
    values = option.get("values") or []
    if values:
        if answer.isdigit() and int(answer) < len(values):
            return values[int(answer)].get("value")
        for v in values:
            if answer in (str(v.get("value")), str(v.get("label"))):
                return v.get("value")
        return default
    return answer


class ConsoleShell:
    def __init__(
        self,
        *,
        assume_yes: bool = False,
        out: Optional[TextIO] = None,
        read: Callable[[str], str] = input,
    ):
        self.assume_yes = assume_yes
        self.out = out or sys.stdout
        self.read = read
        self._last_percent = -1

    def _print(self, text: str) -> None:
        self.out.write(text + "\n")
        self.out.flush()

    def notify(self, event: Event, *args: Any) -> None:
        if event is Event.STATUS:
            self._print(f"== {args[0]}")
            self._last_percent = -1
        elif event is Event.UNDER:
            self._print(f"   {args[0]}")
        elif event is Event.PROGRESS:
            percent = int(args[0])
            if percent // 10 != self._last_percent // 10 and percent > 0:
                self._print(f"   {percent}%")
            self._last_percent = percent
        elif event is Event.DONE:
            self._print("Done.")
        elif event is Event.NO_NETWORK:
            self._print("!! Network unavailable. Check your connection.")
        elif event is Event.DEVICE_UNSUPPORTED:
            self._print(f"!! Device {args[0]} is not supported.")

    async def decide(self, request: PromptRequest) -> Decision:
        return await asyncio.to_thread(self._decide, request)

    def _ask(self, question: str, default: str = "") -> str:
        if self.assume_yes:
            return default
        try:
            return self.read(question).strip()
        except EOFError:
            raise KilledError("input closed") from None

    def _decide(self, request: PromptRequest) -> Decision:
        prompt = request.prompt
        self._describe(request)

        if prompt is Prompt.CONFIGURE:
            return Decision(value=self._configure(request.data))
        if prompt is Prompt.MANUAL_DOWNLOAD:
            path = self._ask("Path to the downloaded file: ")
            return Decision(value=path or None)
        if prompt is Prompt.ERROR:
            answer = self._ask("[r]etry, [i]gnore or [a]bort? ", "a").lower()
            return Decision(_ERROR_CHOICES.get(answer, Choice.ABORT))

        answer = self._ask("Press Enter to continue, or type 'abort': ").lower()
        return Decision(Choice.CONTINUE if answer in _YES else Choice.ABORT)

    def _describe(self, request: PromptRequest) -> None:
        data = request.data
        title = {
            Prompt.CONNECTION_LOST: "Connection to the device was lost.",
            Prompt.LOW_POWER: "The device battery is too low. Please charge it.",
            Prompt.ERROR: "An error occurred.",
        }.get(request.prompt)
        if title:
            self._print(f"!! {title}")
        if request.prompt is Prompt.OEM_LOCK:
            if data.get("enable"):
                self._print("!! Enable 'OEM unlocking' in the developer options of your device.")
            else:
                self._print("!! The bootloader is locked and will be unlocked. This may wipe your data.")
        if request.prompt is Prompt.EULA:
            self._print(str(data.get("eula")))
        for key in ("title", "description"):
            if data.get(key):
                self._print(str(data[key]))
        for name in list(data.get("unlock") or []) + list(data.get("prerequisites") or []):
            entry = (data.get("user_actions") or {}).get(name) or {}
            self._print(f" - {entry.get('title', name)}: {entry.get('description', '')}")
        if request.action:
            self._print(f"   action: {request.action}")
        if request.cause:
            self._print(f"   cause: {request.cause}")

    def _configure(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        values: Dict[str, Any] = dict(data.get("values") or {})
        for option in data.get("options") or []:
            var = option.get("var")
            if not var:
                continue
            default: Optional[Any] = values.get(var)
            label = option.get("name") or var
            for i, v in enumerate(option.get("values") or []):
                self._print(f"   [{i}] {v.get('label', v.get('value'))}")
            values[var] = _coerce(option, self._ask(f"{label} [{default}]: "), default)
        return values
