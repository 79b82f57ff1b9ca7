from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import pytest

from flash_installer.config_model import DeviceConfig
from flash_installer.context import RunContext, Settings
from flash_installer.events import Choice, Decision, Event, PromptRequest, Ui
from flash_installer.lib.cache import Cache
from flash_installer.lib.collaborators import Tools

DEVICE: Dict[str, Any] = {
    "name": "Yggdrasil",
    "codename": "yggdrasil",
    "user_actions": {
        "recovery": {"title": "Reboot to recovery"},
        "system": {"title": "Reboot to system"},
        "bootloader": {"title": "Reboot to bootloader"},
        "download": {"title": "Reboot to download mode"},
        "unlock": {"title": "Unlock"},
    },
    "operating_systems": [{"name": "Ubuntu Touch", "steps": []}],
}


class FakeShell:
    """Records notifications and prompts; answers prompts with a script."""

    def __init__(self, answer: Optional[Callable[[PromptRequest], Any]] = None):
        self.events: List[tuple] = []
        self.prompts: List[PromptRequest] = []
        self.answer = answer or (lambda request: Decision(Choice.CONTINUE))

    def notify(self, event: Event, *args: Any) -> None:
        self.events.append((event, args))

    async def decide(self, request: PromptRequest) -> Decision:
        self.prompts.append(request)
        result = self.answer(request)
        if isinstance(result, BaseException):
            raise result
        return result

    def of(self, event: Event) -> List[tuple]:
        return [args for e, args in self.events if e is event]

    @property
    def prompt_kinds(self) -> list:
        return [p.prompt for p in self.prompts]


class FakeTool:
    """Device tool double: records calls, raises scripted failures per method."""

    def __init__(self, access: Any = True):
        self.calls: List[tuple] = []
        self.failures: Dict[str, List[BaseException]] = {}
        self.access = access

    def fail(self, method: str, *errors: BaseException) -> None:
        self.failures.setdefault(method, []).extend(errors)

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        async def call(*args: Any) -> None:
            self.calls.append((name, args))
            queue = self.failures.get(name)
            if queue:
                raise queue.pop(0)

        return call

    async def has_access(self) -> bool:
        self.calls.append(("has_access", ()))
        if isinstance(self.access, list):
            return self.access.pop(0) if self.access else True
        if isinstance(self.access, BaseException):
            raise self.access
        return self.access

    def called(self, name: str) -> List[tuple]:
        return [args for n, args in self.calls if n == name]


class FakeDownloader:
    def __init__(self):
        self.downloads: List[list] = []
        self.checked: List[Any] = []
        self.error: Optional[BaseException] = None
        self.valid: List[bool] = []

    async def download(self, files, progress, next_file, activity) -> None:
        self.downloads.append(list(files))
        if self.error is not None:
            raise self.error
        activity("preparing")
        activity("downloading")
        progress(0.5, 1.234)
        next_file(1, len(files))

    async def check_file(self, path, checksum) -> bool:
        self.checked.append(path)
        return self.valid.pop(0) if self.valid else False


class FakeUnpacker:
    def __init__(self):
        self.calls: List[tuple] = []
        self.error: Optional[BaseException] = None

    async def unpack(self, archive, dest) -> None:
        self.calls.append((archive, dest))
        if self.error is not None:
            raise self.error


@pytest.fixture
def shell() -> FakeShell:
    return FakeShell()


@pytest.fixture
def tools() -> Tools:
    return Tools(
        adb=FakeTool(),
        fastboot=FakeTool(),
        heimdall=FakeTool(),
        downloader=FakeDownloader(),
        unpacker=FakeUnpacker(),
        system_image=FakeTool(),
    )


@pytest.fixture
def make_ctx(shell, tools, tmp_path):
    def make(device: Optional[Dict[str, Any]] = None, settings: Optional[Dict[str, Any]] = None) -> RunContext:
        config = DeviceConfig.from_raw(dict(device or DEVICE))
        return RunContext(
            device=config,
            os=config.operating_systems[0],
            settings=Settings(settings).freeze(),
            ui=Ui(shell),
            tools=tools,
            cache=Cache(root=tmp_path, codename=config.codename),
        )

    return make


@pytest.fixture
def ctx(make_ctx) -> RunContext:
    return make_ctx()
