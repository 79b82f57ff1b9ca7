from __future__ import annotations

import asyncio
import logging

import pytest

from flash_installer.errors import ConfigError, RunAborted
from flash_installer.events import Choice, Decision, Event, Prompt
from flash_installer.installer import Installer, find_os

DEVICE = {
    "name": "Yggdrasil",
    "codename": "yggdrasil",
    "unlock": ["oem"],
    "user_actions": {"oem": {"title": "Enable OEM unlocking"}, "charged": {"title": "Charge your device"}},
    "operating_systems": [
        {
            "name": "Ubuntu Touch",
            "prerequisites": ["charged"],
            "eula": "Be nice.",
            "options": [{"var": "wipe", "type": "checkbox", "value": False}],
            "steps": [
                {"actions": [{"fastboot:erase": {"partition": "userdata"}}], "condition": {"var": "wipe", "value": True}},
                {"actions": [{"fastboot:reboot": None}]},
            ],
        },
        {"name": "LineageOS", "steps": []},
    ],
}


def blocking(shell):
    """Make the shell never answer; the run stays suspended at its first prompt."""

    async def decide(request):
        shell.prompts.append(request)
        await asyncio.Event().wait()

    shell.decide = decide
    return shell


class FakeCatalog:
    def __init__(self, devices):
        self.devices = devices

    def get_device(self, codename):
        if codename not in self.devices:
            raise FileNotFoundError(codename)
        return self.devices[codename]


def make_installer(shell, tools, tmp_path, **kwargs) -> Installer:
    installer = Installer(shell=shell, tools=tools, cache_root=tmp_path, **kwargs)
    installer.set_config(DEVICE)
    return installer


def test_full_install(shell, tools, tmp_path) -> None:
    shell.answer = lambda r: Decision(value={"wipe": True}) if r.prompt is Prompt.CONFIGURE else Decision()
    installer = make_installer(shell, tools, tmp_path)

    assert asyncio.run(installer.install(0)) is True

    assert shell.prompt_kinds == [Prompt.PREREQUISITES, Prompt.EULA, Prompt.CONFIGURE]
    assert shell.prompts[2].data["values"] == {"wipe": False}
    assert tools.fastboot.called("erase") == [("userdata",)]
    assert tools.fastboot.called("reboot") == [()]
    assert shell.of(Event.DONE) == [()]
    assert not installer.active


def test_defaults_skip_conditional_steps(shell, tools, tmp_path) -> None:
    installer = make_installer(shell, tools, tmp_path)
    assert asyncio.run(installer.install(0)) is True
    assert tools.fastboot.called("erase") == []


def test_preset_option_is_applied(shell, tools, tmp_path) -> None:
    installer = make_installer(shell, tools, tmp_path)
    installer.set_option("wipe", True)
    assert asyncio.run(installer.install(0)) is True
    assert tools.fastboot.called("erase") == [("userdata",)]


def test_os_without_options_is_not_configured(shell, tools, tmp_path) -> None:
    installer = make_installer(shell, tools, tmp_path)
    assert asyncio.run(installer.install(1)) is True
    assert shell.prompt_kinds == []
    assert ("LineageOS successfully installed!", False) in shell.of(Event.STATUS)


def test_declined_eula_stops_before_any_step(shell, tools, tmp_path) -> None:
    shell.answer = lambda r: Decision(Choice.ABORT) if r.prompt is Prompt.EULA else Decision()
    installer = make_installer(shell, tools, tmp_path)
    assert asyncio.run(installer.install(0)) is False
    assert shell.prompt_kinds == [Prompt.PREREQUISITES, Prompt.EULA]
    assert tools.fastboot.calls == []
    assert not installer.active


def test_unknown_os_index(shell, tools, tmp_path) -> None:
    installer = make_installer(shell, tools, tmp_path)
    with pytest.raises(ConfigError):
        asyncio.run(installer.install(5))


def test_only_one_run_at_a_time(shell, tools, tmp_path) -> None:
    shell = blocking(shell)
    installer = make_installer(shell, tools, tmp_path)

    async def go():
        first = asyncio.create_task(installer.install(0))
        while not shell.prompts:
            await asyncio.sleep(0)
        assert installer.active
        with pytest.raises(RuntimeError):
            await installer.install(0)
        with pytest.raises(RuntimeError):
            installer.set_option("wipe", True)
        installer.cancel()
        return await first

    assert asyncio.run(go()) is False
    assert not installer.active


def test_cancel_while_prompting_ends_run(shell, tools, tmp_path) -> None:
    shell = blocking(shell)
    installer = make_installer(shell, tools, tmp_path)

    async def go():
        task = asyncio.create_task(installer.install(0))
        while not shell.prompts:
            await asyncio.sleep(0)
        installer.cancel()
        result = await task
        return result, task.cancelling()

    assert asyncio.run(go()) == (False, 0)
    assert tools.fastboot.calls == []
    assert shell.of(Event.WORKING)[-1] == ("particles",)


def test_select_os_shows_unlock_instructions(shell, tools, tmp_path) -> None:
    installer = make_installer(shell, tools, tmp_path)
    assert asyncio.run(installer.select_os()) == ["Ubuntu Touch", "LineageOS"]
    assert shell.prompt_kinds == [Prompt.UNLOCK]
    assert shell.prompts[0].data["unlock"] == ["oem"]


def test_select_os_declined(shell, tools, tmp_path) -> None:
    shell.answer = lambda r: Decision(Choice.ABORT)
    installer = make_installer(shell, tools, tmp_path)
    with pytest.raises(RunAborted):
        asyncio.run(installer.select_os())


def test_set_device_from_catalog(shell, tools, tmp_path) -> None:
    installer = Installer(shell=shell, tools=tools, cache_root=tmp_path, catalog=FakeCatalog({"yggdrasil": DEVICE}))
    assert asyncio.run(installer.set_device("yggdrasil")) is True
    assert installer.config.codename == "yggdrasil"
    assert shell.of(Event.DEVICE_UNSUPPORTED) == []


def test_unsupported_device(shell, tools, tmp_path) -> None:
    installer = Installer(shell=shell, tools=tools, cache_root=tmp_path, catalog=FakeCatalog({}))
    assert asyncio.run(installer.set_device("bacon")) is False
    assert shell.of(Event.DEVICE_UNSUPPORTED) == [("bacon",)]
    assert installer.config is None


def test_find_os(shell, tools, tmp_path) -> None:
    config = make_installer(shell, tools, tmp_path).config
    assert find_os(config, "1") == 1
    assert find_os(config, "lineageos") == 1
    with pytest.raises(ValueError):
        find_os(config, "Sailfish")


def test_registered_actions_are_logged(shell, tools, tmp_path, caplog) -> None:
    with caplog.at_level(logging.DEBUG, logger="flash_installer.installer"):
        make_installer(shell, tools, tmp_path)
    assert "core:user_action" in caplog.text
    assert "fastboot:oem_unlock" in caplog.text
