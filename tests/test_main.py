from __future__ import annotations

import asyncio
import io

import pytest
import yaml

from flash_installer.console import ConsoleShell
from flash_installer.errors import KilledError
from flash_installer.events import Choice, Event, Prompt, PromptRequest
from flash_installer.main import parse_options, run


def test_parse_options_reads_yaml_scalars() -> None:
    assert parse_options(["wipe=true", "channel=devel", "retries=3", "empty="]) == {
        "wipe": True,
        "channel": "devel",
        "retries": 3,
        "empty": "",
    }


@pytest.mark.parametrize("pair", ["wipe", "=true"])
def test_parse_options_rejects_malformed(pair) -> None:
    with pytest.raises(ValueError):
        parse_options([pair])


def answering(*answers: str) -> ConsoleShell:
    queue = list(answers)
    return ConsoleShell(out=io.StringIO(), read=lambda question: queue.pop(0))


@pytest.mark.parametrize("answer,choice", [("r", Choice.RETRY), ("ignore", Choice.IGNORE), ("a", Choice.ABORT), ("?", Choice.ABORT)])
def test_console_error_choices(answer, choice) -> None:
    shell = answering(answer)
    decision = asyncio.run(shell.decide(PromptRequest(Prompt.ERROR, cause="boom")))
    assert decision.choice is choice
    assert "cause: boom" in shell.out.getvalue()


def test_console_continue_and_abort() -> None:
    shell = answering("", "abort")
    assert asyncio.run(shell.decide(PromptRequest(Prompt.EULA, {"eula": "terms"}))).choice is Choice.CONTINUE
    assert asyncio.run(shell.decide(PromptRequest(Prompt.EULA, {"eula": "terms"}))).choice is Choice.ABORT
    assert "terms" in shell.out.getvalue()


def test_console_closed_input_kills_run() -> None:
    def closed(question):
        raise EOFError

    shell = ConsoleShell(out=io.StringIO(), read=closed)
    with pytest.raises(KilledError):
        asyncio.run(shell.decide(PromptRequest(Prompt.USER_ACTION, {"title": "Reboot"})))


def test_console_configure() -> None:
    shell = answering("y", "1")
    data = {
        "options": [
            {"var": "wipe", "type": "checkbox"},
            {"var": "channel", "type": "select", "values": [{"value": "stable"}, {"value": "devel"}]},
        ],
        "values": {"wipe": False, "channel": "stable"},
    }
    decision = asyncio.run(shell.decide(PromptRequest(Prompt.CONFIGURE, data)))
    assert decision.value == {"wipe": True, "channel": "devel"}


def test_console_assume_yes_keeps_defaults() -> None:
    shell = ConsoleShell(assume_yes=True, out=io.StringIO())
    data = {"options": [{"var": "wipe", "type": "checkbox"}], "values": {"wipe": False}}
    assert asyncio.run(shell.decide(PromptRequest(Prompt.CONFIGURE, data))).value == {"wipe": False}
    assert asyncio.run(shell.decide(PromptRequest(Prompt.ERROR))).choice is Choice.ABORT


def test_console_notifications() -> None:
    shell = ConsoleShell(out=io.StringIO())
    shell.notify(Event.STATUS, "Flashing", True)
    shell.notify(Event.PROGRESS, 5)
    shell.notify(Event.PROGRESS, 12.5)
    shell.notify(Event.PROGRESS, 14)
    shell.notify(Event.DEVICE_UNSUPPORTED, "bacon")
    assert shell.out.getvalue().splitlines() == ["== Flashing", "   5%", "   12%", "!! Device bacon is not supported."]


def test_dry_run_install(tmp_path) -> None:
    config = tmp_path / "d.yaml"
    config.write_text(
        yaml.safe_dump(
            {
                "name": "D",
                "codename": "d",
                "operating_systems": [{"name": "Test OS", "steps": [{"actions": [{"fastboot:reboot": None}]}]}],
            }
        )
    )
    ok = asyncio.run(
        run(
            config_path=str(config),
            catalog_path=str(tmp_path),
            device=None,
            os_choice="Test OS",
            options={},
            cache_root=str(tmp_path / "cache"),
            assume_yes=True,
            dry_run=True,
            pace_s=0,
        )
    )
    assert ok is True


def test_unknown_device_fails(tmp_path) -> None:
    ok = asyncio.run(
        run(
            config_path=None,
            catalog_path=str(tmp_path),
            device="bacon",
            os_choice="0",
            options={},
            cache_root=str(tmp_path / "cache"),
            assume_yes=True,
            dry_run=True,
            pace_s=0,
        )
    )
    assert ok is False
