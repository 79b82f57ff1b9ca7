"""Translate legacy typed steps into the action shape.

Older device files describe each step with a fixed ``type`` tag and
type-specific fields, e.g.::

    {"type": "fastboot:flash", "flash": [...], "resumable": true}

These are rewritten to ``{"actions": [{"fastboot:flash": [...]}], ...}`` so the
interpreter only ever sees one shape.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

Payload = Callable[[Mapping[str, Any]], Any]


def _pick(*keys: str) -> Payload:
    return lambda step: {k: step[k] for k in keys if k in step}


LEGACY_ACTIONS: Dict[str, tuple[str, Payload]] = {
    "download": ("core:download", _pick("group", "files")),
    "manual_download": ("core:manual_download", _pick("group", "file")),
    "unpack": ("core:unpack", _pick("group", "files")),
    "user_action": ("core:user_action", _pick("action")),
    "systemimage": ("systemimage:install", lambda step: None),
    "adb:format": ("adb:format", _pick("partition")),
    "adb:sideload": ("adb:sideload", _pick("group", "file")),
    "adb:reboot": ("adb:reboot", _pick("to_state")),
    "fastboot:flash": ("fastboot:flash", lambda step: step.get("flash") or []),
    "fastboot:erase": ("fastboot:erase", _pick("partition")),
    "fastboot:format": ("fastboot:format", _pick("partition", "partitionType", "size")),
    "fastboot:boot": ("fastboot:boot", _pick("group", "file", "partition")),
    "fastboot:update": ("fastboot:update", _pick("group", "file")),
    "fastboot:reboot_bootloader": ("fastboot:reboot_bootloader", lambda step: None),
    "fastboot:reboot": ("fastboot:reboot", lambda step: None),
    "fastboot:continue": ("fastboot:continue", lambda step: None),
    "fastboot:set_active": ("fastboot:set_active", _pick("slot")),
    "heimdall:flash": ("heimdall:flash", lambda step: step.get("flash") or []),
}

_STEP_KEYS = ("condition", "optional", "resumable", "fallback")


def is_legacy(step: Mapping[str, Any]) -> bool:
    return "type" in step and "actions" not in step


def translate_step(step: Mapping[str, Any]) -> Dict[str, Any]:
    step_type = str(step["type"])
    if step_type in LEGACY_ACTIONS:
        action_id, payload = LEGACY_ACTIONS[step_type]
        action = {action_id: payload(step)}
    else:
        # Unknown types still dispatch so they fail like any unknown action.
        action_id = step_type if ":" in step_type else f"legacy:{step_type}"
        action = {action_id: None}

    out: Dict[str, Any] = {k: step[k] for k in _STEP_KEYS if k in step}
    out["actions"] = [action]
    if step.get("fallback_user_action") and "fallback" not in out:
        out["fallback"] = [{"core:user_action": {"action": step["fallback_user_action"]}}]
    return out
