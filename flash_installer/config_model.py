from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .conditions import validate_expression
from .errors import ConfigError
from .legacy import is_legacy, translate_step

logger = logging.getLogger(__name__)

DEFAULT_UNLOCK_STEP: Dict[str, Any] = {"actions": [{"fastboot:oem_unlock": None}]}


def _actions(raw: Any, where: str) -> Tuple[Dict[str, Any], ...]:
    if not isinstance(raw, list):
        raise ConfigError(f"{where} must be a list of actions")
    out = []
    for i, action in enumerate(raw):
        if not isinstance(action, dict) or len(action) != 1:
            raise ConfigError(f"{where}[{i}] must be a single-key mapping 'namespace:verb' -> payload")
        out.append(dict(action))
    return tuple(out)


@dataclass(frozen=True)
class Step:
    actions: Tuple[Dict[str, Any], ...]
    condition: Optional[Dict[str, Any]] = None
    optional: bool = False
    fallback: Optional[Tuple[Dict[str, Any], ...]] = None
    resumable: bool = False
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_raw(cls, raw: Any, *, where: str = "step") -> "Step":
        if isinstance(raw, Step):
            return raw
        if not isinstance(raw, Mapping):
            raise ConfigError(f"{where} must be a mapping")
        if is_legacy(raw):
            raw = translate_step(raw)

        condition = raw.get("condition")
        validate_expression(condition, where=f"{where}.condition")

        fallback = raw.get("fallback")
        return cls(
            actions=_actions(raw.get("actions") or [], f"{where}.actions"),
            condition=dict(condition) if condition else None,
            optional=bool(raw.get("optional", False)),
            fallback=_actions(fallback, f"{where}.fallback") if fallback else None,
            resumable=bool(raw.get("resumable", False)),
            raw=dict(raw),
        )


def parse_steps(raw: Any, *, where: str = "steps") -> List[Step]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"{where} must be a list")
    return [Step.from_raw(s, where=f"{where}[{i}]") for i, s in enumerate(raw)]


@dataclass(frozen=True)
class OsConfig:
    raw: Dict[str, Any]
    steps: Tuple[Step, ...]

    @classmethod
    def from_raw(cls, raw: Any, *, where: str = "operating_systems") -> "OsConfig":
        if not isinstance(raw, dict):
            raise ConfigError(f"{where} must be a mapping")
        if not raw.get("name"):
            raise ConfigError(f"{where}.name is required")
        return cls(raw=raw, steps=tuple(parse_steps(raw.get("steps"), where=f"{where}.steps")))

    @property
    def name(self) -> str:
        return str(self.raw["name"])

    @property
    def options(self) -> List[Dict[str, Any]]:
        return list(self.raw.get("options") or [])

    @property
    def prerequisites(self) -> List[str]:
        return list(self.raw.get("prerequisites") or [])

    @property
    def eula(self) -> Optional[str]:
        return self.raw.get("eula") or None

    @property
    def success_message(self) -> Optional[str]:
        return self.raw.get("success_message") or None

    def option_defaults(self) -> Dict[str, Any]:
        return {o["var"]: o["value"] for o in self.options if "var" in o and "value" in o}


@dataclass(frozen=True)
class DeviceConfig:
    raw: Dict[str, Any]
    operating_systems: Tuple[OsConfig, ...]
    unlock_step: Step

    @classmethod
    def from_raw(cls, raw: Any) -> "DeviceConfig":
        if not isinstance(raw, dict):
            raise ConfigError("device config must contain a mapping/object")
        for key in ("name", "codename"):
            if not raw.get(key):
                raise ConfigError(f"device config: {key} is required")
        systems = raw.get("operating_systems") or []
        if not isinstance(systems, list):
            raise ConfigError("device config: operating_systems must be a list")

        handlers = raw.get("handlers") or {}
        unlock = handlers.get("bootloader_locked") or DEFAULT_UNLOCK_STEP
        return cls(
            raw=raw,
            operating_systems=tuple(
                OsConfig.from_raw(o, where=f"operating_systems[{i}]") for i, o in enumerate(systems)
            ),
            unlock_step=Step.from_raw(unlock, where="handlers.bootloader_locked"),
        )

    @property
    def name(self) -> str:
        return str(self.raw["name"])

    @property
    def codename(self) -> str:
        return str(self.raw["codename"])

    @property
    def unlock(self) -> List[str]:
        return list(self.raw.get("unlock") or [])

    @property
    def user_actions(self) -> Dict[str, Any]:
        return dict(self.raw.get("user_actions") or {})

    def select_os(self, index: int) -> OsConfig:
        try:
            return self.operating_systems[index]
        except IndexError:
            raise ConfigError(
                f"{self.codename}: no operating system at index {index} "
                f"(have {len(self.operating_systems)})"
            ) from None


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    return "json"


def load_document(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ConfigError(f"{p} must contain a mapping/object, got {type(data).__name__}")
    return data


def load_device_config(path: str | Path) -> DeviceConfig:
    logger.info("Loading device config %s", path)
    return DeviceConfig.from_raw(load_document(path))


class DirectoryCatalog:
    """Device catalog backed by ``<codename>.yaml|.yml|.json`` files."""

    SUFFIXES = (".yaml", ".yml", ".json")

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def codenames(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted({p.stem for p in self.root.iterdir() if p.suffix.lower() in self.SUFFIXES})

    def get_device(self, codename: str) -> Dict[str, Any]:
        for suffix in self.SUFFIXES:
            p = self.root / f"{codename}{suffix}"
            if p.exists():
                return load_document(p)
        raise FileNotFoundError(f"No config for device {codename!r} in {self.root}")
