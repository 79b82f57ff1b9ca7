from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional

from .config_model import DeviceConfig, OsConfig
from .events import Ui
from .lib.cache import Cache
from .lib.collaborators import Tools


class Settings(Mapping[str, Any]):
    """Run settings: written by the configuration phase, read-only afterwards."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = dict(initial or {})
        self._frozen = False

    def set(self, key: str, value: Any) -> None:
        if self._frozen:
            raise RuntimeError(f"settings are frozen; cannot set {key!r}")
        self._data[key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)

    def freeze(self) -> "Settings":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Settings({self._data!r}, frozen={self._frozen})"


@dataclass
class RunContext:
    """Everything scoped to exactly one installation run."""

    device: DeviceConfig
    os: OsConfig
    settings: Settings
    ui: Ui
    tools: Tools
    cache: Cache

    @property
    def user_actions(self) -> Dict[str, Any]:
        return self.device.user_actions

    @property
    def codename(self) -> str:
        return self.device.codename

    def system_image_options(self) -> MutableMapping[str, Any]:
        return {"device": self.codename, **dict(self.settings)}
