from ..registry import ActionRegistry
from . import adb, core, fastboot, heimdall, systemimage

PLUGINS = (core, adb, fastboot, heimdall, systemimage)


def build_registry() -> ActionRegistry:
    return ActionRegistry((plugin.NAMESPACE, plugin.ACTIONS) for plugin in PLUGINS)


REGISTRY = build_registry()

__all__ = [
    "PLUGINS",
    "REGISTRY",
    "build_registry",
]
