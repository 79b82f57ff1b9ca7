from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import UnknownActionError

if TYPE_CHECKING:
    from .context import RunContext

logger = logging.getLogger(__name__)

Substeps = Optional[List[Dict[str, Any]]]
Handler = Callable[[Any, "RunContext"], Awaitable[Substeps]]


def parse_action(action: Mapping[str, Any]) -> Tuple[str, str, str, Any]:
    """Split ``{"namespace:verb": payload}`` into its parts."""

    if not isinstance(action, Mapping) or len(action) != 1:
        raise UnknownActionError(repr(action))
    action_id, payload = next(iter(action.items()))
    namespace, sep, verb = str(action_id).partition(":")
    if not sep or not namespace or not verb:
        raise UnknownActionError(str(action_id))
    return str(action_id), namespace, verb, payload


class ActionRegistry:
    """Immutable namespace -> verb -> handler table."""

    def __init__(self, plugins: Iterable[Tuple[str, Mapping[str, Handler]]]):
        table: Dict[str, Mapping[str, Handler]] = {}
        for namespace, actions in plugins:
            if namespace in table:
                raise ValueError(f"Namespace '{namespace}' is already registered")
            table[namespace] = MappingProxyType(dict(actions))
        self._table = MappingProxyType(table)

    def lookup(self, action_id: str) -> Handler:
        namespace, _, verb = action_id.partition(":")
        handler = (self._table.get(namespace) or {}).get(verb)
        if handler is None:
            raise UnknownActionError(action_id)
        return handler

    def has_action(self, action_id: str) -> bool:
        try:
            self.lookup(action_id)
        except UnknownActionError:
            return False
        return True

    def list_actions(self) -> List[str]:
        return [f"{ns}:{verb}" for ns, verbs in self._table.items() for verb in verbs]
