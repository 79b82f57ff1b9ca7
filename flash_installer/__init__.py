"""Device flashing installer (workflow-driven).

Core design goals:
- Device workflows are data: ordered, conditional steps of namespaced actions
- One static action registry, assembled before any run
- Typed failures with a fixed recovery order
- A failed step is replayed in place, never the whole run
- Centralized logging
"""

__all__ = []
