"""Infrastructure layer exports."""

from contribution_gateway.infrastructure.repository import MirrorStore

__all__ = [
    "MirrorStore",
]
