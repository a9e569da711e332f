from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GraphError(Exception):
    """Base error envelope for the I/O boundary. The engine itself never raises these."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<depgraph>"
        return f"{loc}: {self.code}: {self.message}"


class StateLoadError(GraphError):
    pass


class IssueFetchError(GraphError):
    pass


class ReleaseSelectionError(GraphError):
    pass
