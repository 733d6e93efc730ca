"""Exception types raised while converting a SAS topology snapshot."""
from __future__ import annotations


class TopologyError(ValueError):
    """Structured topology error with stable code for CLI mapping."""

    code = "E_TOPOLOGY"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class MalformedInputError(TopologyError):
    """Raised when the snapshot violates the topology digraph schema."""

    code = "E_MALFORMED"


class VertexLookupError(TopologyError):
    """Raised when an edge or initiator references an unknown FMRI."""

    code = "E_LOOKUP"

    def __init__(self, message: str, fmri: str) -> None:
        super().__init__(message)
        self.fmri = fmri


class CycleDetectedError(TopologyError):
    """Raised when a depth-first walk revisits a vertex on its own path."""

    code = "E_CYCLE"

    def __init__(self, message: str, path: list[str]) -> None:
        super().__init__(message)
        self.path = path


class AssetError(TopologyError):
    code = "E_ASSETS"


__all__ = [
    "AssetError",
    "CycleDetectedError",
    "MalformedInputError",
    "TopologyError",
    "VertexLookupError",
]
