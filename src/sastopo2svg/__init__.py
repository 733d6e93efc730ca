"""Public API for sastopo2svg."""
from .errors import AssetError, CycleDetectedError, MalformedInputError, TopologyError, VertexLookupError
from .sastopo2svg import Config, render_topology, run

__all__ = [
    "AssetError",
    "Config",
    "CycleDetectedError",
    "MalformedInputError",
    "TopologyError",
    "VertexLookupError",
    "render_topology",
    "run",
]
