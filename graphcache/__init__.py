"""
graphcache: load inference graphs from remote or cached locations
"""

__version__ = "0.1.0"

from graphcache.models.model_loader import load_model, set_model_load_options, model_stats  # noqa: F401
from graphcache.models.graph_model import GraphModel  # noqa: F401
from graphcache.config import LoaderConfig  # noqa: F401

__all__ = [
    "load_model",
    "set_model_load_options",
    "model_stats",
    "GraphModel",
    "LoaderConfig",
]
