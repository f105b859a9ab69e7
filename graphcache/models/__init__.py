"""
Model-related utilities for graphcache.
"""

from .model_loader import (
    load_model,
    set_model_load_options,
    read_model_defs,
    get_model_stats,
    list_cached_models,
    get_cache_info,
    clear_cache,
    model_stats,
    options,
)

from .model_info import ModelInfo
from .graph_model import GraphModel
from .artifacts import ModelArtifacts, ModelArtifactsInfo, decode_weights
from .io_handlers import (
    IOHandler,
    HTTPHandler,
    FileHandler,
    CacheHandler,
    SaveResult,
    CACHE_SCHEME,
)

__all__ = [
    'load_model',
    'set_model_load_options',
    'read_model_defs',
    'get_model_stats',
    'list_cached_models',
    'get_cache_info',
    'clear_cache',
    'model_stats',
    'options',
    'ModelInfo',
    'GraphModel',
    'ModelArtifacts',
    'ModelArtifactsInfo',
    'decode_weights',
    'IOHandler',
    'HTTPHandler',
    'FileHandler',
    'CacheHandler',
    'SaveResult',
    'CACHE_SCHEME',
]
