"""
Utilities for loading graph models with opportunistic local caching
"""

import os
import json
import shutil
import logging
from typing import Dict, Any, Optional, Union, Mapping

import psutil
import requests

from graphcache.config import LoaderConfig, DEFAULT_CACHE_DIR
from graphcache.models.graph_model import GraphModel
from graphcache.models.io_handlers import (
    CACHE_SCHEME,
    INFO_FILE_NAME,
    list_models,
    models_cache_dir,
    read_model_info,
    remove_model,
)
from graphcache.models.model_info import ModelInfo
from graphcache.utils.paths import join, short_model_name

# Set up logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

# Expected weight sizes of known models, keyed by short model name
MODEL_DEFS_PATH = os.path.join(os.path.dirname(__file__), "models.json")

options = {
    "cache_models": True,
    "cache_supported": True,
    "verbose": True,
    "debug": False,
    "model_base_path": "",
    "cache_dir": DEFAULT_CACHE_DIR,
    "model_defs_path": MODEL_DEFS_PATH,
    "show_progress": False,
}

model_stats: Dict[str, ModelInfo] = {}


def _http_handler(url: str, **kwargs) -> requests.Response:
    if options["debug"]:
        logger.info(f"load model fetch: {url} {kwargs}")
    return requests.get(url, **kwargs)


def set_model_load_options(config: Union[LoaderConfig, Mapping[str, Any]]) -> None:
    """
    Apply loader settings for every following load_model call.

    Args:
        config: LoaderConfig or a mapping with the same keys
    """
    if not isinstance(config, LoaderConfig):
        config = LoaderConfig.from_dict(dict(config))

    options["cache_models"] = config.cache_models
    options["verbose"] = config.debug
    options["debug"] = config.trace_io
    options["model_base_path"] = config.model_base_path
    options["cache_dir"] = config.cache_dir or DEFAULT_CACHE_DIR
    options["model_defs_path"] = config.model_defs_path or MODEL_DEFS_PATH
    options["show_progress"] = config.show_progress


def read_model_defs() -> Dict[str, int]:
    """
    Read the model definitions file with the expected weight size of each model.

    Returns:
        Dictionary mapping short model names to byte sizes
    """
    defs_path = options["model_defs_path"]
    if not os.path.exists(defs_path):
        logger.warning(f"Model definitions not found at {defs_path}")
        return {}

    try:
        with open(defs_path, 'r', encoding='utf-8') as file:
            return json.load(file)
    except (OSError, ValueError) as e:
        logger.error(f"Error reading model definitions: {e}")
        return {}


def _check_cache_supported(cache_dir: str) -> bool:
    models_dir = models_cache_dir(cache_dir)
    try:
        os.makedirs(models_dir, exist_ok=True)
    except OSError as e:
        logger.debug(f"Cache directory {models_dir} is not usable: {e}")
        return False
    return os.access(models_dir, os.W_OK)


def load_model(model_path: Optional[str]) -> GraphModel:
    """
    Load a graph model, from the local cache when it is there.

    The model is saved to the cache after a successful load from its original
    location. Load and save errors are logged, not raised.

    Args:
        model_path: Path or URL of the model.json, relative to the model base path

    Returns:
        GraphModel, which is not loaded if loading failed
    """
    model_url = join(options["model_base_path"], model_path or '')
    if not model_url.lower().endswith('.json'):
        model_url += '.json'
    short_name = short_model_name(model_url)
    cached_model_name = CACHE_SCHEME + short_name

    stats = ModelInfo(name=short_name, size_desired=read_model_defs().get(short_name, 0))
    model_stats[short_name] = stats

    cache_dir = options["cache_dir"]
    options["cache_supported"] = _check_cache_supported(cache_dir)
    cached_models = {}
    try:
        if options["cache_supported"] and options["cache_models"]:
            cached_models = list_models(cache_dir)
    except (OSError, ValueError) as e:
        logger.warning(f"Cannot list cached models, disabling cache: {e}")
        options["cache_supported"] = False
    stats.in_cache = options["cache_supported"] and options["cache_models"] and cached_model_name in cached_models

    load_options = {"fetch_func": _http_handler, "cache_dir": cache_dir, "show_progress": options["show_progress"]}
    model = GraphModel(cached_model_name if stats.in_cache else model_url, load_options)

    loaded = False
    try:
        model.find_io_handler()
        if options["debug"]:
            logger.info(f"model load handler: {model.handler}")
        artifacts = model.handler.load()
        stats.size_from_manifest = len(artifacts.weight_data) if artifacts.weight_data else 0
        model.load_sync(artifacts)
        stats.size_loaded_weights = model.weight_bytes
        if options["verbose"]:
            logger.info(f"load model: {model.model_url} bytes={stats.size_loaded_weights} options={options}")
        loaded = True
    except Exception as e:
        logger.error(f"error loading model: {model_url} {e}")

    if loaded and options["cache_models"] and options["cache_supported"] and not stats.in_cache:
        try:
            save_result = model.save(cached_model_name)
            logger.info(f"model saved: {cached_model_name} {save_result.model_artifacts_info.to_dict()}")
        except Exception as e:
            logger.error(f"error saving model: {model_url} {e}")

    return model


def get_model_stats(name: Optional[str] = None) -> Union[Dict[str, Dict[str, Any]], Optional[Dict[str, Any]]]:
    """
    Get load statistics.

    Args:
        name: Short model name; all models when omitted

    Returns:
        Statistics of one model (None if it was never loaded), or of every model keyed by name
    """
    if name is not None:
        info = model_stats.get(name)
        return info.to_dict() if info else None
    return {key: info.to_dict() for key, info in model_stats.items()}


def list_cached_models() -> Dict[str, Dict[str, Any]]:
    """List the models in the cache, keyed by cache:// URL"""
    return list_models(options["cache_dir"])


def get_cache_info() -> Dict[str, Any]:
    """
    Get information about the model cache.

    Returns:
        Dictionary with cache information including location, size, and models
    """
    cache_dir = options["cache_dir"]
    models_dir = models_cache_dir(cache_dir)

    cache_info = {
        "cache_dir": cache_dir,
        "models_dir": models_dir,
        "total_size_mb": 0,
        "free_space_mb": None,
        "models": [],
    }

    if not os.path.exists(models_dir):
        return cache_info

    try:
        cache_info["free_space_mb"] = psutil.disk_usage(models_dir).free / (1024 * 1024)
    except OSError as e:
        logger.warning(f"Cannot read free space for {models_dir}: {e}")

    total_size = 0
    for name in sorted(os.listdir(models_dir)):
        model_path = os.path.join(models_dir, name)
        if name.endswith((".tmp", ".old")) or not os.path.isdir(model_path):
            continue

        error = None
        try:
            info = read_model_info(name, cache_dir)
        except FileNotFoundError:
            continue
        except ValueError as e:
            logger.warning(f"Corrupt cache entry {model_path}: {e}")
            info = {}
            error = f"corrupt {INFO_FILE_NAME}: {e}"

        dir_size = 0
        for dirpath, dirnames, filenames in os.walk(model_path):
            for f in filenames:
                fp = os.path.join(dirpath, f)
                if os.path.exists(fp):
                    dir_size += os.path.getsize(fp)

        cache_info["models"].append({
            "name": name,
            "url": CACHE_SCHEME + name,
            "path": model_path,
            "size_mb": dir_size / (1024 * 1024),
            "weight_bytes": info.get("weight_data_bytes", 0),
            "date_saved": info.get("date_saved"),
            "error": error,
        })
        total_size += dir_size

    cache_info["total_size_mb"] = total_size / (1024 * 1024)
    return cache_info


def clear_cache(model_name: Optional[str] = None) -> bool:
    """
    Clear the model cache.

    Args:
        model_name: If provided, only clear the specified model

    Returns:
        True if successful, False otherwise
    """
    cache_dir = options["cache_dir"]
    try:
        if model_name:
            remove_model(model_name, cache_dir)
        else:
            models_dir = models_cache_dir(cache_dir)
            if os.path.exists(models_dir):
                for item in os.listdir(models_dir):
                    item_path = os.path.join(models_dir, item)
                    if os.path.isdir(item_path):
                        logger.info(f"Removing model: {item_path}")
                        shutil.rmtree(item_path)

        logger.info("Cache cleared successfully")
        return True

    except FileNotFoundError:
        logger.warning(f"Model {model_name} not found in cache")
        return False
    except ValueError as e:
        logger.error(f"Cannot remove model {model_name}: {e}")
        return False
    except OSError as e:
        logger.error(f"Error clearing cache: {e}")
        return False
