"""
IO handlers that move model artifacts between HTTP, local files and the model cache
"""

import os
import json
import shutil
import logging
from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Callable

import requests
from tqdm import tqdm

from graphcache.config import DEFAULT_CACHE_DIR
from graphcache.models.artifacts import (
    ModelArtifacts,
    ModelArtifactsInfo,
    WEIGHTS_FILE_NAME,
    get_model_artifacts_info,
    parse_model_json,
    to_model_json,
)

logger = logging.getLogger(__name__)

CACHE_SCHEME = "cache://"
FILE_SCHEME = "file://"
HTTP_SCHEMES = ("http://", "https://")

MODEL_JSON_NAME = "model.json"
INFO_FILE_NAME = "info.json"


@dataclass
class SaveResult:
    """Outcome of saving a model through an IO handler"""
    url: str
    model_artifacts_info: ModelArtifactsInfo


class IOHandler:
    """
    Base class for IO handlers.

    Handlers that cannot load or cannot save leave the corresponding method
    unimplemented.
    """

    def load(self) -> ModelArtifacts:
        raise NotImplementedError(f"{type(self).__name__} does not support loading")

    def save(self, artifacts: ModelArtifacts) -> SaveResult:
        raise NotImplementedError(f"{type(self).__name__} does not support saving")


class HTTPHandler(IOHandler):
    """
    Load a model.json and its weight shards over HTTP.
    """

    def __init__(self, url: str, fetch_func: Optional[Callable[..., Any]] = None,
                 request_init: Optional[Dict[str, Any]] = None,
                 weight_path_prefix: Optional[str] = None, show_progress: bool = False):
        """
        Initialize the handler.

        Args:
            url: URL of the model.json file
            fetch_func: Callable with the signature of requests.get used for every request
            request_init: Extra keyword arguments passed to every request (headers, timeout, ...)
            weight_path_prefix: Base URL for weight shards, defaults to the directory of the manifest
            show_progress: Whether to display a progress bar while downloading shards
        """
        self.url = url
        self.fetch_func = fetch_func
        self.request_init = request_init or {}
        self.weight_path_prefix = weight_path_prefix
        self.show_progress = show_progress

    def __repr__(self):
        return f"HTTPHandler(url={self.url!r})"

    def _fetch(self, url: str):
        fetch = self.fetch_func or requests.get
        response = fetch(url, **self.request_init)
        response.raise_for_status()
        return response

    def load(self) -> ModelArtifacts:
        model_json = self._fetch(self.url).json()

        prefix = self.weight_path_prefix or self.url[:self.url.rfind('/') + 1]
        if prefix and not prefix.endswith('/'):
            prefix += '/'

        paths = [path for group in model_json.get("weightsManifest") or [] for path in group.get("paths", [])]
        weight_data = None
        if paths:
            chunks = []
            for path in tqdm(paths, desc="Downloading weights", unit="shard", disable=not self.show_progress):
                chunks.append(self._fetch(prefix + path).content)
            weight_data = b"".join(chunks)

        return parse_model_json(model_json, weight_data)


def _strip_file_scheme(path: str) -> str:
    return path[len(FILE_SCHEME):] if path.startswith(FILE_SCHEME) else path


def _read_model_dir(model_json_path: str) -> ModelArtifacts:
    if not os.path.exists(model_json_path):
        raise FileNotFoundError(f"Model file not found: {model_json_path}")

    with open(model_json_path, 'r', encoding='utf-8') as f:
        model_json = json.load(f)

    base_dir = os.path.dirname(model_json_path)
    paths = [path for group in model_json.get("weightsManifest") or [] for path in group.get("paths", [])]
    weight_data = None
    if paths:
        chunks = []
        for path in paths:
            with open(os.path.join(base_dir, path), 'rb') as f:
                chunks.append(f.read())
        weight_data = b"".join(chunks)

    return parse_model_json(model_json, weight_data)


def _write_model_dir(model_dir: str, artifacts: ModelArtifacts) -> ModelArtifactsInfo:
    os.makedirs(model_dir, exist_ok=True)

    with open(os.path.join(model_dir, MODEL_JSON_NAME), 'w', encoding='utf-8') as f:
        json.dump(to_model_json(artifacts, WEIGHTS_FILE_NAME), f)

    with open(os.path.join(model_dir, WEIGHTS_FILE_NAME), 'wb') as f:
        f.write(artifacts.weight_data or b"")

    return get_model_artifacts_info(artifacts)


class FileHandler(IOHandler):
    """
    Load from or save to the local filesystem.

    For loading, the path points at a model.json file. For saving, the path is
    either a model.json file or the directory that will hold it.
    """

    def __init__(self, path: str):
        self.path = _strip_file_scheme(path)

    def __repr__(self):
        return f"FileHandler(path={self.path!r})"

    def load(self) -> ModelArtifacts:
        return _read_model_dir(self.path)

    def save(self, artifacts: ModelArtifacts) -> SaveResult:
        model_dir = os.path.dirname(self.path) if self.path.endswith('.json') else self.path
        info = _write_model_dir(model_dir or os.curdir, artifacts)
        logger.info(f"Model saved to {model_dir}")
        return SaveResult(url=FILE_SCHEME + self.path, model_artifacts_info=info)


class CacheHandler(IOHandler):
    """
    Load from or save to the local model cache.

    Each cached model lives in <cache_dir>/models/<name>/ with its model.json,
    a single weights.bin shard and an info.json size summary.
    """

    def __init__(self, name: str, cache_dir: Optional[str] = None):
        self.name = check_cache_name(name)
        self.cache_dir = cache_dir or DEFAULT_CACHE_DIR

    def __repr__(self):
        return f"CacheHandler(name={self.name!r}, cache_dir={self.cache_dir!r})"

    @property
    def model_dir(self) -> str:
        return os.path.join(models_cache_dir(self.cache_dir), self.name)

    def load(self) -> ModelArtifacts:
        if not os.path.exists(os.path.join(self.model_dir, INFO_FILE_NAME)):
            raise FileNotFoundError(f"Cannot find model '{self.name}' in cache {self.cache_dir}")
        return _read_model_dir(os.path.join(self.model_dir, MODEL_JSON_NAME))

    def save(self, artifacts: ModelArtifacts) -> SaveResult:
        # Only complete models are ever visible under model_dir
        staging_dir = self.model_dir + ".tmp"
        previous_dir = self.model_dir + ".old"
        for leftover in (staging_dir, previous_dir):
            if os.path.exists(leftover):
                shutil.rmtree(leftover)

        try:
            info = _write_model_dir(staging_dir, artifacts)
            with open(os.path.join(staging_dir, INFO_FILE_NAME), 'w', encoding='utf-8') as f:
                json.dump(info.to_dict(), f, indent=2)

            if os.path.exists(self.model_dir):
                os.rename(self.model_dir, previous_dir)
            try:
                os.rename(staging_dir, self.model_dir)
            except OSError:
                if os.path.exists(previous_dir):
                    os.rename(previous_dir, self.model_dir)
                raise
        finally:
            if os.path.exists(staging_dir):
                shutil.rmtree(staging_dir, ignore_errors=True)

        if os.path.exists(previous_dir):
            shutil.rmtree(previous_dir, ignore_errors=True)

        return SaveResult(url=CACHE_SCHEME + self.name, model_artifacts_info=info)


def check_cache_name(name: str) -> str:
    """
    Validate a cache model name.

    Names map to a single directory under <cache_dir>/models, so they cannot
    be empty, '.', '..' or contain a path separator.

    Returns:
        The name unchanged
    """
    if not name or name in (os.curdir, os.pardir):
        raise ValueError(f"Invalid cache model name: '{name}'")
    if os.sep in name or (os.altsep and os.altsep in name):
        raise ValueError(f"Cache model name must not contain path separators: '{name}'")
    return name


def read_model_info(name: str, cache_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Read the info.json of one cached model.

    Raises:
        FileNotFoundError if the model is not cached, ValueError if info.json is corrupt
    """
    info_path = os.path.join(models_cache_dir(cache_dir), check_cache_name(name), INFO_FILE_NAME)
    if not os.path.isfile(info_path):
        raise FileNotFoundError(f"Cannot find model '{name}' in cache")
    with open(info_path, 'r', encoding='utf-8') as f:
        return json.load(f)


def models_cache_dir(cache_dir: Optional[str] = None) -> str:
    """Directory holding the cached models"""
    return os.path.join(cache_dir or DEFAULT_CACHE_DIR, "models")


def list_models(cache_dir: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
    """
    List the models saved in the cache.

    Args:
        cache_dir: Cache root, defaults to ~/.cache/graphcache

    Returns:
        Dictionary mapping cache URLs (cache://<name>) to their info.json contents
    """
    models_dir = models_cache_dir(cache_dir)
    if not os.path.exists(models_dir):
        return {}

    models = {}
    for item in sorted(os.listdir(models_dir)):
        if item.endswith((".tmp", ".old")) or not os.path.isfile(os.path.join(models_dir, item, INFO_FILE_NAME)):
            continue
        models[CACHE_SCHEME + item] = read_model_info(item, cache_dir)

    return models


def remove_model(url: str, cache_dir: Optional[str] = None) -> Dict[str, Any]:
    """
    Remove a model from the cache.

    Args:
        url: Cache URL (cache://<name>) or bare model name
        cache_dir: Cache root, defaults to ~/.cache/graphcache

    Returns:
        The info.json contents of the removed model
    """
    name = url[len(CACHE_SCHEME):] if url.startswith(CACHE_SCHEME) else url
    info = read_model_info(name, cache_dir)
    model_dir = os.path.join(models_cache_dir(cache_dir), name)

    shutil.rmtree(model_dir)
    logger.info(f"Removed model from cache: {model_dir}")
    return info


def get_load_handlers(url: str, load_options: Optional[Dict[str, Any]] = None) -> List[IOHandler]:
    """
    Find the handlers able to load a URL.

    Args:
        url: cache://, http(s)://, file:// URL or plain filesystem path
        load_options: fetch_func, request_init, weight_path_prefix, cache_dir, show_progress

    Returns:
        List of matching handlers, empty for unknown schemes
    """
    load_options = load_options or {}

    if url.startswith(CACHE_SCHEME):
        return [CacheHandler(url[len(CACHE_SCHEME):], load_options.get("cache_dir"))]
    if url.lower().startswith(HTTP_SCHEMES):
        return [HTTPHandler(
            url,
            fetch_func=load_options.get("fetch_func"),
            request_init=load_options.get("request_init"),
            weight_path_prefix=load_options.get("weight_path_prefix"),
            show_progress=load_options.get("show_progress", False),
        )]
    if url.startswith(FILE_SCHEME) or "://" not in url:
        return [FileHandler(url)]
    return []


def get_save_handlers(url: str, cache_dir: Optional[str] = None) -> List[IOHandler]:
    """Find the handlers able to save to a URL"""
    if url.startswith(CACHE_SCHEME):
        return [CacheHandler(url[len(CACHE_SCHEME):], cache_dir)]
    if url.startswith(FILE_SCHEME) or "://" not in url:
        return [FileHandler(url)]
    return []
