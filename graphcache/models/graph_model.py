"""
Graph model container: topology plus decoded weights
"""

import logging
from typing import Dict, Any, Optional, Union

import numpy as np

from graphcache.models.artifacts import ModelArtifacts, decode_weights
from graphcache.models.io_handlers import (
    IOHandler,
    HTTPHandler,
    SaveResult,
    get_load_handlers,
    get_save_handlers,
)

logger = logging.getLogger(__name__)


class GraphModel:
    """
    An inference graph loaded from a set of model artifacts.

    Construction only records where the model comes from. Call load(), or
    find_io_handler() followed by handler.load() and load_sync(), to populate it.
    """

    def __init__(self, model_url: Union[str, IOHandler], load_options: Optional[Dict[str, Any]] = None):
        """
        Initialize the model.

        Args:
            model_url: URL or path of the model.json, a cache:// URL, or an IO handler
            load_options: Options forwarded to the IO handler (fetch_func, request_init, cache_dir, ...)
        """
        self.model_url = model_url
        self.load_options = load_options or {}
        self.handler: Optional[IOHandler] = None
        self.artifacts: Optional[ModelArtifacts] = None
        self.weights: Dict[str, np.ndarray] = {}

    def __repr__(self):
        return f"GraphModel(model_url={self.model_url!r}, loaded={self.loaded})"

    @property
    def loaded(self) -> bool:
        return self.artifacts is not None

    @property
    def weight_bytes(self) -> int:
        """Byte length of the weight data held by the model"""
        if self.artifacts is None or self.artifacts.weight_data is None:
            return 0
        return len(self.artifacts.weight_data)

    def find_io_handler(self) -> IOHandler:
        """
        Decide which IO handler loads this model and store it on self.handler.

        Returns:
            The selected handler
        """
        if isinstance(self.model_url, IOHandler):
            self.handler = self.model_url
            return self.handler

        if self.load_options.get("request_init") is not None and self.model_url.lower().startswith(("http://", "https://")):
            self.handler = HTTPHandler(
                self.model_url,
                fetch_func=self.load_options.get("fetch_func"),
                request_init=self.load_options.get("request_init"),
                weight_path_prefix=self.load_options.get("weight_path_prefix"),
                show_progress=self.load_options.get("show_progress", False),
            )
            return self.handler

        handlers = get_load_handlers(self.model_url, self.load_options)
        if not handlers:
            # Unknown schemes fall through to plain HTTP
            handlers = [HTTPHandler(self.model_url, fetch_func=self.load_options.get("fetch_func"))]
        elif len(handlers) > 1:
            raise ValueError(f"Found more than one ({len(handlers)}) load handlers for URL '{self.model_url}'")

        self.handler = handlers[0]
        return self.handler

    def load(self) -> bool:
        """
        Find an IO handler, load the artifacts and build the model.

        Returns:
            True once the model is loaded
        """
        self.find_io_handler()
        artifacts = self.handler.load()
        return self.load_sync(artifacts)

    def load_sync(self, artifacts: ModelArtifacts) -> bool:
        """
        Build the model from already loaded artifacts.

        Args:
            artifacts: Artifacts returned by an IO handler

        Returns:
            True once the model is loaded
        """
        if artifacts is None or artifacts.model_topology is None:
            raise ValueError(f"Cannot build model {self.model_url}: artifacts have no model topology")

        self.weights = decode_weights(artifacts.weight_data or b"", artifacts.weight_specs)
        self.artifacts = artifacts
        logger.debug(f"Built model {self.model_url} with {len(self.weights)} weights ({self.weight_bytes} bytes)")
        return True

    def save(self, url: Union[str, IOHandler]) -> SaveResult:
        """
        Save the model through the handler matching the given URL.

        Args:
            url: cache://<name>, file:// URL, directory path or an IO handler

        Returns:
            SaveResult describing what was written
        """
        if self.artifacts is None:
            raise RuntimeError(f"Cannot save model {self.model_url} before it is loaded")

        if isinstance(url, IOHandler):
            handler = url
        else:
            handlers = get_save_handlers(url, self.load_options.get("cache_dir"))
            if not handlers:
                raise ValueError(f"Cannot find any save handlers for URL '{url}'")
            if len(handlers) > 1:
                raise ValueError(f"Found more than one ({len(handlers)}) save handlers for URL '{url}'")
            handler = handlers[0]

        return handler.save(self.artifacts)
