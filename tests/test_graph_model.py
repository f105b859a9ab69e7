"""
Unit tests for the graph model container
"""

from unittest.mock import MagicMock

import numpy as np
import pytest

from graphcache.models import GraphModel, ModelArtifacts
from graphcache.models.io_handlers import CacheHandler, FileHandler, HTTPHandler, IOHandler

from conftest import WEIGHT_B, WEIGHT_BYTES


def test_find_io_handler(model_dir, cache_dir):
    model = GraphModel(str(model_dir / "tiny.json"))
    assert isinstance(model.find_io_handler(), FileHandler)
    assert model.handler is not None

    model = GraphModel("cache://tiny", {"cache_dir": cache_dir})
    assert isinstance(model.find_io_handler(), CacheHandler)

    model = GraphModel("https://host/m.json", {"request_init": {"headers": {"X-Token": "t"}}})
    handler = model.find_io_handler()
    assert isinstance(handler, HTTPHandler)
    assert handler.request_init == {"headers": {"X-Token": "t"}}

    # Unknown schemes fall through to HTTP
    assert isinstance(GraphModel("s3://bucket/m.json").find_io_handler(), HTTPHandler)


def test_custom_io_handler(model_dir):
    """Test that an IO handler can be passed instead of a URL"""
    handler = FileHandler(str(model_dir / "tiny.json"))
    model = GraphModel(handler)

    assert model.load() is True
    assert model.handler is handler
    assert model.loaded
    assert model.weight_bytes == WEIGHT_BYTES
    np.testing.assert_array_equal(model.weights["b"], WEIGHT_B)


def test_load_sync_requires_topology():
    model = GraphModel("unused.json")
    with pytest.raises(ValueError):
        model.load_sync(ModelArtifacts(model_topology=None))
    assert not model.loaded


def test_load_sync_without_weights():
    model = GraphModel("unused.json")
    model.load_sync(ModelArtifacts(model_topology={"node": []}))

    assert model.loaded
    assert model.weights == {}
    assert model.weight_bytes == 0


def test_save_requires_loaded_model():
    with pytest.raises(RuntimeError):
        GraphModel("unused.json").save("cache://x")


def test_save_through_url_and_handler(model_dir, cache_dir):
    model = GraphModel(str(model_dir / "tiny.json"), {"cache_dir": cache_dir})
    model.load()

    result = model.save("cache://tiny")
    assert result.url == "cache://tiny"
    assert result.model_artifacts_info.weight_data_bytes == WEIGHT_BYTES

    handler = MagicMock(spec=IOHandler)
    model.save(handler)
    handler.save.assert_called_once_with(model.artifacts)

    with pytest.raises(ValueError):
        model.save("https://host/m.json")
