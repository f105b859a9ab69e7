"""
Shared fixtures for graphcache tests
"""

import os
import sys
import json

import numpy as np
import pytest

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from graphcache.config import LoaderConfig
from graphcache.models import model_loader


TOPOLOGY = {"node": [{"name": "input", "op": "Placeholder"}, {"name": "out", "op": "MatMul"}]}

WEIGHT_W = np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32)
WEIGHT_B = np.array([7, -8], dtype=np.int32)


def make_model_json(paths):
    return {
        "format": "graph-model",
        "generatedBy": "2.10.0",
        "convertedBy": "converter 3.18.0",
        "modelTopology": TOPOLOGY,
        "weightsManifest": [{
            "paths": paths,
            "weights": [
                {"name": "w", "shape": [2, 2], "dtype": "float32"},
                {"name": "b", "shape": [2], "dtype": "int32"},
            ],
        }],
    }


SHARD_1 = WEIGHT_W.astype('<f4').tobytes()
SHARD_2 = WEIGHT_B.astype('<i4').tobytes()
WEIGHT_BYTES = len(SHARD_1) + len(SHARD_2)


@pytest.fixture
def model_dir(tmp_path):
    """Directory holding tiny.json with two weight shards"""
    directory = tmp_path / "models"
    directory.mkdir()
    (directory / "tiny.json").write_text(json.dumps(make_model_json(["tiny-shard1of2.bin", "tiny-shard2of2.bin"])))
    (directory / "tiny-shard1of2.bin").write_bytes(SHARD_1)
    (directory / "tiny-shard2of2.bin").write_bytes(SHARD_2)
    return directory


@pytest.fixture
def cache_dir(tmp_path):
    return str(tmp_path / "cache")


@pytest.fixture
def loader(tmp_path, cache_dir, model_dir):
    """Point the loader at temporary directories and restore its options afterwards"""
    saved_options = dict(model_loader.options)
    defs_path = tmp_path / "defs.json"
    defs_path.write_text(json.dumps({"tiny": WEIGHT_BYTES, "other": 1000}))

    model_loader.set_model_load_options(LoaderConfig(
        cache_models=True,
        debug=True,
        model_base_path=str(model_dir),
        cache_dir=cache_dir,
        model_defs_path=str(defs_path),
    ))
    model_loader.model_stats.clear()

    yield model_loader

    model_loader.options.clear()
    model_loader.options.update(saved_options)
    model_loader.model_stats.clear()
