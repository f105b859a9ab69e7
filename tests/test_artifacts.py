"""
Unit tests for model artifacts and weight decoding
"""

import numpy as np
import pytest

from graphcache.models.artifacts import (
    ModelArtifacts,
    decode_weights,
    get_model_artifacts_info,
    manifest_byte_size,
    parse_model_json,
    to_model_json,
    weight_byte_size,
)

from conftest import make_model_json, SHARD_1, SHARD_2, TOPOLOGY, WEIGHT_B, WEIGHT_BYTES, WEIGHT_W


def test_weight_byte_sizes():
    """Test byte sizes for plain and quantized weights"""
    assert weight_byte_size({"name": "a", "shape": [3, 4], "dtype": "float32"}) == 48
    assert weight_byte_size({"name": "b", "shape": [5], "dtype": "bool"}) == 5
    assert weight_byte_size({"name": "c", "shape": [], "dtype": "int32"}) == 4
    assert weight_byte_size({
        "name": "d", "shape": [10], "dtype": "float32",
        "quantization": {"dtype": "uint16", "scale": 0.1, "min": 0.0},
    }) == 20

    with pytest.raises(ValueError):
        weight_byte_size({"name": "e", "shape": [1], "dtype": "string"})


def test_decode_plain_weights():
    specs = make_model_json([])["weightsManifest"][0]["weights"]
    assert manifest_byte_size(specs) == WEIGHT_BYTES

    weights = decode_weights(SHARD_1 + SHARD_2, specs)

    np.testing.assert_array_equal(weights["w"], WEIGHT_W)
    np.testing.assert_array_equal(weights["b"], WEIGHT_B)
    assert weights["w"].dtype == np.float32
    assert weights["b"].dtype == np.int32


def test_decode_quantized_weights():
    """Test dequantization of uint8 and float16 weights"""
    specs = [
        {"name": "q", "shape": [2], "dtype": "float32",
         "quantization": {"dtype": "uint8", "scale": 0.5, "min": -1.0}},
        {"name": "h", "shape": [2], "dtype": "float32", "quantization": {"dtype": "float16"}},
        {"name": "flag", "shape": [3], "dtype": "bool"},
    ]
    data = bytes([0, 255]) + np.array([1.5, -2.0], dtype='<f2').tobytes() + bytes([1, 0, 1])

    weights = decode_weights(data, specs)

    np.testing.assert_allclose(weights["q"], [-1.0, 126.5])
    np.testing.assert_allclose(weights["h"], [1.5, -2.0])
    assert weights["flag"].tolist() == [True, False, True]


def test_decode_short_buffer_raises():
    specs = make_model_json([])["weightsManifest"][0]["weights"]
    with pytest.raises(ValueError, match="too short"):
        decode_weights(SHARD_1, specs)


def test_decode_trailing_bytes_warns(caplog):
    specs = make_model_json([])["weightsManifest"][0]["weights"]

    weights = decode_weights(SHARD_1 + SHARD_2 + b"\x00\x00", specs)

    np.testing.assert_array_equal(weights["b"], WEIGHT_B)
    assert "2 trailing bytes" in caplog.text


def test_parse_and_render_model_json():
    """Test converting between model.json documents and artifacts"""
    artifacts = parse_model_json(make_model_json(["a.bin"]), SHARD_1 + SHARD_2)

    assert artifacts.model_topology == TOPOLOGY
    assert artifacts.format == "graph-model"
    assert [spec["name"] for spec in artifacts.weight_specs] == ["w", "b"]

    rendered = to_model_json(artifacts)
    assert rendered["weightsManifest"][0]["paths"] == ["weights.bin"]
    assert rendered["generatedBy"] == "2.10.0"
    assert "signature" not in rendered

    with pytest.raises(ValueError):
        parse_model_json({"weightsManifest": []}, None)


def test_model_artifacts_info():
    artifacts = ModelArtifacts(model_topology=TOPOLOGY, weight_specs=[], weight_data=b"1234")

    info = get_model_artifacts_info(artifacts)

    assert info.model_topology_type == "JSON"
    assert info.weight_data_bytes == 4
    assert info.model_topology_bytes > 0
    assert info.weight_specs_bytes == 2
    assert set(info.to_dict()) == {
        "date_saved", "model_topology_type", "model_topology_bytes", "weight_specs_bytes", "weight_data_bytes",
    }
