"""
Model artifacts: the JSON manifest plus the concatenated binary weight data
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Bytes per element for every dtype that may appear on disk
DTYPE_SIZES = {
    "float32": 4,
    "int32": 4,
    "bool": 1,
    "float16": 2,
    "uint8": 1,
    "uint16": 2,
}

# Dtypes a decoded tensor can end up with
TENSOR_DTYPES = {
    "float32": np.float32,
    "int32": np.int32,
    "bool": np.bool_,
}

# Weight data is little-endian
_WIRE_DTYPES = {
    "float32": "<f4",
    "int32": "<i4",
}

WEIGHTS_FILE_NAME = "weights.bin"


@dataclass
class ModelArtifacts:
    """Everything needed to build a graph model"""
    model_topology: Optional[Dict[str, Any]] = None
    weight_specs: List[Dict[str, Any]] = field(default_factory=list)
    weight_data: Optional[bytes] = None
    format: Optional[str] = None
    generated_by: Optional[str] = None
    converted_by: Optional[str] = None
    signature: Optional[Dict[str, Any]] = None
    user_defined_metadata: Optional[Dict[str, Any]] = None


@dataclass
class ModelArtifactsInfo:
    """Size summary written next to a saved model"""
    date_saved: str
    model_topology_type: str
    model_topology_bytes: int = 0
    weight_specs_bytes: int = 0
    weight_data_bytes: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date_saved": self.date_saved,
            "model_topology_type": self.model_topology_type,
            "model_topology_bytes": self.model_topology_bytes,
            "weight_specs_bytes": self.weight_specs_bytes,
            "weight_data_bytes": self.weight_data_bytes,
        }


def _json_bytes(obj: Any) -> int:
    return len(json.dumps(obj).encode("utf-8")) if obj is not None else 0


def get_model_artifacts_info(artifacts: ModelArtifacts) -> ModelArtifactsInfo:
    """
    Summarize the byte sizes of a set of model artifacts.

    Args:
        artifacts: Artifacts to summarize

    Returns:
        ModelArtifactsInfo with the current UTC time as the save date
    """
    return ModelArtifactsInfo(
        date_saved=datetime.now(timezone.utc).isoformat(),
        model_topology_type="JSON",
        model_topology_bytes=_json_bytes(artifacts.model_topology),
        weight_specs_bytes=_json_bytes(artifacts.weight_specs),
        weight_data_bytes=len(artifacts.weight_data or b""),
    )


def weight_byte_size(spec: Dict[str, Any]) -> int:
    """Number of bytes a single weight occupies in the weight data"""
    quantization = spec.get("quantization")
    dtype = quantization["dtype"] if quantization else spec.get("dtype", "float32")
    if dtype not in DTYPE_SIZES:
        raise ValueError(f"Unsupported weight dtype '{dtype}' for weight {spec.get('name')}")
    count = int(np.prod(spec.get("shape", []), dtype=np.int64))
    return count * DTYPE_SIZES[dtype]


def manifest_byte_size(weight_specs: List[Dict[str, Any]]) -> int:
    """Total number of bytes described by a list of weight specs"""
    return sum(weight_byte_size(spec) for spec in weight_specs)


def _decode_weight(buffer: bytes, spec: Dict[str, Any]) -> np.ndarray:
    shape = spec.get("shape", [])
    dtype = spec.get("dtype", "float32")
    quantization = spec.get("quantization")

    if dtype not in TENSOR_DTYPES:
        raise ValueError(f"Unsupported tensor dtype '{dtype}' for weight {spec.get('name')}")

    if quantization:
        q_dtype = quantization["dtype"]
        if q_dtype == "float16":
            values = np.frombuffer(buffer, dtype="<f2").astype(np.float32)
        elif q_dtype in ("uint8", "uint16"):
            raw = np.frombuffer(buffer, dtype="<u1" if q_dtype == "uint8" else "<u2")
            scale = np.float32(quantization.get("scale", 1.0))
            minimum = np.float32(quantization.get("min", 0.0))
            values = raw.astype(np.float32) * scale + minimum
        else:
            raise ValueError(f"Unsupported quantization dtype '{q_dtype}' for weight {spec.get('name')}")
        values = values.astype(TENSOR_DTYPES[dtype])
    elif dtype == "bool":
        values = np.frombuffer(buffer, dtype=np.uint8).astype(np.bool_)
    else:
        values = np.frombuffer(buffer, dtype=_WIRE_DTYPES[dtype]).astype(TENSOR_DTYPES[dtype])

    return values.reshape(shape)


def decode_weights(weight_data: bytes, weight_specs: List[Dict[str, Any]]) -> Dict[str, np.ndarray]:
    """
    Split concatenated weight data into named tensors.

    Args:
        weight_data: Concatenated binary data of all weight shards
        weight_specs: Weight specs in the same order as the data

    Returns:
        Dictionary mapping weight names to numpy arrays
    """
    expected = manifest_byte_size(weight_specs)
    if expected > len(weight_data):
        raise ValueError(f"Weight data too short: manifest describes {expected} bytes, have {len(weight_data)}")
    if expected < len(weight_data):
        logger.warning(f"Weight data has {len(weight_data) - expected} trailing bytes not described by the manifest")

    weights = {}
    offset = 0
    for spec in weight_specs:
        size = weight_byte_size(spec)
        weights[spec["name"]] = _decode_weight(weight_data[offset:offset + size], spec)
        offset += size

    return weights


def weight_specs_from_manifest(model_json: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Flatten the weight specs of every manifest group, in manifest order"""
    specs = []
    for group in model_json.get("weightsManifest") or []:
        specs.extend(group.get("weights", []))
    return specs


def parse_model_json(model_json: Dict[str, Any], weight_data: Optional[bytes]) -> ModelArtifacts:
    """
    Build artifacts from a model.json document and the weight data it describes.

    Args:
        model_json: Parsed model.json
        weight_data: Concatenated shard data, or None when the model has no weights

    Returns:
        ModelArtifacts
    """
    if "modelTopology" not in model_json:
        raise ValueError("model.json is missing 'modelTopology'")

    return ModelArtifacts(
        model_topology=model_json["modelTopology"],
        weight_specs=weight_specs_from_manifest(model_json),
        weight_data=weight_data,
        format=model_json.get("format"),
        generated_by=model_json.get("generatedBy"),
        converted_by=model_json.get("convertedBy"),
        signature=model_json.get("signature"),
        user_defined_metadata=model_json.get("userDefinedMetadata"),
    )


def to_model_json(artifacts: ModelArtifacts, weights_path: str = WEIGHTS_FILE_NAME) -> Dict[str, Any]:
    """
    Render artifacts as a model.json document whose weights live in a single shard.

    Args:
        artifacts: Artifacts to render
        weights_path: Shard path written into the weights manifest

    Returns:
        Dictionary ready to be serialized as JSON
    """
    model_json = {
        "modelTopology": artifacts.model_topology,
        "weightsManifest": [{"paths": [weights_path], "weights": artifacts.weight_specs}],
    }
    optional = {
        "format": artifacts.format,
        "generatedBy": artifacts.generated_by,
        "convertedBy": artifacts.converted_by,
        "signature": artifacts.signature,
        "userDefinedMetadata": artifacts.user_defined_metadata,
    }
    model_json.update({k: v for k, v in optional.items() if v is not None})
    return model_json
