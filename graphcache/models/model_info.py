"""
ModelInfo class for storing per-model load statistics
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass
class ModelInfo:
    """Byte-size statistics gathered while loading a model"""
    name: str
    in_cache: bool = False
    size_desired: int = 0  # Expected weight size from the model definitions
    size_from_manifest: int = 0  # Weight bytes returned by the IO handler
    size_loaded_weights: int = 0  # Weight bytes held by the model after building it

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
