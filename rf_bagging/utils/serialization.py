"""
Model Serialization

Two encodings of the models' ``to_dict()`` trees:

- JSON   : human-readable strict JSON (no NaN or Infinity tokens); numpy
           arrays are tagged objects and floats keep their exact value
           through ``repr``.
- Binary : a joblib pickle of the same tree behind a fixed 16-byte header

Binary header layout:

    offset 0  : magic b"RFBG"
    offset 4  : format version (u8)
    offset 5  : reserved (3 bytes, zero)
    offset 8  : payload length (u64, little-endian)

Both formats restore models whose predictions are bit-identical to the
in-memory model they were written from.
"""

import io
import json
import logging
import os
import struct
import joblib
import numpy as np
from typing import Any, Dict

from ..models.decision_tree import DecisionTree, DecisionTreeHyperparameters
from ..models.exceptions import ModelFormatError
from ..models.one_vs_rest import OneVsRestWrapper
from ..models.random_forest import ForestHyperparameters, RandomForest

logger = logging.getLogger(__name__)

BINARY_MAGIC = b"RFBG"
BINARY_VERSION = 1
HEADER_SIZE = 16

MODEL_REGISTRY = {
    'DecisionTreeHyperparameters': DecisionTreeHyperparameters,
    'DecisionTree': DecisionTree,
    'ForestHyperparameters': ForestHyperparameters,
    'RandomForest': RandomForest,
    'OneVsRestWrapper': OneVsRestWrapper,
}

# 配列として保存できる dtype の種類（bool, 符号付き/なし整数, 浮動小数点）
_ARRAY_KINDS = "biuf"


def model_from_dict(data: Dict[str, Any]) -> Any:
    """
    Rebuild a model from its ``to_dict()`` form using the ``model_type`` tag
    """
    if not isinstance(data, dict):
        raise ModelFormatError(f"Expected a model mapping, got {type(data).__name__}")

    model_type = data.get('model_type')
    if model_type not in MODEL_REGISTRY:
        raise ModelFormatError(f"Unknown model type: {model_type!r}")

    return MODEL_REGISTRY[model_type].from_dict(data)


# -------------------------
# JSON
# -------------------------

def _to_json_safe(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        if value.dtype.kind not in _ARRAY_KINDS:
            raise ModelFormatError(f"Cannot serialize array of dtype {value.dtype}")
        return {
            "__ndarray__": value.dtype.str,
            "shape": list(value.shape),
            "data": value.ravel().tolist(),
        }
    if isinstance(value, dict):
        return {str(k): _to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json_safe(v) for v in value]
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def _decode_json_array(obj: Dict[str, Any]) -> Any:
    if "__ndarray__" not in obj:
        return obj
    try:
        dtype = np.dtype(obj["__ndarray__"])
        return np.asarray(obj["data"], dtype=dtype).reshape(obj["shape"])
    except (KeyError, TypeError, ValueError) as e:
        raise ModelFormatError(f"Invalid array entry: {e}") from e


def dumps_json(model: Any) -> str:
    """
    Serialize a model to a JSON string
    """
    data = _to_json_safe(model.to_dict())
    try:
        text = json.dumps(data, allow_nan=False)
    except ValueError as e:
        raise ModelFormatError(f"Cannot encode {type(model).__name__} as JSON: {e}") from e
    logger.debug("Encoded %s as JSON (%d chars)", type(model).__name__, len(text))
    return text


def loads_json(text: str) -> Any:
    """
    Restore a model from ``dumps_json`` output
    """
    try:
        data = json.loads(text, object_hook=_decode_json_array)
    except json.JSONDecodeError as e:
        raise ModelFormatError(f"Invalid JSON model: {e}") from e
    return model_from_dict(data)


# -------------------------
# Binary
# -------------------------

def dumps_binary(model: Any) -> bytes:
    """
    Serialize a model to the binary format

    The payload is the model's ``to_dict()`` tree written with ``joblib.dump``.
    """
    buffer = io.BytesIO()
    joblib.dump(model.to_dict(), buffer)
    payload = buffer.getvalue()

    header = bytearray(HEADER_SIZE)
    header[0:4] = BINARY_MAGIC
    header[4] = BINARY_VERSION
    struct.pack_into("<Q", header, 8, len(payload))

    logger.debug("Encoded %s as binary (%d bytes)", type(model).__name__, HEADER_SIZE + len(payload))
    return bytes(header) + payload


def loads_binary(data: bytes) -> Any:
    """
    Restore a model from ``dumps_binary`` output

    The payload is unpickled by ``joblib.load``; only load files from trusted
    sources.
    """
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        raise ModelFormatError(f"Binary model too short: {len(data)} bytes")
    if data[0:4] != BINARY_MAGIC:
        raise ModelFormatError(f"Bad magic: {data[0:4]!r}")
    if data[4] != BINARY_VERSION:
        raise ModelFormatError(f"Unsupported format version: {data[4]}")

    (length,) = struct.unpack_from("<Q", data, 8)
    if HEADER_SIZE + length != len(data):
        raise ModelFormatError(
            f"Payload length mismatch: header says {length}, found {len(data) - HEADER_SIZE}"
        )

    try:
        value = joblib.load(io.BytesIO(data[HEADER_SIZE:]))
    except Exception as e:
        raise ModelFormatError(f"Invalid binary payload: {e}") from e

    return model_from_dict(value)


# -------------------------
# Files
# -------------------------

def save_model(model: Any, path: str) -> str:
    """
    Save a model; ``.json`` paths are written as JSON, anything else as binary

    Returns:
    --------
    path : str
        Path of the written file
    """
    if os.path.splitext(path)[1].lower() == ".json":
        with open(path, 'w', encoding='utf-8') as f:
            f.write(dumps_json(model))
    else:
        with open(path, 'wb') as f:
            f.write(dumps_binary(model))

    logger.info("Saved %s to %s", type(model).__name__, path)
    return path


def load_model(path: str) -> Any:
    """
    Load a model written by ``save_model``
    """
    if os.path.splitext(path)[1].lower() == ".json":
        with open(path, 'r', encoding='utf-8') as f:
            return loads_json(f.read())

    with open(path, 'rb') as f:
        return loads_binary(f.read())
