"""
JSON model persistence.

Linear models use a flat row-major matrix with explicit sizes:
    {"kind": "linear", "Rows": W, "Cols": W, "Data": [...]}
A document with Rows/Cols/Data and no "kind" is also read as linear.

Network models are an ordered list of layer descriptors:
    {"kind": "network", "layers": [
        {"kind": "dense", "in": W, "out": 300, "weights": [...], "biases": [...]},
        {"kind": "tanh"},
        ...
    ]}
Dense weights are row-major out x in, as stored by torch.nn.Linear.
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

import numpy as np
import torch
import torch.nn as nn

from .errors import FileAccessError, FormatError
from .models import ACTIVATIONS, LinearModel, Model, NetworkModel, activation_name

logger = logging.getLogger(__name__)


def model_to_dict(model: Model) -> dict[str, Any]:
    """JSON-ready description of a model."""
    if isinstance(model, LinearModel):
        rows, cols = model.matrix.shape
        return {
            "kind": "linear",
            "Rows": rows,
            "Cols": cols,
            "Data": model.matrix.reshape(-1).tolist(),
        }

    if isinstance(model, NetworkModel):
        layers = []
        for module in model.net:
            if isinstance(module, nn.Linear):
                layers.append({
                    "kind": "dense",
                    "in": module.in_features,
                    "out": module.out_features,
                    "weights": module.weight.detach().reshape(-1).tolist(),
                    "biases": module.bias.detach().tolist(),
                })
            else:
                layers.append({"kind": activation_name(module)})
        return {"kind": "network", "layers": layers}

    raise TypeError(f"cannot serialize {type(model).__name__}")


def _numbers(value: Any, count: int, what: str) -> np.ndarray:
    if not isinstance(value, list) or len(value) != count:
        got = len(value) if isinstance(value, list) else type(value).__name__
        raise FormatError(f"{what}: expected {count} numbers, got {got}")
    try:
        numbers = np.array(value, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise FormatError(f"{what}: non-numeric entry ({e})") from e
    if numbers.ndim != 1:
        raise FormatError(f"{what}: expected a flat list of numbers")
    if not np.isfinite(numbers).all():
        raise FormatError(f"{what}: non-finite entry")
    return numbers


def _positive_int(doc: dict, key: str, what: str) -> int:
    value = doc.get(key)
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise FormatError(f"{what}: {key!r} must be a positive integer, got {value!r}")
    return value


def _linear_from_dict(doc: dict) -> LinearModel:
    rows = _positive_int(doc, "Rows", "linear model")
    cols = _positive_int(doc, "Cols", "linear model")
    if rows != cols:
        raise FormatError(f"linear model must be square, got {rows}x{cols}")
    data = _numbers(doc.get("Data"), rows * cols, "linear model data")
    return LinearModel(data.reshape(rows, cols))


def _network_from_dict(doc: dict) -> NetworkModel:
    specs = doc.get("layers")
    if not isinstance(specs, list) or not specs:
        raise FormatError("network model needs a non-empty 'layers' list")

    layers = []
    for i, spec in enumerate(specs):
        if not isinstance(spec, dict):
            raise FormatError(f"layer {i}: expected an object")
        kind = spec.get("kind")
        if kind == "dense":
            n_in = _positive_int(spec, "in", f"layer {i}")
            n_out = _positive_int(spec, "out", f"layer {i}")
            weights = _numbers(spec.get("weights"), n_in * n_out, f"layer {i} weights")
            biases = _numbers(spec.get("biases"), n_out, f"layer {i} biases")
            layer = nn.Linear(n_in, n_out)
            with torch.no_grad():
                layer.weight.copy_(torch.as_tensor(weights.reshape(n_out, n_in)))
                layer.bias.copy_(torch.as_tensor(biases))
            layers.append(layer)
        elif kind in ACTIVATIONS:
            layers.append(ACTIVATIONS[kind]())
        else:
            raise FormatError(f"layer {i}: unknown layer kind {kind!r}")

    dense = [m for m in layers if isinstance(m, nn.Linear)]
    for prev, nxt in zip(dense[:-1], dense[1:]):
        if prev.out_features != nxt.in_features:
            raise FormatError(
                f"layer sizes do not chain ({prev.out_features} -> {nxt.in_features})"
            )
    try:
        return NetworkModel(layers=layers).freeze()
    except ValueError as e:
        raise FormatError(str(e)) from e


def model_from_dict(doc: Any) -> Model:
    """Rebuild a model from its JSON description."""
    if not isinstance(doc, dict):
        raise FormatError("model document must be a JSON object")

    kind = doc.get("kind")
    if kind == "linear" or (kind is None and "Data" in doc):
        return _linear_from_dict(doc)
    if kind == "network":
        return _network_from_dict(doc)
    raise FormatError(f"unknown model kind {kind!r}")


def serialize(model: Model) -> bytes:
    return json.dumps(model_to_dict(model)).encode("utf-8")


def deserialize(data: bytes) -> Model:
    """
    Parse a serialized model.

    Raises:
        FormatError: invalid JSON or an inconsistent model description
    """
    try:
        doc = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FormatError(f"model is not valid JSON: {e}") from e
    return model_from_dict(doc)


def save_model(path: Union[str, Path], model: Model):
    """Write a model to a JSON file."""
    try:
        Path(path).write_bytes(serialize(model))
    except OSError as e:
        raise FileAccessError(f"failed to save {path}: {e}") from e
    logger.info("Saved %s model to %s", model.kind, path)


def load_model(path: Union[str, Path]) -> Model:
    """Read a model written by save_model()."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise FileAccessError(f"failed to read {path}: {e}") from e
    return deserialize(data)
