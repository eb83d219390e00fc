"""
Fitted window transforms.

- LinearModel: W x W matrix, apply(v) = M @ v
- NetworkModel: dense layers with tanh between them, none after the last

Both expose apply(vector) -> vector and have no side effects once fitted.
"""

from typing import Protocol, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F


class Model(Protocol):
    """A fitted feature-vector transform."""
    kind: str

    @property
    def input_size(self) -> int: ...

    def apply(self, vector: np.ndarray) -> np.ndarray: ...


class LinearModel:
    """Single linear map applied identically to every window."""

    kind = "linear"

    def __init__(self, matrix: np.ndarray):
        matrix = np.array(matrix, dtype=np.float64)
        if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
            raise ValueError(f"linear model needs a square matrix, got shape {matrix.shape}")
        matrix.setflags(write=False)
        self.matrix = matrix

    @property
    def input_size(self) -> int:
        return self.matrix.shape[1]

    def apply(self, vector: np.ndarray) -> np.ndarray:
        return self.matrix @ np.asarray(vector, dtype=np.float64)


ACTIVATIONS = {
    "tanh": nn.Tanh,
}


def activation_name(module: nn.Module) -> str:
    """Persisted name of a pointwise activation module."""
    for name, cls in ACTIVATIONS.items():
        if isinstance(module, cls):
            return name
    raise ValueError(f"unsupported activation: {type(module).__name__}")


class NetworkModel:
    """
    Layered nonlinear window transform.

    Wraps an nn.Sequential laid out as Linear -> Tanh -> ... -> Linear,
    with sizes taken from layer_sizes (e.g. W -> 300 -> 500 -> W). The
    optimizer trains `net` directly; apply() is the inference entry point.

    Example:
        >>> net = NetworkModel([1024, 300, 500, 1024])
        >>> out = net.apply(np.zeros(1024))
    """

    kind = "network"

    def __init__(self, layer_sizes: Sequence[int] | None = None, layers: Sequence[nn.Module] | None = None):
        if layers is None:
            if layer_sizes is None or len(layer_sizes) < 2:
                raise ValueError("need at least an input and an output size")
            layers = []
            for i, (n_in, n_out) in enumerate(zip(layer_sizes[:-1], layer_sizes[1:])):
                if i > 0:
                    layers.append(nn.Tanh())
                layers.append(nn.Linear(n_in, n_out))
        self.net = nn.Sequential(*layers)

        dense = self.dense_layers
        if not dense:
            raise ValueError("network has no dense layers")
        if dense[0].in_features != dense[-1].out_features:
            raise ValueError(
                f"input size {dense[0].in_features} != output size {dense[-1].out_features}"
            )

    @property
    def dense_layers(self) -> list[nn.Linear]:
        return [m for m in self.net if isinstance(m, nn.Linear)]

    @property
    def input_size(self) -> int:
        return self.dense_layers[0].in_features

    @property
    def layer_sizes(self) -> list[int]:
        dense = self.dense_layers
        return [dense[0].in_features] + [layer.out_features for layer in dense]

    def freeze(self) -> "NetworkModel":
        """Stop parameter updates; the model is read-only afterwards."""
        self.net.eval()
        for p in self.net.parameters():
            p.requires_grad_(False)
        return self

    def apply(self, vector: np.ndarray) -> np.ndarray:
        """Forward pass on one feature vector."""
        dtype = next(self.net.parameters()).dtype
        x = torch.as_tensor(np.asarray(vector), dtype=dtype)
        with torch.no_grad():
            y = self.net(x)
        return y.numpy().astype(np.float64)

    def parameter_list(self) -> list[torch.Tensor]:
        """Detached copies of the dense weights and biases, in layer order."""
        return [p.detach().clone() for p in self.net.parameters()]

    def load_parameter_list(self, params: Sequence[torch.Tensor]):
        """Write parameters produced by parameter_list() (or an optimizer) back in place."""
        with torch.no_grad():
            for p, value in zip(self.net.parameters(), params):
                p.copy_(value)

    def forward_with(self, params: Sequence[torch.Tensor], x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass using an explicit parameter list.

        Does not touch the module's own parameters, so it can run from
        several threads at once.
        """
        it = iter(params)
        for module in self.net:
            if isinstance(module, nn.Linear):
                x = F.linear(x, next(it), next(it))
            else:
                x = module(x)
        return x
