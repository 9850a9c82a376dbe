import logging
import math
import numbers
from typing import Callable, Dict, Sequence

import torch
import torch.nn as nn

from pong_regression.errors import ConfigError

logger = logging.getLogger(__name__)

HIDDEN_UNITS = 50


def lecun_normal_(weight: torch.Tensor) -> torch.Tensor:
    """Zero-mean truncated normal with std sqrt(1 / fan_in), suited to sigmoid layers."""
    fan_in = weight.size(1)
    std = math.sqrt(1.0 / fan_in)
    return nn.init.trunc_normal_(weight, mean=0.0, std=std, a=-2 * std, b=2 * std)


class DenseRegressor(nn.Module):
    """
    Stack of fully-connected layers ending in a single linear output unit.

    Hidden layers use a sigmoid activation. With no hidden layers this is
    plain linear regression.
    """

    def __init__(self, input_dim: int, hidden_dims: Sequence[int] = ()):
        super().__init__()
        _check_num_features(input_dim)
        for h in hidden_dims:
            if not isinstance(h, numbers.Integral) or h <= 0:
                raise ConfigError(f"Hidden layer widths must be positive integers, got {h!r}")

        self.input_dim = int(input_dim)
        self.hidden_dims = [int(h) for h in hidden_dims]
        self.output_dim = 1

        layers = []
        in_dim = self.input_dim
        for h in self.hidden_dims:
            layers.append(nn.Linear(in_dim, h))
            layers.append(nn.Sigmoid())
            in_dim = h
        layers.append(nn.Linear(in_dim, self.output_dim))

        self.net = nn.Sequential(*layers)
        self.initialize_weights()

    def initialize_weights(self):
        for m in self.modules():
            if isinstance(m, nn.Linear):
                lecun_normal_(m.weight)
                nn.init.zeros_(m.bias)

    @property
    def first_layer(self) -> nn.Linear:
        return self.net[0]

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.net(x)

    def get_num_parameters(self) -> int:
        """Get total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)

    def summary(self) -> str:
        lines = []
        for idx, layer in enumerate(l for l in self.net if isinstance(l, nn.Linear)):
            activation = "sigmoid" if idx < len(self.hidden_dims) else "linear"
            n_params = sum(p.numel() for p in layer.parameters())
            lines.append(
                f"dense_{idx + 1} ({layer.in_features} -> {layer.out_features}, "
                f"{activation}): {n_params} params"
            )
        lines.append(f"Total params: {self.get_num_parameters()}")
        return "\n".join(lines)


def _check_num_features(num_features) -> None:
    if isinstance(num_features, bool) or not isinstance(num_features, numbers.Integral):
        raise ConfigError(f"num_features must be an integer, got {num_features!r}")
    if num_features <= 0:
        raise ConfigError(f"num_features must be positive, got {num_features}")


def _build(num_features: int, hidden_dims: Sequence[int]) -> DenseRegressor:
    model = DenseRegressor(num_features, hidden_dims)
    logger.info("Built model:\n%s", model.summary())
    return model


def build_linear(num_features: int) -> DenseRegressor:
    return _build(num_features, ())


def build_one_hidden(num_features: int) -> DenseRegressor:
    return _build(num_features, (HIDDEN_UNITS,))


def build_two_hidden(num_features: int) -> DenseRegressor:
    return _build(num_features, (HIDDEN_UNITS, HIDDEN_UNITS))


MODEL_BUILDERS: Dict[str, Callable[[int], DenseRegressor]] = {
    "linear": build_linear,
    "one_hidden": build_one_hidden,
    "two_hidden": build_two_hidden,
}


def create_model(kind: str, num_features: int) -> DenseRegressor:
    """
    Factory function to create models.

    Args:
        kind: One of 'linear', 'one_hidden', 'two_hidden'
        num_features: Width of the input layer

    Returns:
        Freshly initialized model
    """
    if kind not in MODEL_BUILDERS:
        raise ConfigError(f"Unknown model kind: {kind}")
    return MODEL_BUILDERS[kind](num_features)
