from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
import torch

from pong_regression.data_module.dataset import DatasetState
from pong_regression.errors import ShapeError


Matrix = Union[np.ndarray, Sequence[Sequence[float]]]


@dataclass(frozen=True)
class TensorSet:
    """Read-only float32 tensors derived 1:1 from a DatasetState."""
    train_features: torch.Tensor
    train_target: torch.Tensor
    test_features: torch.Tensor
    test_target: torch.Tensor

    @property
    def num_features(self) -> int:
        return self.train_features.size(1)


def to_tensor2d(matrix: Matrix, name: str = "matrix") -> torch.Tensor:
    """
    Convert a non-empty rectangular matrix into a (rows, cols) float32 tensor.

    Raises ShapeError for empty, non 2-D or ragged input.
    """
    if isinstance(matrix, np.ndarray):
        if matrix.ndim != 2:
            raise ShapeError(f"{name} must be 2D, got shape {matrix.shape}")
        if matrix.shape[0] == 0 or matrix.shape[1] == 0:
            raise ShapeError(f"{name} is empty (shape {matrix.shape})")
        return torch.as_tensor(matrix, dtype=torch.float32).clone()

    rows = list(matrix)
    if not rows:
        raise ShapeError(f"{name} is empty")
    widths = {len(row) for row in rows}
    if len(widths) != 1:
        raise ShapeError(f"{name} is ragged: row lengths {sorted(widths)}")
    if 0 in widths:
        raise ShapeError(f"{name} has zero-width rows")
    return torch.tensor(rows, dtype=torch.float32)


def materialize(state: DatasetState) -> TensorSet:
    return TensorSet(
        train_features=to_tensor2d(state.train_features, "train_features"),
        train_target=to_tensor2d(state.train_target, "train_target"),
        test_features=to_tensor2d(state.test_features, "test_features"),
        test_target=to_tensor2d(state.test_target, "test_target"),
    )
