"""
Shared fixtures for the test modules.
"""

import numpy as np
import torch

from pong_regression.data_module.tensors import TensorSet
from pong_regression.presentation import Presenter

FEATURE_HEADER = "ball_x,ball_y,ball_vx,ball_vy"
TARGET_HEADER = "paddle_y"


def make_csv(header, rows):
    lines = [header]
    for row in rows:
        lines.append(",".join(str(v) for v in row))
    return ("\n".join(lines) + "\n").encode("utf-8")


def make_linear_data(n_samples, seed=0):
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(n_samples, 4))
    w = np.array([0.5, -1.0, 0.25, 0.1])
    y = (X @ w + 0.05 * rng.normal(size=n_samples)).reshape(-1, 1)
    return X, y


def make_csv_files(n_train=50, n_test=10, seed=0):
    """Four CSV payloads (bytes) keyed by their fixed file names."""
    X_train, y_train = make_linear_data(n_train, seed)
    X_test, y_test = make_linear_data(n_test, seed + 1)
    return {
        "train-features.csv": make_csv(FEATURE_HEADER, X_train.tolist()),
        "train-target.csv": make_csv(TARGET_HEADER, y_train.tolist()),
        "test-features.csv": make_csv(FEATURE_HEADER, X_test.tolist()),
        "test-target.csv": make_csv(TARGET_HEADER, y_test.tolist()),
    }


def make_tensor_set(n_train=50, n_test=10, seed=0):
    X_train, y_train = make_linear_data(n_train, seed)
    X_test, y_test = make_linear_data(n_test, seed + 1)
    return TensorSet(
        train_features=torch.tensor(X_train, dtype=torch.float32),
        train_target=torch.tensor(y_train, dtype=torch.float32),
        test_features=torch.tensor(X_test, dtype=torch.float32),
        test_target=torch.tensor(y_test, dtype=torch.float32),
    )


class RecordingPresenter(Presenter):
    """Keeps every call in order as (method, args) tuples."""

    def __init__(self):
        self.calls = []

    def update_status(self, message):
        self.calls.append(("status", message))

    def update_baseline_status(self, message):
        self.calls.append(("baseline", message))

    def update_model_status(self, message, model_name):
        self.calls.append(("model", message, model_name))

    def update_weight_description(self, weights):
        self.calls.append(("weights", list(weights)))

    def on_data_ready(self):
        self.calls.append(("data_ready",))

    def messages(self, kind):
        return [c[1] for c in self.calls if c[0] == kind]
