import logging

import torch

from pong_regression.data_module.tensors import TensorSet

logger = logging.getLogger(__name__)


@torch.no_grad()
def mse(preds: torch.Tensor, targets: torch.Tensor) -> float:
    return torch.mean((preds - targets) ** 2).item()


@torch.no_grad()
def compute_baseline(tensors: TensorSet) -> float:
    """
    Loss of always predicting the mean training target on the test set.

    Any useful model should beat this. It is only reported, never enforced.
    """
    avg_target = tensors.train_target.mean()
    logger.info("Average target: %s", avg_target.item())
    baseline = mse(avg_target.expand_as(tensors.test_target), tensors.test_target)
    logger.info("Baseline loss: %s", baseline)
    return baseline


def format_baseline(value: float) -> str:
    return f"Baseline loss (meanSquaredError) is {value:.2f}"
