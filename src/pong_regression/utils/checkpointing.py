"""
Saving and loading trained models under a storage key.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

import torch

from pong_regression.models import DenseRegressor

logger = logging.getLogger(__name__)


class ModelStore:
    """Stores trained models as ``<models_dir>/<key>.pt``."""

    def __init__(self, models_dir: Union[str, Path] = 'models'):
        """
        Args:
            models_dir: Directory to save models to
        """
        self.models_dir = Path(models_dir)
        self.models_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.models_dir / f"{key}.pt"

    def save(self, model: DenseRegressor, key: str) -> Path:
        """
        Save model weights and architecture.

        Args:
            model: Trained model
            key: Storage key, used as the file stem

        Returns:
            Path of the written file
        """
        filepath = self._path(key)
        torch.save(
            {
                "model_state": model.state_dict(),
                "input_dim": model.input_dim,
                "hidden_dims": list(model.hidden_dims),
            },
            filepath,
        )
        logger.info("Model saved to %s", filepath)
        return filepath

    def load(self, key: str, device: Optional[torch.device] = None) -> DenseRegressor:
        """
        Rebuild a model saved under `key`.

        Raises:
            FileNotFoundError: nothing was saved under `key`
        """
        filepath = self._path(key)
        if not filepath.exists():
            raise FileNotFoundError(f"Model not found: {filepath}")

        payload = torch.load(filepath, map_location=device or "cpu")
        model = DenseRegressor(payload["input_dim"], payload["hidden_dims"])
        model.load_state_dict(payload["model_state"])
        logger.info("Model loaded from %s", filepath)
        return model

    def list_keys(self) -> List[str]:
        """List all stored model keys."""
        return sorted(p.stem for p in self.models_dir.glob('*.pt'))
