import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pong_regression.config import DataConfig
from pong_regression.data_module.csv_ingest import DataSource, load_csv
from pong_regression.errors import NotLoadedError, ShapeError

logger = logging.getLogger(__name__)


FEATURE_DESCRIPTIONS = [
    "Ball X Position",
    "Ball Y Position",
    "Ball X Velocity",
    "Ball Y Velocity",
]


@dataclass(frozen=True)
class DatasetState:
    """
    The four matrices of one load. Row i of a features matrix and row i of
    its target matrix always describe the same example.
    """
    train_features: np.ndarray
    train_target: np.ndarray
    test_features: np.ndarray
    test_target: np.ndarray

    @property
    def num_train(self) -> int:
        return self.train_features.shape[0]

    @property
    def num_test(self) -> int:
        return self.test_features.shape[0]


def paired_shuffle(
    features: np.ndarray,
    target: np.ndarray,
    rng: Optional[np.random.Generator] = None,
) -> None:
    """
    In-place Fisher-Yates shuffle applying the same permutation to both arrays.

    For i from L-1 down to 1, draws j uniformly from [0, i] and swaps row i
    with row j in `features` and in `target`.
    """
    if len(features) != len(target):
        raise ShapeError(
            f"Cannot shuffle pair of different lengths: {len(features)} vs {len(target)}"
        )
    if rng is None:
        rng = np.random.default_rng()

    for i in range(len(features) - 1, 0, -1):
        j = int(rng.integers(0, i + 1))
        if j == i:
            continue
        features[[i, j]] = features[[j, i]]
        target[[i, j]] = target[[j, i]]


class Dataset:
    """Loads the train/test feature and target CSVs and keeps them paired."""

    def __init__(self, config: Optional[DataConfig] = None, presenter=None):
        self.config = config or DataConfig()
        self.presenter = presenter
        self._rng = np.random.default_rng(self.config.seed)
        self._state: Optional[DatasetState] = None

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> DatasetState:
        if self._state is None:
            raise NotLoadedError("'load()' must be called before accessing the dataset state")
        return self._state

    @property
    def num_features(self) -> int:
        # If num_features is accessed before the data is loaded, raise an error.
        if self._state is None:
            raise NotLoadedError("'load()' must be called before num_features")
        return self._state.train_features.shape[1]

    async def load(self, source: DataSource) -> DatasetState:
        """
        Load all four CSV files concurrently, then shuffle each pair.

        The first failing file cancels the others and the error propagates;
        the previously loaded state (if any) stays in place.
        """
        tasks = [asyncio.ensure_future(load_csv(source, name)) for name in self.config.filenames]
        try:
            train_x, train_y, test_x, test_y = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for name, matrix in zip(self.config.filenames, (train_x, train_y, test_x, test_y)):
            if matrix.shape[0] == 0 or matrix.shape[1] == 0:
                raise ShapeError(f"{name} is empty: shape {matrix.shape}")

        for split, features, target in (("train", train_x, train_y), ("test", test_x, test_y)):
            if target.shape[1] != 1:
                raise ShapeError(
                    f"{split} target must have exactly 1 column, got {target.shape[1]}"
                )
            if features.shape[1] != train_x.shape[1]:
                raise ShapeError(
                    f"{split} features have {features.shape[1]} columns, "
                    f"expected {train_x.shape[1]}"
                )
            if features.shape[0] != target.shape[0]:
                raise ShapeError(
                    f"{split} features and target have different row counts: "
                    f"{features.shape[0]} vs {target.shape[0]}"
                )

        paired_shuffle(train_x, train_y, self._rng)
        paired_shuffle(test_x, test_y, self._rng)

        self._state = DatasetState(train_x, train_y, test_x, test_y)
        logger.info(
            "Loaded %d train / %d test examples with %d features",
            self._state.num_train, self._state.num_test, train_x.shape[1],
        )
        if self.presenter is not None:
            self.presenter.update_status("Data loaded, converting to tensors")
        return self._state
