import asyncio
import enum
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set

import torch
from torch.utils.data import DataLoader, TensorDataset
from tqdm import tqdm

from pong_regression.config import TrainConfig
from pong_regression.data_module.dataset import FEATURE_DESCRIPTIONS
from pong_regression.data_module.tensors import TensorSet
from pong_regression.errors import ConfigError, ShapeError, TrainingDivergenceError
from pong_regression.events import EventChannel, EventKind, TrainingEvent
from pong_regression.presentation import Presenter

logger = logging.getLogger(__name__)

NUM_EPOCHS = 200


class RunState(enum.Enum):
    IDLE = "idle"
    COMPILING = "compiling"
    TRAINING = "training"
    EVALUATING = "evaluating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class EpochLog:
    epoch: int
    train_loss: float
    val_loss: float


class TrainingLog:
    """Append-only record of one entry per completed epoch."""

    def __init__(self):
        self._entries: List[EpochLog] = []

    def append(self, entry: EpochLog) -> None:
        self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EpochLog]:
        return iter(list(self._entries))

    def __getitem__(self, idx: int) -> EpochLog:
        return self._entries[idx]

    @property
    def last(self) -> Optional[EpochLog]:
        return self._entries[-1] if self._entries else None

    def to_history(self) -> Dict[str, List[float]]:
        return {
            "train_loss": [e.train_loss for e in self._entries],
            "val_loss": [e.val_loss for e in self._entries],
        }


@dataclass(frozen=True)
class WeightDescription:
    description: str
    value: float


def describe_kernel_elements(kernel) -> List[WeightDescription]:
    """
    Pair each element of a 4-element kernel with its feature name.

    Args:
        kernel: tensor or sequence of floats, one value per feature.

    Returns:
        List of WeightDescription in feature order.
    """
    if isinstance(kernel, torch.Tensor):
        values = kernel.detach().reshape(-1).tolist()
    else:
        values = [float(v) for v in kernel]
    if len(values) != len(FEATURE_DESCRIPTIONS):
        raise ShapeError(
            f"kernel must be an array of length {len(FEATURE_DESCRIPTIONS)}, got {len(values)}"
        )
    return [WeightDescription(d, float(v)) for d, v in zip(FEATURE_DESCRIPTIONS, values)]


def rank_weights(weights: List[WeightDescription]) -> List[WeightDescription]:
    # Sort weights by descending absolute value.
    return sorted(weights, key=lambda w: abs(w.value), reverse=True)


@dataclass(frozen=True)
class TrainingResult:
    train_loss: float
    val_loss: float
    test_loss: float
    log: TrainingLog

    def summary(self) -> str:
        return (
            f"Final train-set loss: {self.train_loss:.4f}\n"
            f"Final validation-set loss: {self.val_loss:.4f}\n"
            f"Test-set loss: {self.test_loss:.4f}"
        )


@dataclass
class _Compiled:
    optimizer: torch.optim.Optimizer
    loss_fn: torch.nn.Module
    train_loader: DataLoader
    val_x: torch.Tensor
    val_y: torch.Tensor


def _first_linear(model: torch.nn.Module) -> torch.nn.Linear:
    for m in model.modules():
        if isinstance(m, torch.nn.Linear):
            return m
    raise ShapeError(f"{model.__class__.__name__} has no dense layer")


class TrainingOrchestrator:
    """
    Compiles, trains and evaluates one model at a time on a TensorSet.

    Per run: IDLE -> COMPILING -> TRAINING -> EVALUATING -> DONE, or FAILED
    from any step. Optimizer, loss, batch size and validation split come from
    TrainConfig; only the epoch count and weight reporting vary per run.

    After every epoch the log entry is appended and the presenter notified
    before the next epoch's first batch. Weight descriptions are produced by
    background tasks and may arrive after later epoch notifications.
    """

    def __init__(
        self,
        tensors: TensorSet,
        train_cfg: Optional[TrainConfig] = None,
        presenter: Optional[Presenter] = None,
        events: Optional[EventChannel] = None,
    ):
        self.tensors = tensors
        self.train_cfg = train_cfg or TrainConfig()
        self.presenter = presenter or Presenter()
        self.events = events

        if self.train_cfg.device:
            self.device = self.train_cfg.device
        else:
            self.device = "cuda" if torch.cuda.is_available() else "cpu"

        self.state = RunState.IDLE
        self.training_log: Optional[TrainingLog] = None

    def _publish(self, event: TrainingEvent) -> None:
        if self.events is not None and not self.events.closed:
            self.events.publish(event)

    def _compile(self, model: torch.nn.Module, epochs: int) -> _Compiled:
        if isinstance(epochs, bool) or not isinstance(epochs, int) or epochs <= 0:
            raise ConfigError(f"epochs must be a positive integer, got {epochs!r}")

        in_features = _first_linear(model).in_features
        for split, features, target in (
            ("train", self.tensors.train_features, self.tensors.train_target),
            ("test", self.tensors.test_features, self.tensors.test_target),
        ):
            if features.size(1) != in_features:
                raise ShapeError(
                    f"Model expects {in_features} input features but the {split} data "
                    f"has {features.size(1)}"
                )
            if target.size(1) != 1:
                raise ShapeError(
                    f"{split} target must have exactly 1 column, got {target.size(1)}"
                )
            if features.size(0) != target.size(0):
                raise ShapeError(
                    f"{split} features and target have different row counts: "
                    f"{features.size(0)} vs {target.size(0)}"
                )

        x = self.tensors.train_features
        y = self.tensors.train_target
        n = x.size(0)
        # validation rows are taken from the end, before any shuffling
        n_train = math.floor(n * (1.0 - self.train_cfg.validation_split))
        if n_train <= 0 or n_train >= n:
            raise ShapeError(
                f"validation_split={self.train_cfg.validation_split} leaves an empty "
                f"train or validation set for {n} examples"
            )

        train_loader = DataLoader(
            TensorDataset(x[:n_train], y[:n_train]),
            batch_size=self.train_cfg.batch_size,
            shuffle=True,
        )
        return _Compiled(
            optimizer=torch.optim.SGD(model.parameters(), lr=self.train_cfg.learning_rate),
            loss_fn=torch.nn.MSELoss(),
            train_loader=train_loader,
            val_x=x[n_train:],
            val_y=y[n_train:],
        )

    async def _train_epoch(
        self, model: torch.nn.Module, compiled: _Compiled, epoch: int, log: TrainingLog
    ) -> float:
        model.train()
        total_loss = 0.0
        total_samples = 0

        for xb, yb in compiled.train_loader:
            xb = xb.to(self.device)
            yb = yb.to(self.device)

            compiled.optimizer.zero_grad()
            preds = model(xb)
            loss = compiled.loss_fn(preds, yb)
            loss_value = loss.item()
            if not math.isfinite(loss_value):
                raise TrainingDivergenceError(
                    f"Non-finite training loss ({loss_value}) in epoch {epoch + 1}",
                    training_log=log,
                    epoch=epoch,
                )
            loss.backward()
            compiled.optimizer.step()

            batch_size = xb.size(0)
            total_loss += loss_value * batch_size
            total_samples += batch_size

            await asyncio.sleep(0)

        return total_loss / max(total_samples, 1)

    @torch.no_grad()
    def _evaluate_loss(
        self, model: torch.nn.Module, loss_fn: torch.nn.Module, x: torch.Tensor, y: torch.Tensor
    ) -> float:
        model.eval()
        loader = DataLoader(TensorDataset(x, y), batch_size=self.train_cfg.batch_size, shuffle=False)
        total_loss = 0.0
        total_samples = 0

        for xb, yb in loader:
            xb = xb.to(self.device)
            yb = yb.to(self.device)

            loss = loss_fn(model(xb), yb)

            batch_size = xb.size(0)
            total_loss += loss.item() * batch_size
            total_samples += batch_size

        return total_loss / max(total_samples, 1)

    async def _publish_weights(self, kernel: torch.Tensor, model_name: str) -> None:
        await asyncio.sleep(0)
        weights = rank_weights(describe_kernel_elements(kernel))
        self.presenter.update_weight_description(weights)
        self._publish(TrainingEvent(EventKind.WEIGHTS, model_name, weights=weights))

    async def _drain(self, tasks: Set[asyncio.Task]) -> None:
        if not tasks:
            return
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for res in results:
            if isinstance(res, Exception):
                logger.warning("Weight description update failed: %s", res)

    async def run(
        self,
        model: torch.nn.Module,
        name: str,
        emit_weights: bool = False,
        epochs: int = NUM_EPOCHS,
    ) -> TrainingResult:
        """
        Train `model` for `epochs` epochs and evaluate it on the test set.

        Args:
            model: Model to be trained (moved to the training device).
            name: Model name used for status messages and events.
            emit_weights: Report the learned first-layer weights after each epoch.
            epochs: Number of passes over the training split.

        Returns:
            TrainingResult with final train/validation losses and the test loss.

        Raises:
            ConfigError, ShapeError: before any epoch runs.
            TrainingDivergenceError: when an epoch fails numerically; the
                partial log is attached to the exception.
        """
        log = TrainingLog()
        self.training_log = log
        weight_tasks: Set[asyncio.Task] = set()

        try:
            self.state = RunState.COMPILING
            model = model.to(self.device)
            compiled = self._compile(model, epochs)
            weight_kernel = _first_linear(model).weight
            report_weights = emit_weights and weight_kernel.numel() == len(FEATURE_DESCRIPTIONS)
            if emit_weights and not report_weights:
                logger.debug("Model '%s' has no 4-element kernel; weights not reported", name)

            self.state = RunState.TRAINING
            self.presenter.update_status("Starting training process...")

            epoch_iter = tqdm(range(epochs), desc=name, disable=not self.train_cfg.progress_bar)
            for epoch in epoch_iter:
                try:
                    train_loss = await self._train_epoch(model, compiled, epoch, log)
                    val_loss = self._evaluate_loss(
                        model, compiled.loss_fn, compiled.val_x, compiled.val_y
                    )
                except RuntimeError as exc:
                    raise TrainingDivergenceError(
                        f"Epoch {epoch + 1} failed: {exc}", training_log=log, epoch=epoch
                    ) from exc
                if not math.isfinite(val_loss):
                    raise TrainingDivergenceError(
                        f"Non-finite validation loss ({val_loss}) in epoch {epoch + 1}",
                        training_log=log,
                        epoch=epoch,
                    )

                entry = EpochLog(epoch, train_loss, val_loss)
                log.append(entry)
                logger.debug(
                    "[%s] epoch %d train_loss=%.4f val_loss=%.4f", name, epoch, train_loss, val_loss
                )
                self.presenter.update_model_status(f"Epoch {epoch + 1} of {epochs} completed.", name)
                self._publish(TrainingEvent(EventKind.EPOCH_END, name, entry=entry))

                if report_weights:
                    kernel = weight_kernel.detach().cpu().clone()
                    task = asyncio.ensure_future(self._publish_weights(kernel, name))
                    weight_tasks.add(task)
                    task.add_done_callback(weight_tasks.discard)

                await asyncio.sleep(0)

            self.state = RunState.EVALUATING
            self.presenter.update_status("Running on test data...")
            await asyncio.sleep(0)
            test_loss = self._evaluate_loss(
                model, compiled.loss_fn, self.tensors.test_features, self.tensors.test_target
            )
        except Exception as exc:
            self.state = RunState.FAILED
            logger.error("Training of '%s' failed after %d epochs: %s", name, len(log), exc)
            self.presenter.update_model_status(f"Training failed: {exc}", name)
            self._publish(TrainingEvent(EventKind.FAILED, name, error=exc))
            raise
        finally:
            await self._drain(weight_tasks)

        last = log.last
        result = TrainingResult(last.train_loss, last.val_loss, test_loss, log)
        self.state = RunState.DONE
        logger.info("[%s] %s", name, result.summary().replace("\n", " | "))
        self.presenter.update_model_status(result.summary(), name)
        self._publish(TrainingEvent(EventKind.DONE, name, result=result))
        return result
