import asyncio
import logging
from typing import Dict, Optional

from pong_regression.config import Config, ModelRunConfig, get_experiment_dirs
from pong_regression.data_module.csv_ingest import DataSource, DirectoryDataSource
from pong_regression.data_module.dataset import Dataset
from pong_regression.data_module.tensors import TensorSet, materialize
from pong_regression.errors import NotLoadedError
from pong_regression.events import EventChannel
from pong_regression.metrics import compute_baseline, format_baseline
from pong_regression.models import create_model
from pong_regression.presentation import LoggingPresenter, Presenter, TensorBoardSink
from pong_regression.trainer import TrainingOrchestrator, TrainingResult
from pong_regression.utils.checkpointing import ModelStore

logger = logging.getLogger(__name__)

"""
Usage of this module:

from pong_regression.config import load_config
from pong_regression.experiment import run_experiment


def main(config_path: str = "config.yaml"):
    cfg = load_config(config_path)
    result = run_experiment(cfg)
    print(result["baseline"], result["results"])
"""


class Session:
    """
    One experiment session: load the data once, then train models on it.

    Holds the TensorSet produced by the last successful load; each training
    run gets a fresh model and orchestrator.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        presenter: Optional[Presenter] = None,
        store: Optional[ModelStore] = None,
    ):
        self.config = config or Config()
        self.presenter = presenter or LoggingPresenter()
        self.store = store
        self.dataset = Dataset(self.config.data, presenter=self.presenter)
        self.tensors: Optional[TensorSet] = None
        self.baseline: Optional[float] = None

    async def load_data(self, source: DataSource) -> TensorSet:
        try:
            state = await self.dataset.load(source)
            tensors = materialize(state)
        except Exception as exc:
            self.presenter.update_status(f"Failed to load data: {exc}")
            raise

        self.tensors = tensors
        self.presenter.update_status(
            "Data is now available as tensors.\nClick a train button to begin."
        )
        self.presenter.update_baseline_status("Estimating baseline loss")
        self.baseline = compute_baseline(tensors)
        self.presenter.update_baseline_status(format_baseline(self.baseline))
        self.presenter.on_data_ready()
        return tensors

    async def train_model(
        self, run_cfg: ModelRunConfig, events: Optional[EventChannel] = None
    ) -> TrainingResult:
        if self.tensors is None:
            raise NotLoadedError("'load_data()' must be called before training")

        model = create_model(run_cfg.kind, self.tensors.num_features)
        orchestrator = TrainingOrchestrator(
            self.tensors, self.config.train, presenter=self.presenter, events=events
        )
        result = await orchestrator.run(
            model, run_cfg.name, emit_weights=run_cfg.emit_weights, epochs=run_cfg.epochs
        )

        if self.store is not None:
            self.store.save(model, run_cfg.storage_key)
        if self.baseline is not None and result.test_loss > self.baseline:
            logger.info(
                "[%s] test loss %.4f does not beat the baseline %.4f",
                run_cfg.name, result.test_loss, self.baseline,
            )
        return result

    async def run_all(
        self, source: DataSource, events: Optional[EventChannel] = None
    ) -> Dict[str, TrainingResult]:
        """Load the data and train every configured model in order."""
        await self.load_data(source)
        results = {}
        for run_cfg in self.config.runs:
            results[run_cfg.name] = await self.train_model(run_cfg, events=events)
        return results


async def _run(cfg: Config, presenter: Optional[Presenter]) -> Dict:
    _, models_dir, logs_dir, _ = get_experiment_dirs(
        cfg.logging, create=True, subdirs=("models", "logs")
    )
    session = Session(cfg, presenter=presenter, store=ModelStore(models_dir))

    events = None
    sink = None
    sink_task = None
    if cfg.logging.tensorboard:
        events = EventChannel()
        sink = TensorBoardSink(str(logs_dir))
        sink_task = asyncio.ensure_future(sink.consume(events))

    try:
        results = await session.run_all(DirectoryDataSource(cfg.data.data_dir), events=events)
    finally:
        if events is not None:
            events.close()
            await sink_task
            sink.close()

    return {"baseline": session.baseline, "results": results}


def run_experiment(cfg: Config, presenter: Optional[Presenter] = None) -> Dict:
    """
    Load the CSVs from cfg.data.data_dir, train all runs and save the models.

    Returns:
        {"baseline": float, "results": {run name: TrainingResult}}
    """
    cfg.validate()
    return asyncio.run(_run(cfg, presenter))
