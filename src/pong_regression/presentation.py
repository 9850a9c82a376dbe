"""
Presentation collaborators.

The training core only talks to a Presenter through a handful of status
methods and to event sinks through an EventChannel. Everything about how
those updates are shown lives here.
"""

import logging
from typing import Dict, List, Optional, Sequence

from torch.utils.tensorboard import SummaryWriter

from pong_regression.events import EventChannel, EventKind

logger = logging.getLogger(__name__)

NUM_TOP_WEIGHTS_TO_DISPLAY = 5


class Presenter:
    """Receives status updates from the core. All methods default to no-ops."""

    def update_status(self, message: str) -> None:
        pass

    def update_baseline_status(self, message: str) -> None:
        pass

    def update_model_status(self, message: str, model_name: str) -> None:
        pass

    def update_weight_description(self, weights: List) -> None:
        pass

    def on_data_ready(self) -> None:
        pass


class LoggingPresenter(Presenter):
    """Writes every update to the log and remembers the latest of each."""

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self.status: Optional[str] = None
        self.baseline_status: Optional[str] = None
        self.model_status: Dict[str, str] = {}
        self.weights: List = []
        self.data_ready = False

    def update_status(self, message: str) -> None:
        self.status = message
        self.log.info(message)

    def update_baseline_status(self, message: str) -> None:
        self.baseline_status = message
        self.log.info(message)

    def update_model_status(self, message: str, model_name: str) -> None:
        self.model_status[model_name] = message
        for line in message.splitlines():
            self.log.info("[%s] %s", model_name, line)

    def update_weight_description(self, weights: List) -> None:
        self.weights = list(weights)
        self.log.info("Top %d weights by magnitude", NUM_TOP_WEIGHTS_TO_DISPLAY)
        for weight in self.weights[:NUM_TOP_WEIGHTS_TO_DISPLAY]:
            sign = "-" if weight.value < 0 else "+"
            self.log.info("  %s %-18s %.4f", sign, weight.description, weight.value)

    def on_data_ready(self) -> None:
        self.data_ready = True
        self.log.debug("Data ready")


class CompositePresenter(Presenter):
    """Forwards every update to each wrapped presenter in order."""

    def __init__(self, presenters: Sequence[Presenter]):
        self.presenters = list(presenters)

    def update_status(self, message: str) -> None:
        for p in self.presenters:
            p.update_status(message)

    def update_baseline_status(self, message: str) -> None:
        for p in self.presenters:
            p.update_baseline_status(message)

    def update_model_status(self, message: str, model_name: str) -> None:
        for p in self.presenters:
            p.update_model_status(message, model_name)

    def update_weight_description(self, weights: List) -> None:
        for p in self.presenters:
            p.update_weight_description(weights)

    def on_data_ready(self) -> None:
        for p in self.presenters:
            p.on_data_ready()


class TensorBoardSink:
    """Consumes training events and writes loss curves to TensorBoard."""

    def __init__(self, log_dir: str):
        self.writer = SummaryWriter(log_dir=log_dir)

    async def consume(self, channel: EventChannel) -> None:
        async for event in channel:
            if event.kind is EventKind.EPOCH_END:
                entry = event.entry
                self.writer.add_scalars(
                    f"{event.model_name}/Loss",
                    {"train": entry.train_loss, "val": entry.val_loss},
                    entry.epoch,
                )
            elif event.kind is EventKind.WEIGHTS:
                for weight in event.weights:
                    self.writer.add_scalar(
                        f"{event.model_name}/Weights/{weight.description}", weight.value
                    )
            elif event.kind is EventKind.DONE:
                self.writer.add_scalar(f"{event.model_name}/TestLoss", event.result.test_loss)
        self.writer.flush()

    def close(self) -> None:
        self.writer.close()
