from dataclasses import asdict, dataclass, field
from typing import List, Optional, Tuple
import yaml
from pathlib import Path

from pong_regression.errors import ConfigError


MODEL_KINDS = ("linear", "one_hidden", "two_hidden")


@dataclass
class DataConfig:
    data_dir: str = "./data"
    train_features_file: str = "train-features.csv"
    train_target_file: str = "train-target.csv"
    test_features_file: str = "test-features.csv"
    test_target_file: str = "test-target.csv"
    seed: Optional[int] = None  # None => nondeterministic shuffle

    @property
    def filenames(self) -> Tuple[str, str, str, str]:
        """(train features, train target, test features, test target)"""
        return (
            self.train_features_file,
            self.train_target_file,
            self.test_features_file,
            self.test_target_file,
        )


@dataclass
class TrainConfig:
    batch_size: int = 20
    learning_rate: float = 0.01
    validation_split: float = 0.2
    device: Optional[str] = None  # "cuda", "cpu", or None = auto
    progress_bar: bool = False


@dataclass
class ModelRunConfig:
    kind: str = "linear"  # "linear", "one_hidden" or "two_hidden"
    name: str = "linear"
    epochs: int = 200
    emit_weights: bool = False
    storage_key: str = "simpleNN-lr-model"


def default_runs() -> List[ModelRunConfig]:
    return [
        ModelRunConfig("linear", "linear", 200, True, "simpleNN-lr-model"),
        ModelRunConfig("one_hidden", "oneHidden", 300, False, "1hiddenNN-lr-model"),
        ModelRunConfig("two_hidden", "twoHidden", 400, False, "2hiddenNN-lr-model"),
    ]


@dataclass
class LoggingConfig:
    # Root folder for all experiments
    root_dir: str = "./runs"
    # Name of this experiment (subfolder under root_dir)
    experiment_name: str = "pong_regression_exp1"
    # Subdirectories inside the experiment folder
    subdir_models: str = "models"
    subdir_logs: str = "logs"
    subdir_hparams: str = "hparams"
    tensorboard: bool = False
    level: str = "INFO"


@dataclass
class Config:
    data: DataConfig = field(default_factory=DataConfig)
    train: TrainConfig = field(default_factory=TrainConfig)
    runs: List[ModelRunConfig] = field(default_factory=default_runs)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Recursively convert to a plain Python dict."""
        return asdict(self)

    def to_yaml(self) -> str:
        """Return a pretty YAML representation."""
        return yaml.safe_dump(
            self.to_dict(),
            sort_keys=False,           # preserve section order
            default_flow_style=False,  # use block style (multi-line)
            allow_unicode=True,
        )

    def print(self):
        """Print the config nicely formatted as YAML."""
        print("\n===== Current Configuration =====")
        print(self.to_yaml())
        print("=================================\n")

    def validate(self) -> "Config":
        t = self.train
        if t.batch_size <= 0:
            raise ConfigError(f"train.batch_size must be positive, got {t.batch_size}")
        if t.learning_rate <= 0:
            raise ConfigError(f"train.learning_rate must be positive, got {t.learning_rate}")
        if not 0.0 < t.validation_split < 1.0:
            raise ConfigError(
                f"train.validation_split must be in (0, 1), got {t.validation_split}"
            )
        for run in self.runs:
            if run.kind not in MODEL_KINDS:
                raise ConfigError(f"Unknown model kind '{run.kind}' for run '{run.name}'")
            if run.epochs <= 0:
                raise ConfigError(f"Run '{run.name}' needs a positive epoch count, got {run.epochs}")
        return self


def load_config(path: str) -> Config:
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    try:
        runs = raw.get("runs")
        return Config(
            data=DataConfig(**raw.get("data", {})),
            train=TrainConfig(**raw.get("train", {})),
            runs=[ModelRunConfig(**r) for r in runs] if runs is not None else default_runs(),
            logging=LoggingConfig(**raw.get("logging", {})),
        ).validate()
    except TypeError as exc:
        # unknown keys in one of the sections
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc


def get_experiment_dirs(
    logging_cfg: LoggingConfig,
    create: bool = True,
    subdirs: Tuple[str, ...] = (),
):
    """
    Returns (exp_root, models_dir, logs_dir, hparams_dir).

    Args:
        logging_cfg: LoggingConfig instance.
        create: if True, create the directories that exist in `subdirs`.
        subdirs: optional tuple of subdirectory names to create under exp_root.

    Notes:
        - Always returns the Path objects (even if not created).
        - Only creates folders explicitly listed in `subdirs` when create=True.
    """
    exp_root = Path(logging_cfg.root_dir) / logging_cfg.experiment_name
    models_dir = exp_root / logging_cfg.subdir_models
    logs_dir = exp_root / logging_cfg.subdir_logs
    hparams_dir = exp_root / logging_cfg.subdir_hparams

    if create:
        exp_root.mkdir(parents=True, exist_ok=True)
        for name, path in {
            "models": models_dir,
            "logs": logs_dir,
            "hparams": hparams_dir,
        }.items():
            if name in subdirs:
                path.mkdir(parents=True, exist_ok=True)

    return exp_root, models_dir, logs_dir, hparams_dir
