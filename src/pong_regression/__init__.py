"""
Pong Regression

Trains linear and perceptron regressors on simulated pong ball data and
reports their losses against a mean-prediction baseline.
"""

__version__ = '0.1.0'

from .errors import (
    PongRegressionError,
    IngestError,
    NotLoadedError,
    ShapeError,
    ConfigError,
    TrainingDivergenceError,
)

from .config import Config, load_config

from .data_module import (
    DataSource,
    DirectoryDataSource,
    MappingDataSource,
    Dataset,
    DatasetState,
    TensorSet,
    materialize,
    FEATURE_DESCRIPTIONS,
)

from .models import (
    DenseRegressor,
    build_linear,
    build_one_hidden,
    build_two_hidden,
    create_model,
)

from .metrics import compute_baseline

from .events import EventChannel, EventKind, TrainingEvent

from .presentation import Presenter, LoggingPresenter

from .trainer import (
    TrainingOrchestrator,
    TrainingResult,
    TrainingLog,
    EpochLog,
    WeightDescription,
)

from .experiment import Session, run_experiment

__all__ = [
    # Errors
    'PongRegressionError',
    'IngestError',
    'NotLoadedError',
    'ShapeError',
    'ConfigError',
    'TrainingDivergenceError',
    # Config
    'Config',
    'load_config',
    # Data
    'DataSource',
    'DirectoryDataSource',
    'MappingDataSource',
    'Dataset',
    'DatasetState',
    'TensorSet',
    'materialize',
    'FEATURE_DESCRIPTIONS',
    # Models
    'DenseRegressor',
    'build_linear',
    'build_one_hidden',
    'build_two_hidden',
    'create_model',
    # Training
    'compute_baseline',
    'EventChannel',
    'EventKind',
    'TrainingEvent',
    'Presenter',
    'LoggingPresenter',
    'TrainingOrchestrator',
    'TrainingResult',
    'TrainingLog',
    'EpochLog',
    'WeightDescription',
    'Session',
    'run_experiment',
]
