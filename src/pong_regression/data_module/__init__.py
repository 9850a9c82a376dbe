"""Data loading: CSV ingestion, the paired dataset and tensor conversion."""

from .csv_ingest import (
    DataSource,
    DirectoryDataSource,
    MappingDataSource,
    load_csv,
    parse_csv,
)
from .dataset import (
    FEATURE_DESCRIPTIONS,
    Dataset,
    DatasetState,
    paired_shuffle,
)
from .tensors import TensorSet, materialize, to_tensor2d

__all__ = [
    'DataSource',
    'DirectoryDataSource',
    'MappingDataSource',
    'load_csv',
    'parse_csv',
    'FEATURE_DESCRIPTIONS',
    'Dataset',
    'DatasetState',
    'paired_shuffle',
    'TensorSet',
    'materialize',
    'to_tensor2d',
]
