"""Utilities module package."""

from .checkpointing import ModelStore
from .logging_utils import setup_logger

__all__ = [
    'ModelStore',
    'setup_logger',
]
