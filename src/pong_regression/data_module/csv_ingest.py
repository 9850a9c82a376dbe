"""
CSV ingestion: turns a header-delimited numeric CSV into a 2-D float array.
"""

import asyncio
import io
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Dict, Union

import numpy as np
import pandas as pd

from pong_regression.errors import IngestError

logger = logging.getLogger(__name__)

# longest leading float literal, the way a browser parseFloat reads a cell
FLOAT_PREFIX = r"^\s*([+-]?(?:Infinity|\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?))"

FileEntry = Union[str, os.PathLike, bytes, IO]


class DataSource(ABC):
    """Capability handing out readable text handles for named CSV files."""

    @abstractmethod
    def open(self, filename: str) -> IO[str]:
        """Open `filename` for reading. Raises IngestError if it is unavailable."""

    def describe(self, filename: str) -> str:
        return filename


class DirectoryDataSource(DataSource):
    """Reads the CSV files from a single directory."""

    def __init__(self, root: Union[str, os.PathLike]):
        self.root = Path(root)

    def open(self, filename: str) -> IO[str]:
        path = self.root / filename
        if not path.is_file():
            raise IngestError(f"CSV file not found: {path}")
        try:
            return open(path, "r", newline="", encoding="utf-8")
        except OSError as exc:
            raise IngestError(f"Cannot open {path}: {exc}") from exc

    def describe(self, filename: str) -> str:
        return str(self.root / filename)


class MappingDataSource(DataSource):
    """
    Files keyed by name, like a batch of uploaded files.

    Values may be a path, raw bytes, or any object with a ``read()`` method.
    Streams are read once when opened and served from an in-memory copy, so
    the caller's stream is never closed by the loader.
    """

    def __init__(self, files: Dict[str, FileEntry]):
        self.files = dict(files)

    def open(self, filename: str) -> IO[str]:
        if filename not in self.files:
            raise IngestError(f"No file named '{filename}' was provided")
        entry = self.files[filename]

        try:
            if isinstance(entry, (str, os.PathLike)):
                return open(entry, "r", newline="", encoding="utf-8")
            if isinstance(entry, bytes):
                return io.StringIO(entry.decode("utf-8"))
            if hasattr(entry, "read"):
                content = entry.read()
                if isinstance(content, bytes):
                    content = content.decode("utf-8")
                return io.StringIO(content)
        except (OSError, UnicodeDecodeError) as exc:
            raise IngestError(f"Cannot read '{filename}': {exc}") from exc

        raise IngestError(f"Unsupported source for '{filename}': {type(entry).__name__}")


def parse_csv(handle: IO[str], name: str = "<csv>") -> np.ndarray:
    """
    Parse CSV text with a header row into a (rows, columns) float64 array.

    Blank lines are skipped. Each cell is read from its longest numeric
    prefix ("1.5abc" gives 1.5); cells with no such prefix become NaN.
    Rows are never rejected because of bad cells.
    """
    try:
        df = pd.read_csv(
            handle,
            header=0,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError, OSError) as exc:
        raise IngestError(f"Malformed CSV '{name}': {exc}") from exc

    data = np.empty((len(df.index), len(df.columns)), dtype=np.float64)
    # positional access keeps header order even with duplicate column names
    for i in range(len(df.columns)):
        column = df.iloc[:, i].str.extract(FLOAT_PREFIX, expand=False)
        data[:, i] = column.astype(np.float64).to_numpy()
    return data


async def load_csv(source: DataSource, filename: str) -> np.ndarray:
    """Read and parse one CSV file from `source` without blocking other tasks."""
    logger.info("  * Downloading data from: %s", source.describe(filename))
    await asyncio.sleep(0)

    handle = source.open(filename)
    try:
        data = parse_csv(handle, name=filename)
    finally:
        handle.close()

    logger.debug("Parsed %s: %d rows x %d columns", filename, data.shape[0], data.shape[1])
    return data
