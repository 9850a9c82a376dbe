"""
Tests for CSV ingestion, the paired dataset and tensor conversion.
"""

import io
import math
import os
import shutil
import tempfile
import unittest
from pathlib import Path

import numpy as np
import torch

from pong_regression.config import DataConfig
from pong_regression.data_module import (
    Dataset,
    DatasetState,
    DirectoryDataSource,
    MappingDataSource,
    load_csv,
    materialize,
    paired_shuffle,
    parse_csv,
    to_tensor2d,
)
from pong_regression.errors import IngestError, NotLoadedError, ShapeError

from helpers import FEATURE_HEADER, TARGET_HEADER, RecordingPresenter, make_csv, make_csv_files


class TestParseCsv(unittest.TestCase):
    """Test the permissive CSV parser."""

    def test_parses_rows_in_header_order(self):
        """Test numeric rows are parsed in header order."""
        data = parse_csv(io.StringIO("a,b,c\n1,2,3\n4.5,-6,7e-1\n"))
        self.assertEqual(data.shape, (2, 3))
        np.testing.assert_array_almost_equal(data, [[1, 2, 3], [4.5, -6, 0.7]])

    def test_blank_lines_are_skipped(self):
        """Test blank lines do not produce rows."""
        data = parse_csv(io.StringIO("a,b\n\n1,2\n\n\n3,4\n\n"))
        np.testing.assert_array_equal(data, [[1, 2], [3, 4]])

    def test_non_numeric_cells_become_nan(self):
        """Test unparseable and empty cells become NaN."""
        data = parse_csv(io.StringIO("a,b\n1,abc\n,2\n"))
        self.assertEqual(data.shape, (2, 2))
        self.assertEqual(data[0, 0], 1.0)
        self.assertTrue(math.isnan(data[0, 1]))
        self.assertTrue(math.isnan(data[1, 0]))
        self.assertEqual(data[1, 1], 2.0)

    def test_numeric_prefix_is_kept(self):
        """Test cells are read from their leading numeric prefix."""
        data = parse_csv(io.StringIO("a,b,c\n1.5abc, -2e1x,.5\n"))
        np.testing.assert_array_equal(data, [[1.5, -20.0, 0.5]])

    def test_missing_trailing_cell_becomes_nan(self):
        """Test short rows are padded with NaN."""
        data = parse_csv(io.StringIO("a,b\n1,2\n3\n"))
        self.assertEqual(data.shape, (2, 2))
        self.assertTrue(math.isnan(data[1, 1]))

    def test_header_only_gives_zero_rows(self):
        """Test a header-only file gives an empty matrix."""
        data = parse_csv(io.StringIO("a,b,c\n"))
        self.assertEqual(data.shape, (0, 3))

    def test_empty_input_raises(self):
        """Test an empty file is rejected."""
        with self.assertRaises(IngestError):
            parse_csv(io.StringIO(""))

    def test_too_many_fields_raises(self):
        """Test rows wider than the header are rejected."""
        with self.assertRaises(IngestError):
            parse_csv(io.StringIO("a,b\n1,2\n3,4,5\n"))


class TestDataSources(unittest.IsolatedAsyncioTestCase):
    """Test the data source capabilities and the async loader."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    async def test_directory_source(self):
        """Test reading a CSV from a directory."""
        Path(self.temp_dir, "x.csv").write_text("a,b\n1,2\n")
        data = await load_csv(DirectoryDataSource(self.temp_dir), "x.csv")
        np.testing.assert_array_equal(data, [[1, 2]])

    async def test_directory_source_missing_file(self):
        """Test a missing file in a directory."""
        with self.assertRaises(IngestError):
            await load_csv(DirectoryDataSource(self.temp_dir), "missing.csv")

    async def test_mapping_source_entries(self):
        """Test paths, bytes and streams as mapping entries."""
        path = Path(self.temp_dir, "p.csv")
        path.write_text("a\n1\n")
        stream = io.StringIO("a\n2\n")
        source = MappingDataSource({
            "path.csv": str(path),
            "bytes.csv": b"a\n3\n",
            "stream.csv": stream,
        })
        self.assertEqual((await load_csv(source, "path.csv"))[0, 0], 1.0)
        self.assertEqual((await load_csv(source, "bytes.csv"))[0, 0], 3.0)
        self.assertEqual((await load_csv(source, "stream.csv"))[0, 0], 2.0)
        # the caller's stream stays open
        self.assertFalse(stream.closed)

    async def test_mapping_source_unknown_name(self):
        """Test an unknown file name in a mapping."""
        with self.assertRaises(IngestError):
            await load_csv(MappingDataSource({}), "train-features.csv")


class TestPairedShuffle(unittest.TestCase):
    """Test the Fisher-Yates shuffle over a linked pair."""

    def test_pairing_is_preserved(self):
        """Test features and target rows move together."""
        features = np.arange(40, dtype=float).reshape(20, 2)
        target = features[:, :1].copy() * 10
        before = {tuple(f) + tuple(t) for f, t in zip(features, target)}

        paired_shuffle(features, target, np.random.default_rng(3))

        after = {tuple(f) + tuple(t) for f, t in zip(features, target)}
        self.assertEqual(before, after)
        np.testing.assert_array_equal(target[:, 0], features[:, 0] * 10)

    def test_rows_land_everywhere_uniformly(self):
        """Test every row reaches every position about equally often."""
        rng = np.random.default_rng(1234)
        n_trials = 4000
        counts = np.zeros((4, 4))
        for _ in range(n_trials):
            features = np.arange(4, dtype=float).reshape(4, 1)
            target = features.copy()
            paired_shuffle(features, target, rng)
            for position, row in enumerate(features[:, 0].astype(int)):
                counts[row, position] += 1

        expected = n_trials / 4
        self.assertTrue(np.all(np.abs(counts - expected) < 0.15 * expected), counts)

    def test_single_row_and_empty_are_noops(self):
        """Test shuffling one row or none."""
        features = np.array([[1.0, 2.0]])
        target = np.array([[3.0]])
        paired_shuffle(features, target)
        np.testing.assert_array_equal(features, [[1.0, 2.0]])

        paired_shuffle(np.empty((0, 2)), np.empty((0, 1)))

    def test_length_mismatch_raises(self):
        """Test shuffling a pair of different lengths."""
        with self.assertRaises(ShapeError):
            paired_shuffle(np.zeros((3, 2)), np.zeros((2, 1)))


class TestDataset(unittest.IsolatedAsyncioTestCase):
    """Test loading of the four CSV files."""

    def test_num_features_before_load(self):
        """Test accessing the dataset before loading."""
        dataset = Dataset()
        self.assertFalse(dataset.is_loaded)
        with self.assertRaises(NotLoadedError):
            _ = dataset.num_features
        with self.assertRaises(NotLoadedError):
            _ = dataset.state

    async def test_load(self):
        """Test loading the four CSV files."""
        presenter = RecordingPresenter()
        dataset = Dataset(DataConfig(seed=7), presenter=presenter)
        state = await dataset.load(MappingDataSource(make_csv_files(n_train=30, n_test=8)))

        self.assertIsInstance(state, DatasetState)
        self.assertEqual(dataset.num_features, 4)
        self.assertEqual(state.train_features.shape, (30, 4))
        self.assertEqual(state.train_target.shape, (30, 1))
        self.assertEqual(state.test_features.shape, (8, 4))
        self.assertEqual(state.test_target.shape, (8, 1))
        self.assertEqual(presenter.messages("status"), ["Data loaded, converting to tensors"])

    async def test_load_keeps_rows_paired(self):
        """Test loaded rows stay paired after shuffling."""
        rows = [[i, i + 0.5, -i, 2 * i] for i in range(25)]
        files = {
            "train-features.csv": make_csv(FEATURE_HEADER, rows),
            "train-target.csv": make_csv(TARGET_HEADER, [[r[0] * 3] for r in rows]),
            "test-features.csv": make_csv(FEATURE_HEADER, rows[:10]),
            "test-target.csv": make_csv(TARGET_HEADER, [[r[0] * 3] for r in rows[:10]]),
        }
        state = await Dataset().load(MappingDataSource(files))

        np.testing.assert_array_equal(state.train_target[:, 0], state.train_features[:, 0] * 3)
        np.testing.assert_array_equal(state.test_target[:, 0], state.test_features[:, 0] * 3)
        self.assertEqual(sorted(state.train_features[:, 0]), list(range(25)))

    async def test_load_fails_fast_without_partial_state(self):
        """Test a missing file fails the whole load."""
        files = make_csv_files()
        del files["test-target.csv"]
        dataset = Dataset()

        with self.assertRaises(IngestError):
            await dataset.load(MappingDataSource(files))
        self.assertFalse(dataset.is_loaded)
        with self.assertRaises(NotLoadedError):
            _ = dataset.num_features

    async def test_failed_reload_keeps_previous_state(self):
        """Test a malformed reload keeps the earlier state."""
        dataset = Dataset()
        state = await dataset.load(MappingDataSource(make_csv_files()))
        files = make_csv_files()
        files["train-features.csv"] = b""

        with self.assertRaises(IngestError):
            await dataset.load(MappingDataSource(files))
        self.assertIs(dataset.state, state)

    async def test_row_count_mismatch_raises(self):
        """Test features and target with different row counts."""
        files = make_csv_files(n_train=20)
        files["train-target.csv"] = make_csv(TARGET_HEADER, [[1.0]] * 19)
        dataset = Dataset()

        with self.assertRaises(ShapeError):
            await dataset.load(MappingDataSource(files))
        self.assertFalse(dataset.is_loaded)


    async def test_two_column_target_raises(self):
        """Test a target file with more than one column."""
        files = make_csv_files(n_train=20)
        files["train-target.csv"] = make_csv("a,b", [[1.0, 2.0]] * 20)
        dataset = Dataset()

        with self.assertRaises(ShapeError):
            await dataset.load(MappingDataSource(files))
        self.assertFalse(dataset.is_loaded)

    async def test_test_features_width_mismatch_raises(self):
        """Test test features narrower than train features."""
        files = make_csv_files(n_test=5)
        files["test-features.csv"] = make_csv("a,b,c", [[1.0, 2.0, 3.0]] * 5)

        with self.assertRaises(ShapeError):
            await Dataset().load(MappingDataSource(files))

    async def test_header_only_reload_keeps_previous_state(self):
        """Test an empty reload keeps the earlier state."""
        dataset = Dataset()
        state = await dataset.load(MappingDataSource(make_csv_files()))
        files = make_csv_files()
        files["test-features.csv"] = make_csv(FEATURE_HEADER, [])
        files["test-target.csv"] = make_csv(TARGET_HEADER, [])

        with self.assertRaises(ShapeError):
            await dataset.load(MappingDataSource(files))
        self.assertIs(dataset.state, state)
        self.assertEqual(dataset.num_features, 4)


class TestTensors(unittest.TestCase):
    """Test TensorSet materialization."""

    def test_to_tensor2d_shapes(self):
        """Test tensor conversion shapes and dtype."""
        t = to_tensor2d([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        self.assertEqual(tuple(t.shape), (3, 2))
        self.assertEqual(t.dtype, torch.float32)

        t = to_tensor2d(np.zeros((5, 1)))
        self.assertEqual(tuple(t.shape), (5, 1))

    def test_to_tensor2d_rejects_empty_and_ragged(self):
        """Test empty, ragged and 1D input is rejected."""
        with self.assertRaises(ShapeError):
            to_tensor2d([])
        with self.assertRaises(ShapeError):
            to_tensor2d(np.empty((0, 4)))
        with self.assertRaises(ShapeError):
            to_tensor2d([[1.0, 2.0], [3.0]])
        with self.assertRaises(ShapeError):
            to_tensor2d(np.zeros(3))

    def test_nan_cells_propagate(self):
        """Test NaN cells survive conversion."""
        t = to_tensor2d(np.array([[1.0, np.nan]]))
        self.assertTrue(torch.isnan(t[0, 1]))

    def test_materialize(self):
        """Test building a TensorSet from a dataset state."""
        state = DatasetState(
            train_features=np.ones((6, 4)),
            train_target=np.ones((6, 1)),
            test_features=np.ones((2, 4)),
            test_target=np.ones((2, 1)),
        )
        tensors = materialize(state)
        self.assertEqual(tensors.num_features, 4)
        self.assertEqual(tuple(tensors.train_features.shape), (6, 4))
        self.assertEqual(tuple(tensors.test_target.shape), (2, 1))

    def test_materialize_rejects_empty_test_set(self):
        """Test an empty test set is rejected."""
        state = DatasetState(
            train_features=np.ones((6, 4)),
            train_target=np.ones((6, 1)),
            test_features=np.empty((0, 4)),
            test_target=np.empty((0, 1)),
        )
        with self.assertRaises(ShapeError):
            materialize(state)


if __name__ == '__main__':
    unittest.main()
