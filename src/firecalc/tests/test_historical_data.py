# Copyright 2025 The firecalc Authors
#
# Use of this source code is governed by an MIT license that can be
# found in the LICENSE file at the root of this repository.

"""
Tests for the historical dataset and its loader.
"""

import math
import os
import tempfile
import unittest

import numpy as np
import pandas as pd

from ..errors import DataUnavailableError
from ..portfolio import AssetClass
from ..montecarlo.historical_data import (
    US_CPI_INFLATION,
    HistoricalDataset,
    ReturnSummary,
    load_historical_dataset,
    parse_rate,
    to_real_returns,
)


class TestReturnSummary(unittest.TestCase):
    """Tests for ReturnSummary."""

    def test_from_returns(self):
        """Test summary statistics."""
        summary = ReturnSummary.from_returns([0.10, -0.10, 0.30])
        self.assertAlmostEqual(summary.mean, 0.10)
        self.assertAlmostEqual(summary.median, 0.10)
        self.assertAlmostEqual(summary.minimum, -0.10)
        self.assertAlmostEqual(summary.maximum, 0.30)
        self.assertAlmostEqual(summary.std_dev, np.std([0.10, -0.10, 0.30]))


class TestParsing(unittest.TestCase):
    """Tests for cell parsing and real conversion."""

    def test_parse_rate(self):
        """Test percent strings and decimals."""
        self.assertAlmostEqual(parse_rate("12.5%"), 0.125)
        self.assertAlmostEqual(parse_rate(" -3% "), -0.03)
        self.assertAlmostEqual(parse_rate("0.07"), 0.07)
        self.assertAlmostEqual(parse_rate(0.07), 0.07)
        self.assertTrue(math.isnan(parse_rate("")))
        with self.assertRaises(ValueError):
            parse_rate("n/a")

    def test_fisher_conversion(self):
        """Test real = (1 + n) / (1 + i) - 1."""
        real = to_real_returns([0.10, 0.0], [0.05, 0.02])
        self.assertAlmostEqual(real[0], 1.10 / 1.05 - 1)
        self.assertAlmostEqual(real[1], 1.0 / 1.02 - 1)

    def test_fisher_length_mismatch(self):
        """Test mismatched lengths are a data error."""
        with self.assertRaises(DataUnavailableError):
            to_real_returns([0.1, 0.2], [0.03])


class TestHistoricalDataset(unittest.TestCase):
    """Tests for HistoricalDataset."""

    def test_basic_creation(self):
        """Test construction from a mapping."""
        data = HistoricalDataset(
            {"stocks": [0.10, -0.20, 0.15], AssetClass.BONDS: [0.02, 0.05, 0.01]},
            inflation=[0.02, 0.03, 0.01],
            start_year=2000,
        )
        self.assertEqual(data.asset_classes, [AssetClass.STOCKS, AssetClass.BONDS])
        self.assertTrue(data.has("stocks"))
        self.assertFalse(data.has(AssetClass.CRYPTO))
        self.assertEqual(data.num_years, 3)
        self.assertEqual(data.end_year, 2002)
        self.assertTrue(data.has_inflation)
        self.assertAlmostEqual(data.summary(AssetClass.BONDS).mean, 0.08 / 3)

    def test_series_are_read_only(self):
        """Test the dataset can't be mutated through returned arrays."""
        data = HistoricalDataset({"stocks": [0.10, 0.20]})
        with self.assertRaises(ValueError):
            data.returns_for(AssetClass.STOCKS)[0] = 1.0

    def test_missing_class_raises(self):
        """Test lookups for absent classes."""
        data = HistoricalDataset({"stocks": [0.10]})
        with self.assertRaises(DataUnavailableError):
            data.returns_for(AssetClass.BONDS)
        with self.assertRaises(DataUnavailableError):
            data.require([AssetClass.STOCKS, AssetClass.BONDS])
        data.require([AssetClass.STOCKS])

    def test_malformed_data_raises(self):
        """Test empty, non-finite, and unknown series."""
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset({})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset({"stocks": []})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset({"stocks": [0.1, float("nan")]})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset({"stocks": [0.1, -1.5]})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset({"tulips": [0.1]})

    def test_from_dataframe(self):
        """Test table parsing with percent strings and ignored columns."""
        df = pd.DataFrame({
            "Year": [1990, 1991],
            "Stocks": ["10%", "-5%"],
            "Bonds": [0.03, 0.04],
            "Notes": ["x", "y"],
            "Inflation": ["2%", "3%"],
        })
        data = HistoricalDataset.from_dataframe(df)
        self.assertEqual(data.start_year, 1990)
        np.testing.assert_allclose(data.returns_for(AssetClass.STOCKS), [0.10, -0.05])
        np.testing.assert_allclose(data.inflation, [0.02, 0.03])
        self.assertEqual(data.asset_classes, [AssetClass.STOCKS, AssetClass.BONDS])

    def test_from_dataframe_nominal(self):
        """Test nominal returns are converted to real."""
        df = pd.DataFrame({"year": [2000, 2001], "stocks": [0.10, 0.05], "inflation": [0.05, 0.05]})
        data = HistoricalDataset.from_dataframe(df, nominal=True)
        self.assertAlmostEqual(data.returns_for(AssetClass.STOCKS)[0], 1.10 / 1.05 - 1)
        self.assertAlmostEqual(data.returns_for(AssetClass.STOCKS)[1], 0.0)

    def test_from_dataframe_nominal_without_inflation(self):
        """Test nominal conversion requires an inflation column."""
        df = pd.DataFrame({"stocks": [0.10, 0.05]})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset.from_dataframe(df, nominal=True)

    def test_from_dataframe_bad_cell(self):
        """Test unparseable cells are a data error."""
        df = pd.DataFrame({"stocks": ["10%", "oops"]})
        with self.assertRaises(DataUnavailableError):
            HistoricalDataset.from_dataframe(df)

    def test_synthetic(self):
        """Test the synthetic fallback is reproducible and complete."""
        a = HistoricalDataset.synthetic(seed=3)
        b = HistoricalDataset.synthetic(seed=3)
        self.assertEqual(a.asset_classes, list(AssetClass))
        self.assertEqual(a.num_years, len(US_CPI_INFLATION))
        np.testing.assert_array_equal(a.returns_for(AssetClass.STOCKS), b.returns_for(AssetClass.STOCKS))
        np.testing.assert_allclose(a.inflation, US_CPI_INFLATION)
        self.assertEqual(a.source, "synthetic")

    def test_to_dataframe(self):
        """Test export keeps the calendar years."""
        data = HistoricalDataset({"stocks": [0.1, 0.2]}, inflation=[0.01, 0.02], start_year=2010)
        df = data.to_dataframe()
        self.assertEqual(list(df.columns), ["stocks", "inflation"])
        self.assertEqual(list(df.index), [2010, 2011])


class TestLoadHistoricalDataset(unittest.TestCase):
    """Tests for load_historical_dataset."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.tmpdir.cleanup()

    def _write(self, name: str, text: str) -> str:
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_load_csv(self):
        """Test loading a CSV file."""
        path = self._write("returns.csv", "year,stocks,bonds,inflation\n2000,-9.1%,11.6%,3.4%\n2001,-11.9%,8.4%,2.8%\n")
        data = load_historical_dataset(path)
        self.assertEqual(data.start_year, 2000)
        self.assertAlmostEqual(data.returns_for(AssetClass.STOCKS)[0], -0.091)
        self.assertEqual(data.source, path)

    def test_missing_file_raises(self):
        """Test a missing file propagates as DataUnavailableError."""
        with self.assertRaises(DataUnavailableError):
            load_historical_dataset(os.path.join(self.tmpdir.name, "nope.csv"))

    def test_malformed_file_raises(self):
        """Test a file without asset class columns is rejected."""
        path = self._write("bad.csv", "year,foo\n2000,1\n")
        with self.assertRaises(DataUnavailableError):
            load_historical_dataset(path)

    def test_fallback_returns_synthetic(self):
        """Test the synthetic dataset is used only when requested."""
        path = os.path.join(self.tmpdir.name, "nope.csv")
        with self.assertLogs("firecalc.montecarlo.historical_data", level="WARNING"):
            data = load_historical_dataset(path, fallback=True, seed=1)
        self.assertEqual(data.source, "synthetic")


if __name__ == '__main__':
    unittest.main()
