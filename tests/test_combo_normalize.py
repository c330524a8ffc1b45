from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
import unittest

import numpy as np
import pandas as pd

from combo_plot.adapters.normalize import (
    coerce_datetime,
    coerce_number,
    column_values,
    from_timestamp,
    is_missing,
    normalize_rows,
    to_timestamp,
)
from combo_plot.errors import ChartInputError

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None


class NormalizeRowsTests(unittest.TestCase):
    def test_record_sequences_are_copied(self) -> None:
        source = [{"x": "a", "v": 1}]
        rows = normalize_rows(source)
        self.assertEqual(rows, ({"x": "a", "v": 1},))
        rows[0]["v"] = 2
        self.assertEqual(source[0]["v"], 1)

    def test_empty_inputs(self) -> None:
        self.assertEqual(normalize_rows(None), ())
        self.assertEqual(normalize_rows([]), ())
        self.assertEqual(normalize_rows({}), ())

    def test_column_mapping(self) -> None:
        rows = normalize_rows({"x": ["a", "b"], "v": np.array([1.5, 2.5]), "w": pd.Series([3, 4])})
        self.assertEqual(rows, ({"x": "a", "v": 1.5, "w": 3}, {"x": "b", "v": 2.5, "w": 4}))

    def test_column_length_mismatch_raises(self) -> None:
        with self.assertRaises(ChartInputError):
            normalize_rows({"x": ["a", "b"], "v": [1]})
        with self.assertRaises(ChartInputError):
            normalize_rows({"v": np.zeros((2, 2))})

    def test_dataframe(self) -> None:
        frame = pd.DataFrame({"month": ["Jan", "Feb"], "sales": [10, 20]})
        rows = normalize_rows(frame)
        self.assertEqual([r["month"] for r in rows], ["Jan", "Feb"])
        self.assertEqual([float(r["sales"]) for r in rows], [10.0, 20.0])

    @unittest.skipIf(torch is None, "torch not installed")
    def test_torch_columns(self) -> None:
        rows = normalize_rows({"x": [1, 2, 3], "v": torch.tensor([0.5, 1.5, 2.5])})
        self.assertEqual([r["v"] for r in rows], [0.5, 1.5, 2.5])

    def test_unsupported_inputs_raise(self) -> None:
        with self.assertRaises(ChartInputError):
            normalize_rows("x,v")
        with self.assertRaises(ChartInputError):
            normalize_rows(42)
        with self.assertRaises(ChartInputError):
            normalize_rows([{"x": 1}, ("not", "a", "row")])


class CoercionTests(unittest.TestCase):
    def test_coerce_number(self) -> None:
        self.assertEqual(coerce_number(3), 3.0)
        self.assertEqual(coerce_number("2.5"), 2.5)
        self.assertEqual(coerce_number(Decimal("1.25")), 1.25)
        self.assertEqual(coerce_number(np.int64(7)), 7.0)
        for bad in (None, "", "  ", "abc", float("nan"), float("inf"), object(), [1]):
            self.assertEqual(coerce_number(bad), 0.0)

    def test_column_values(self) -> None:
        values = column_values([{"v": 1}, {"v": "x"}, {}], "v")
        self.assertEqual(values.dtype, np.float64)
        self.assertEqual(values.tolist(), [1.0, 0.0, 0.0])

    def test_coerce_datetime(self) -> None:
        self.assertEqual(coerce_datetime(date(2024, 5, 1)), datetime(2024, 5, 1))
        self.assertEqual(coerce_datetime(np.datetime64("2024-05-01T12:00")), datetime(2024, 5, 1, 12))
        self.assertEqual(coerce_datetime("2024-05-01"), datetime(2024, 5, 1))
        self.assertIsNone(coerce_datetime(np.datetime64("NaT")))
        self.assertIsNone(coerce_datetime("Q1"))
        self.assertIsNone(coerce_datetime("2024-13-45"))
        self.assertIsNone(coerce_datetime(20240501))
        self.assertIsNone(coerce_datetime(pd.NaT))
        self.assertIsNone(coerce_datetime(float("nan")))
        self.assertEqual(coerce_datetime(pd.Timestamp("2024-05-01")), datetime(2024, 5, 1))

    def test_is_missing(self) -> None:
        for value in (None, pd.NaT, np.datetime64("NaT"), float("nan")):
            self.assertTrue(is_missing(value))
        for value in (0, "", "Q1", datetime(2024, 1, 1), np.datetime64("2024-01-01")):
            self.assertFalse(is_missing(value))

    def test_timestamps_read_naive_as_utc(self) -> None:
        naive = datetime(2024, 1, 1)
        self.assertEqual(to_timestamp(naive), to_timestamp(naive.replace(tzinfo=timezone.utc)))
        self.assertEqual(from_timestamp(to_timestamp(naive)), naive)
        self.assertEqual(from_timestamp(0.0, aware=True), datetime(1970, 1, 1, tzinfo=timezone.utc))


if __name__ == "__main__":
    unittest.main()
