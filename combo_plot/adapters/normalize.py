from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from decimal import Decimal
import math
from typing import Any

import numpy as np

from combo_plot.errors import ChartInputError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


Row = dict[str, Any]


def normalize_rows(data: Any) -> tuple[Row, ...]:
    """Accept record lists, DataFrames or column mappings and return ordered row dicts.

    ``None`` and empty inputs give an empty tuple. Shapes that cannot be rows at
    all are a caller bug and raise :class:`ChartInputError`.
    """
    if data is None:
        return ()

    if pd is not None and isinstance(data, pd.DataFrame):
        return tuple(dict(record) for record in data.to_dict(orient="records"))

    if isinstance(data, Mapping):
        return _rows_from_columns(data)

    if isinstance(data, (str, bytes, bytearray)) or not isinstance(data, Sequence):
        raise ChartInputError(f"unsupported rows input type: {type(data)!r}")

    rows: list[Row] = []
    for i, row in enumerate(data):
        if not isinstance(row, Mapping):
            raise ChartInputError(f"row {i} must be a mapping, got {type(row)!r}")
        rows.append(dict(row))
    return tuple(rows)


def _rows_from_columns(columns: Mapping[str, Any]) -> tuple[Row, ...]:
    if not columns:
        return ()
    lists = {str(name): _column_to_list(values, label=str(name)) for name, values in columns.items()}
    lengths = {len(values) for values in lists.values()}
    if len(lengths) != 1:
        detail = ", ".join(f"{name}={len(values)}" for name, values in lists.items())
        raise ChartInputError(f"column length mismatch: {detail}")
    size = lengths.pop()
    names = list(lists)
    return tuple({name: lists[name][i] for name in names} for i in range(size))


def _column_to_list(values: Any, *, label: str) -> list[Any]:
    if torch is not None and isinstance(values, torch.Tensor):
        tensor = values.detach()
        if tensor.ndim != 1:
            raise ChartInputError(f"column {label} must be 1-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return tensor.tolist()

    if pd is not None and isinstance(values, pd.Series):
        return values.tolist()

    if isinstance(values, np.ndarray):
        if values.ndim != 1:
            raise ChartInputError(f"column {label} must be 1-D")
        return values.tolist()

    if isinstance(values, Sequence) and not isinstance(values, (str, bytes, bytearray)):
        return list(values)

    raise ChartInputError(f"unsupported column type for {label}: {type(values)!r}")


def coerce_number(value: Any) -> float:
    """Numeric view of a cell. Missing, non-numeric and non-finite values become 0.0."""
    if value is None or isinstance(value, (str, bytes)) and not value.strip():
        return 0.0
    if isinstance(value, Decimal):
        out = float(value)
    else:
        try:
            out = float(value)
        except (TypeError, ValueError, OverflowError):
            return 0.0
    if not math.isfinite(out):
        return 0.0
    return out


def column_values(rows: Sequence[Mapping[str, Any]], field: str) -> np.ndarray:
    return np.fromiter((coerce_number(row.get(field)) for row in rows), dtype=np.float64, count=len(rows))


def is_missing(value: Any) -> bool:
    """True for empty cells: None, NaN and the pandas/numpy not-a-time markers."""
    if value is None:
        return True
    if pd is not None and value is pd.NaT:
        return True
    if isinstance(value, (np.datetime64, np.timedelta64)):
        return bool(np.isnat(value))
    if isinstance(value, float):
        return math.isnan(value)
    return False


def coerce_datetime(value: Any) -> datetime | None:
    # pd.NaT passes isinstance(datetime) but has no timestamp.
    if is_missing(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, np.datetime64):
        return value.astype("datetime64[us]").astype(datetime)
    if isinstance(value, str) and _looks_like_iso_date(value):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    return None


def to_timestamp(value: datetime) -> float:
    """POSIX seconds; naive datetimes are read as UTC so results do not depend on the host zone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def from_timestamp(seconds: float, *, aware: bool = False) -> datetime:
    out = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return out if aware else out.replace(tzinfo=None)


def _looks_like_iso_date(text: str) -> bool:
    s = text.strip()
    return len(s) >= 10 and s[4] == "-" and s[7] == "-" and s[:4].isdigit()
