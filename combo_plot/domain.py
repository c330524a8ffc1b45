from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import math
from numbers import Real
from typing import Any, Literal, Mapping, Sequence

import numpy as np

from combo_plot.adapters.normalize import coerce_datetime, coerce_number, column_values, is_missing, to_timestamp
from combo_plot.errors import ChartInputError
from combo_plot.grouping import group_stacked_areas
from combo_plot.layers import ChartType
from combo_plot.series import AxisSide, SeriesDeclaration, WaterfallKind


DEFAULT_EXTENT: tuple[float, float] = (0.0, 1.0)
DEFAULT_HEADROOM_RATIO = 1.1

WATERFALL_KINDS: tuple[WaterfallKind, ...] = ("positive", "negative", "total", "subtotal")

XScaleKind = Literal["time", "linear", "band"]


@dataclass(frozen=True)
class AxisExtents:
    left: tuple[float, float] = DEFAULT_EXTENT
    right: tuple[float, float] = DEFAULT_EXTENT

    def for_axis(self, axis: AxisSide) -> tuple[float, float]:
        return self.left if axis == "left" else self.right


@dataclass(frozen=True)
class AxisOverrides:
    """Caller-supplied Y domains. A set side skips automatic resolution entirely."""

    left_domain: tuple[float, float] | None = None
    right_domain: tuple[float, float] | None = None

    def __post_init__(self) -> None:
        for name in ("left_domain", "right_domain"):
            value = getattr(self, name)
            if value is None:
                continue
            try:
                lo, hi = value
                pair = (float(lo), float(hi))
            except (TypeError, ValueError) as exc:
                raise ChartInputError(f"{name} must be a (min, max) pair of numbers") from exc
            if not all(math.isfinite(v) for v in pair):
                raise ChartInputError(f"{name} must be finite")
            object.__setattr__(self, name, pair)

    @classmethod
    def coerce(cls, value: "AxisOverrides | Mapping[str, Any] | None") -> "AxisOverrides":
        if value is None:
            return cls()
        if isinstance(value, AxisOverrides):
            return value
        if isinstance(value, Mapping):
            return cls(
                left_domain=value.get("left_domain", value.get("leftDomain")),
                right_domain=value.get("right_domain", value.get("rightDomain")),
            )
        raise ChartInputError(f"unsupported axis overrides: {type(value)!r}")

    def for_axis(self, axis: AxisSide) -> tuple[float, float] | None:
        return self.left_domain if axis == "left" else self.right_domain


@dataclass(frozen=True)
class XDomain:
    kind: XScaleKind
    values: tuple[Any, ...]


@dataclass(frozen=True)
class WaterfallStep:
    """One row of a waterfall: the running total before and after the row."""

    row_index: int
    kind: WaterfallKind
    value: float
    start: float
    end: float

    @property
    def is_absolute(self) -> bool:
        return self.kind in ("total", "subtotal")

    @property
    def low(self) -> float:
        return min(self.start, self.end)

    @property
    def high(self) -> float:
        return max(self.start, self.end)


def classify_waterfall_row(row: Mapping[str, Any], value: float, type_field: str | None) -> WaterfallKind:
    if type_field is not None:
        raw = row.get(type_field)
        if raw in WATERFALL_KINDS:
            return raw
    return "positive" if value >= 0 else "negative"


def waterfall_steps(rows: Sequence[Mapping[str, Any]], series: SeriesDeclaration) -> tuple[WaterfallStep, ...]:
    """Fold the rows into running-total steps.

    ``total``/``subtotal`` rows are absolute: they reset the running total to
    the row value and draw from the baseline. Every other row is a signed delta.
    """
    steps: list[WaterfallStep] = []
    running = 0.0
    for i, row in enumerate(rows):
        value = coerce_number(row.get(series.value_field))
        kind = classify_waterfall_row(row, value, series.type_field)
        if kind in ("total", "subtotal"):
            running = value
            steps.append(WaterfallStep(row_index=i, kind=kind, value=value, start=0.0, end=running))
        else:
            start = running
            running = start + value
            steps.append(WaterfallStep(row_index=i, kind=kind, value=value, start=start, end=running))
    return tuple(steps)


def waterfall_candidates(steps: Sequence[WaterfallStep]) -> list[float]:
    """Every value a waterfall bar touches, starting from the 0 baseline."""
    out = [0.0]
    for step in steps:
        out.append(step.start)
        out.append(step.end)
    return out


def stacked_totals(rows: Sequence[Mapping[str, Any]], series: Sequence[SeriesDeclaration]) -> dict[str, np.ndarray]:
    """Per-row sums for each stack group of one axis, keyed by stack group key in first-seen order."""
    totals: dict[str, np.ndarray] = {}
    for group in group_stacked_areas(series):
        summed = np.zeros(len(rows), dtype=np.float64)
        for field in group.value_fields:
            summed += column_values(rows, field)
        totals[group.key] = summed
    return totals


def resolve_axis_extent(
    rows: Sequence[Mapping[str, Any]],
    series: Sequence[SeriesDeclaration],
    *,
    headroom_ratio: float = DEFAULT_HEADROOM_RATIO,
) -> tuple[float, float]:
    """Extent for one Y axis from all series bound to it.

    Identity series contribute raw values, stacked areas their per-group row
    sums, waterfalls every running-total candidate. The zero floor and the
    headroom are applied once to the merged pool. Any stacked area pins the
    floor to exactly 0.
    """
    if not series:
        return DEFAULT_EXTENT

    stacked = [s for s in series if s.chart_type is ChartType.STACKED_AREA]
    waterfalls = [s for s in series if s.chart_type is ChartType.WATERFALL]
    identity = [s for s in series if s.chart_type not in (ChartType.STACKED_AREA, ChartType.WATERFALL)]

    pools: list[np.ndarray] = [column_values(rows, s.value_field) for s in identity]
    for s in waterfalls:
        pools.append(np.asarray(waterfall_candidates(waterfall_steps(rows, s)), dtype=np.float64))
    pools.extend(stacked_totals(rows, stacked).values())

    pool = np.concatenate(pools) if pools else np.empty(0, dtype=np.float64)
    if pool.size == 0:
        return DEFAULT_EXTENT

    lo = float(np.min(pool))
    hi = float(np.max(pool))
    floor = 0.0 if stacked else min(0.0, lo)
    ceiling = hi * headroom_ratio
    if ceiling == floor:
        # All-zero pools would collapse every point onto one pixel row.
        return DEFAULT_EXTENT
    return (floor, ceiling)


def resolve_domains(
    rows: Sequence[Mapping[str, Any]],
    series: Sequence[SeriesDeclaration],
    *,
    headroom_ratio: float = DEFAULT_HEADROOM_RATIO,
) -> AxisExtents:
    left = [s for s in series if s.axis == "left"]
    right = [s for s in series if s.axis == "right"]
    return AxisExtents(
        left=resolve_axis_extent(rows, left, headroom_ratio=headroom_ratio),
        right=resolve_axis_extent(rows, right, headroom_ratio=headroom_ratio),
    )


def detect_x_kind(first_value: Any) -> XScaleKind:
    if coerce_datetime(first_value) is not None:
        return "time"
    if isinstance(first_value, Real) and not isinstance(first_value, bool):
        return "linear"
    return "band"


def resolve_x_domain(rows: Sequence[Mapping[str, Any]], x_field: str) -> XDomain:
    """Pick the X scale kind from the first present value and collect its domain.

    Time and linear domains are ``(min, max)`` extents; band domains are the
    distinct categories in row order. Missing cells are left out.
    """
    raw = [v for v in (row.get(x_field) for row in rows) if not is_missing(v)]
    if not raw:
        return XDomain(kind="band", values=())
    kind = detect_x_kind(raw[0])

    if kind == "time":
        stamps: list[datetime] = [d for d in (coerce_datetime(v) for v in raw) if d is not None]
        # Naive and aware values compare through UTC seconds.
        return XDomain(kind="time", values=(min(stamps, key=to_timestamp), max(stamps, key=to_timestamp)))

    if kind == "linear":
        numbers = [float(v) for v in raw if isinstance(v, Real) and not isinstance(v, bool) and np.isfinite(float(v))]
        if not numbers:
            return XDomain(kind="linear", values=(0.0, 1.0))
        return XDomain(kind="linear", values=(min(numbers), max(numbers)))

    categories = dict.fromkeys(raw)
    return XDomain(kind="band", values=tuple(categories))
