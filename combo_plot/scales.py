from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
import math
from typing import Any, Hashable, Literal, Sequence, Union

import numpy as np

from combo_plot.adapters.normalize import coerce_datetime, from_timestamp, to_timestamp


ScaleKind = Literal["linear", "time", "band", "sqrt", "ordinal"]

CATEGORY10 = (
    "#1f77b4",
    "#ff7f0e",
    "#2ca02c",
    "#d62728",
    "#9467bd",
    "#8c564b",
    "#e377c2",
    "#7f7f7f",
    "#bcbd22",
    "#17becf",
)

_E10 = math.sqrt(50.0)
_E5 = math.sqrt(10.0)
_E2 = math.sqrt(2.0)


def tick_increment(start: float, stop: float, count: int) -> float:
    """d3's tick increment: positive steps for spans >= 1, negative reciprocal steps below."""
    if count <= 0:
        return 0.0
    step = (stop - start) / count
    if not math.isfinite(step) or step <= 0:
        return 0.0
    power = math.floor(math.log10(step))
    error = step / (10.0**power)
    if error >= _E10:
        factor = 10.0
    elif error >= _E5:
        factor = 5.0
    elif error >= _E2:
        factor = 2.0
    else:
        factor = 1.0
    if power >= 0:
        return factor * (10.0**power)
    return -(10.0 ** (-power)) / factor


def nice_extent(vmin: float, vmax: float, count: int = 10) -> tuple[float, float]:
    """Widen ``[vmin, vmax]`` outward to round tick boundaries, as d3's ``linear.nice``.

    Reversed extents keep their orientation. Zero-width or non-converging
    extents come back unchanged.
    """
    reverse = vmax < vmin
    start, stop = (vmax, vmin) if reverse else (vmin, vmax)
    prestep: float | None = None
    for _ in range(10):
        step = tick_increment(start, stop, count)
        if step == prestep:
            # Normalise -0.0 so exported plans stay stable.
            lo, hi = start + 0.0, stop + 0.0
            return (hi, lo) if reverse else (lo, hi)
        if step > 0:
            start = math.floor(start / step) * step
            stop = math.ceil(stop / step) * step
        elif step < 0:
            start = math.ceil(start * step) / step
            stop = math.floor(stop * step) / step
        else:
            break
        prestep = step
    return (vmin, vmax)


def generate_ticks(vmin: float, vmax: float, count: int) -> np.ndarray:
    """Round tick values inside ``[vmin, vmax]``."""
    if count <= 0:
        raise ValueError("count must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)
    lo, hi = (vmin, vmax) if vmin < vmax else (vmax, vmin)
    inc = tick_increment(lo, hi, count)
    if inc == 0.0:
        return np.empty(0, dtype=np.float64)
    if inc > 0:
        i0 = math.ceil(lo / inc)
        i1 = math.floor(hi / inc)
        ticks = np.arange(i0, i1 + 1, dtype=np.float64) * inc
    else:
        i0 = math.ceil(lo * -inc)
        i1 = math.floor(hi * -inc)
        ticks = np.arange(i0, i1 + 1, dtype=np.float64) / -inc
    # Normalize floating-point drift so values like -4.44e-16 become 0.
    step = abs(inc) if inc > 0 else 1.0 / abs(inc)
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks if vmin < vmax else ticks[::-1]


def format_tick(value: float, *, step: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    if step is not None and np.isfinite(step) and step > 0 and abs(value) <= step * 1e-9:
        value = 0.0
    abs_v = abs(value)
    decimals = _decimals_from_step(step) if step is not None else 6
    if abs_v != 0 and (abs_v >= 1e6 or (step is not None and abs(step) < 1e-4) or abs_v < 1e-6):
        return f"{value:.4e}"

    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant)
    except InvalidOperation:
        q = d
    out = format(q, "f")
    # Only trim trailing zeros for fractional values (preserve integer zeros like 30, 40).
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out


def format_ticks_for_axis(ticks: np.ndarray) -> list[str]:
    if ticks.size == 0:
        return []
    if ticks.size == 1:
        return [format_tick(float(ticks[0]))]
    step = float(abs(ticks[1] - ticks[0]))
    return [format_tick(float(v), step=step) for v in ticks]


def _decimals_from_step(step: float) -> int:
    if step <= 0 or not np.isfinite(step):
        return 6
    d = Decimal(str(step)).normalize()
    exp = d.as_tuple().exponent
    decimals = max(0, -int(exp))
    return min(12, decimals)


def _interpolate(t: float, r0: float, r1: float) -> float:
    return r0 + t * (r1 - r0)


@dataclass(frozen=True)
class LinearScale:
    domain: tuple[float, float]
    range: tuple[float, float]
    kind: ScaleKind = field(default="linear", init=False)

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        span = d1 - d0
        t = (float(value) - d0) / span if span != 0 else 0.5
        return _interpolate(t, *self.range)

    def invert(self, pixel: float) -> float:
        r0, r1 = self.range
        span = r1 - r0
        t = (float(pixel) - r0) / span if span != 0 else 0.5
        return _interpolate(t, *self.domain)

    def nice(self, count: int = 10) -> "LinearScale":
        return LinearScale(domain=nice_extent(self.domain[0], self.domain[1], count), range=self.range)

    def ticks(self, count: int = 10) -> np.ndarray:
        return generate_ticks(self.domain[0], self.domain[1], count)

    def tick_labels(self, count: int = 10) -> list[str]:
        return format_ticks_for_axis(self.ticks(count))


@dataclass(frozen=True)
class TimeScale:
    domain: tuple[datetime, datetime]
    range: tuple[float, float]
    kind: ScaleKind = field(default="time", init=False)

    def _seconds(self) -> tuple[float, float]:
        return (to_timestamp(self.domain[0]), to_timestamp(self.domain[1]))

    def __call__(self, value: Any) -> float | None:
        when = coerce_datetime(value)
        if when is None:
            return None
        s0, s1 = self._seconds()
        span = s1 - s0
        t = (to_timestamp(when) - s0) / span if span != 0 else 0.5
        return _interpolate(t, *self.range)

    def invert(self, pixel: float) -> datetime:
        r0, r1 = self.range
        s0, s1 = self._seconds()
        span = r1 - r0
        t = (float(pixel) - r0) / span if span != 0 else 0.5
        return from_timestamp(_interpolate(t, s0, s1), aware=self.domain[0].tzinfo is not None)


@dataclass(frozen=True)
class BandScale:
    """Categorical scale dividing the range into equal bands, as d3's ``scaleBand``."""

    domain: tuple[Hashable, ...]
    range: tuple[float, float]
    padding_inner: float = 0.0
    padding_outer: float = 0.0
    align: float = 0.5
    kind: ScaleKind = field(default="band", init=False)
    _starts: dict[Hashable, float] = field(default_factory=dict, init=False, repr=False, compare=False)
    _step: float = field(default=0.0, init=False, repr=False, compare=False)
    _bandwidth: float = field(default=0.0, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not 0.0 <= self.padding_inner <= 1.0:
            raise ValueError("padding_inner must be in [0, 1]")
        if self.padding_outer < 0.0:
            raise ValueError("padding_outer must be >= 0")
        n = len(self.domain)
        r0, r1 = self.range
        reverse = r1 < r0
        start, stop = (r1, r0) if reverse else (r0, r1)
        step = (stop - start) / max(1.0, n - self.padding_inner + self.padding_outer * 2)
        start += (stop - start - step * (n - self.padding_inner)) * self.align
        values = [start + step * i for i in range(n)]
        if reverse:
            values.reverse()
        object.__setattr__(self, "_step", step)
        object.__setattr__(self, "_bandwidth", step * (1 - self.padding_inner))
        object.__setattr__(self, "_starts", {key: values[i] for i, key in enumerate(self.domain)})

    @classmethod
    def with_padding(cls, domain: Sequence[Hashable], range: tuple[float, float], padding: float) -> "BandScale":
        return cls(domain=tuple(domain), range=range, padding_inner=padding, padding_outer=padding)

    def __call__(self, value: Hashable) -> float | None:
        return self._starts.get(value)

    def center(self, value: Hashable) -> float | None:
        start = self._starts.get(value)
        if start is None:
            return None
        return start + self._bandwidth / 2.0

    @property
    def bandwidth(self) -> float:
        return self._bandwidth

    @property
    def step(self) -> float:
        return self._step


@dataclass(frozen=True)
class SqrtScale:
    domain: tuple[float, float]
    range: tuple[float, float]
    kind: ScaleKind = field(default="sqrt", init=False)

    def __call__(self, value: float) -> float:
        d0, d1 = (_signed_sqrt(v) for v in self.domain)
        span = d1 - d0
        t = (_signed_sqrt(float(value)) - d0) / span if span != 0 else 0.5
        return _interpolate(t, *self.range)


@dataclass(frozen=True)
class OrdinalScale:
    domain: tuple[Hashable, ...]
    range: tuple[str, ...] = CATEGORY10
    kind: ScaleKind = field(default="ordinal", init=False)

    def __call__(self, value: Hashable) -> str | None:
        if not self.range:
            return None
        try:
            index = self.domain.index(value)
        except ValueError:
            return None
        return self.range[index % len(self.range)]


def _signed_sqrt(value: float) -> float:
    return math.copysign(math.sqrt(abs(value)), value)


Scale = Union[LinearScale, TimeScale, BandScale]
XScale = Union[LinearScale, TimeScale, BandScale]


def create_x_scale(kind: str, domain: Sequence[Any], content_width: float, *, padding: float = 0.1, nice_count: int = 10) -> XScale:
    """X maps onto ``[0, width]``: time extents linearly, numeric extents linearly with nice, categories as bands."""
    pixel_range = (0.0, float(content_width))
    if kind == "time":
        return TimeScale(domain=(domain[0], domain[1]), range=pixel_range)
    if kind == "linear":
        return LinearScale(domain=(float(domain[0]), float(domain[1])), range=pixel_range).nice(nice_count)
    return BandScale.with_padding(domain, pixel_range, padding)


def create_y_scale(extent: tuple[float, float], content_height: float, *, nice: bool = True, nice_count: int = 10) -> LinearScale:
    """Y maps ``[min, max]`` onto ``[height, 0]`` so larger values sit higher on screen."""
    scale = LinearScale(domain=(float(extent[0]), float(extent[1])), range=(float(content_height), 0.0))
    return scale.nice(nice_count) if nice else scale


def scale_bandwidth(scale: Any, fallback: float) -> float:
    if isinstance(scale, BandScale):
        return scale.bandwidth
    return fallback


def scale_position(scale: XScale, value: Any) -> float | None:
    """Pixel position of an X value: band centres for categories, direct mapping otherwise."""
    if isinstance(scale, BandScale):
        try:
            return scale.center(value)
        except TypeError:
            return None
    if isinstance(scale, TimeScale):
        return scale(value)
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return scale(number)
