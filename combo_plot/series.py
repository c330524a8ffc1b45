from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Literal, Mapping, Sequence

from combo_plot.config import DEFAULT_PALETTE
from combo_plot.errors import SeriesConfigError
from combo_plot.layers import ChartType


AxisSide = Literal["left", "right"]
CurveType = Literal["linear", "monotone", "cardinal", "basis", "step"]
StackOrder = Literal["none", "ascending", "descending", "insideOut", "reverse"]
StackOffset = Literal["none", "expand", "diverging", "silhouette", "wiggle"]
RegressionType = Literal["linear", "polynomial", "exponential"]
WaterfallKind = Literal["positive", "negative", "total", "subtotal"]
SeriesCallback = Callable[..., Any]

AXIS_SIDES: tuple[AxisSide, ...] = ("left", "right")
CURVE_TYPES: tuple[CurveType, ...] = ("linear", "monotone", "cardinal", "basis", "step")
STACK_ORDERS: tuple[StackOrder, ...] = ("none", "ascending", "descending", "insideOut", "reverse")
STACK_OFFSETS: tuple[StackOffset, ...] = ("none", "expand", "diverging", "silhouette", "wiggle")
REGRESSION_TYPES: tuple[RegressionType, ...] = ("linear", "polynomial", "exponential")

DEFAULT_GROUP_KEY = "default"

WATERFALL_COLORS: dict[WaterfallKind, str] = {
    "positive": "#10b981",
    "negative": "#ef4444",
    "total": "#3b82f6",
    "subtotal": "#8b5cf6",
}


@dataclass(frozen=True)
class SeriesDeclaration:
    type: ChartType | str
    value_field: str
    axis: AxisSide = "left"
    name: str | None = None
    group_key: str | None = None
    stack_group_key: str | None = None
    type_field: str | None = None
    color: str | None = None
    opacity: float | None = None

    # line / area
    curve: str | None = None
    baseline: float = 0.0
    stroke_width: float | None = None
    show_points: bool = True
    point_radius: float | None = None

    # stacked area
    stack_order: StackOrder = "none"
    stack_offset: StackOffset = "none"

    # scatter
    radius: float | None = None
    size_field: str | None = None
    size_range: tuple[float, float] | None = None
    color_field: str | None = None
    show_regression: bool = False
    regression_type: RegressionType = "linear"

    # waterfall
    positive_color: str = WATERFALL_COLORS["positive"]
    negative_color: str = WATERFALL_COLORS["negative"]
    total_color: str = WATERFALL_COLORS["total"]
    subtotal_color: str = WATERFALL_COLORS["subtotal"]
    show_connectors: bool = True

    style: Mapping[str, Any] = field(default_factory=dict)
    on_click: SeriesCallback | None = None
    on_hover: SeriesCallback | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, (str, ChartType)) or not str(self.type):
            raise SeriesConfigError(f"series type must be a non-empty string, got {self.type!r}")
        if not isinstance(self.value_field, str) or not self.value_field:
            raise SeriesConfigError(f"value_field must be a non-empty string, got {self.value_field!r}")
        if self.axis not in AXIS_SIDES:
            raise SeriesConfigError(f"axis must be 'left' or 'right', got {self.axis!r}")
        if self.stack_order not in STACK_ORDERS:
            raise SeriesConfigError(f"unsupported stack_order: {self.stack_order!r}")
        if self.stack_offset not in STACK_OFFSETS:
            raise SeriesConfigError(f"unsupported stack_offset: {self.stack_offset!r}")
        if self.regression_type not in REGRESSION_TYPES:
            raise SeriesConfigError(f"unsupported regression_type: {self.regression_type!r}")
        if self.opacity is not None and not 0.0 <= self.opacity <= 1.0:
            raise SeriesConfigError("opacity must be in [0, 1]")
        if self.size_range is not None:
            if len(self.size_range) != 2 or self.size_range[0] < 0 or self.size_range[1] < self.size_range[0]:
                raise SeriesConfigError("size_range must be (min, max) with 0 <= min <= max")
            object.__setattr__(self, "size_range", (float(self.size_range[0]), float(self.size_range[1])))

    @property
    def chart_type(self) -> ChartType | None:
        return ChartType.parse(self.type)

    @property
    def type_tag(self) -> str:
        return self.type.value if isinstance(self.type, ChartType) else str(self.type)

    @property
    def label(self) -> str:
        return self.name if self.name else self.value_field

    @property
    def resolved_group_key(self) -> str:
        return self.group_key or DEFAULT_GROUP_KEY

    @property
    def resolved_stack_group_key(self) -> str:
        return self.stack_group_key or DEFAULT_GROUP_KEY


def series_from_mapping(raw: Mapping[str, Any]) -> SeriesDeclaration:
    known = {f.name for f in fields(SeriesDeclaration)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise SeriesConfigError("unknown series keys: " + ", ".join(unknown))
    if "type" not in raw or "value_field" not in raw:
        raise SeriesConfigError("series requires `type` and `value_field`")
    values = dict(raw)
    if "size_range" in values and values["size_range"] is not None:
        values["size_range"] = tuple(values["size_range"])
    return SeriesDeclaration(**values)


def coerce_series(series: Sequence[SeriesDeclaration | Mapping[str, Any]]) -> list[SeriesDeclaration]:
    out: list[SeriesDeclaration] = []
    for item in series:
        if isinstance(item, SeriesDeclaration):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(series_from_mapping(item))
        else:
            raise SeriesConfigError(f"unsupported series declaration: {type(item)!r}")
    return out


def resolve_colors(series: Sequence[SeriesDeclaration], palette: Sequence[str] = DEFAULT_PALETTE) -> list[str]:
    """Explicit colours win; the rest cycle through ``palette`` by declaration index."""
    if not palette:
        raise ValueError("palette must not be empty")
    return [s.color or palette[i % len(palette)] for i, s in enumerate(series)]


def resolve_curve(name: str | None, default: str = "monotone") -> CurveType:
    candidate = name or default
    if candidate in CURVE_TYPES:
        return candidate  # type: ignore[return-value]
    return "linear"
