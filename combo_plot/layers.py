from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Literal, Sequence, TypeVar


LayerGroup = Literal["background", "primary", "overlay", "specialty"]

DEFAULT_LAYER_RANK = 50
DEFAULT_Z_INDEX = 50


class ChartType(str, Enum):
    STACKED_AREA = "stackedArea"
    AREA = "area"
    BAR = "bar"
    WATERFALL = "waterfall"
    HEATMAP = "heatmap"
    BOXPLOT = "boxplot"
    VIOLIN = "violin"
    TREEMAP = "treemap"
    PIE = "pie"
    SCATTER = "scatter"
    CANDLESTICK = "candlestick"
    LINE = "line"
    GAUGE = "gauge"
    RADAR = "radar"
    CORRELOGRAM = "correlogram"
    FUNNEL = "funnel"

    @classmethod
    def parse(cls, tag: "ChartType | str | None") -> "ChartType | None":
        """Return the member for ``tag`` or None when the tag is not a known chart type."""
        if isinstance(tag, ChartType):
            return tag
        if not isinstance(tag, str):
            return None
        try:
            return cls(tag)
        except ValueError:
            return None


# Declaration order of the enum is the canonical back-to-front order.
CHART_LAYER_ORDER: dict[ChartType, int] = {chart_type: rank for rank, chart_type in enumerate(ChartType)}

DEFAULT_Z_INDEX_MAP: dict[ChartType, int] = {chart_type: (rank + 1) * 10 for chart_type, rank in CHART_LAYER_ORDER.items()}

CHART_LAYER_GROUPS: dict[LayerGroup, tuple[ChartType, ...]] = {
    "background": (ChartType.STACKED_AREA, ChartType.AREA, ChartType.HEATMAP),
    "primary": (
        ChartType.BAR,
        ChartType.WATERFALL,
        ChartType.BOXPLOT,
        ChartType.VIOLIN,
        ChartType.TREEMAP,
        ChartType.PIE,
    ),
    "overlay": (ChartType.SCATTER, ChartType.CANDLESTICK, ChartType.LINE),
    "specialty": (ChartType.GAUGE, ChartType.RADAR, ChartType.CORRELOGRAM, ChartType.FUNNEL),
}


def layer_rank(chart_type: ChartType | str | None, default: int = DEFAULT_LAYER_RANK) -> int:
    parsed = ChartType.parse(chart_type)
    if parsed is None:
        return default
    return CHART_LAYER_ORDER[parsed]


def z_index(chart_type: ChartType | str | None) -> int:
    parsed = ChartType.parse(chart_type)
    if parsed is None:
        return DEFAULT_Z_INDEX
    return DEFAULT_Z_INDEX_MAP[parsed]


def layer_group(chart_type: ChartType | str | None) -> LayerGroup | None:
    parsed = ChartType.parse(chart_type)
    if parsed is None:
        return None
    for group, members in CHART_LAYER_GROUPS.items():
        if parsed in members:
            return group
    return None


T = TypeVar("T")


def sort_by_layer(
    items: Sequence[T],
    *,
    type_of: Callable[[T], Any] | None = None,
    default_rank: int = DEFAULT_LAYER_RANK,
) -> list[T]:
    """Stable back-to-front ordering; equal ranks keep declaration order.

    Items expose the chart type as a ``type`` attribute or a ``"type"`` key
    unless ``type_of`` says where to find it.
    """

    def _rank(item: T) -> int:
        if type_of is not None:
            tag = type_of(item)
        elif isinstance(item, dict):
            tag = item.get("type")
        else:
            tag = getattr(item, "type", None)
        return layer_rank(tag, default_rank)

    return sorted(items, key=_rank)
