from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from combo_plot.adapters.normalize import coerce_datetime, coerce_number, to_timestamp
from combo_plot.config import ComboConfig
from combo_plot.diagnostics import DiagnosticSink, null_sink
from combo_plot.domain import AxisExtents, WaterfallStep, XDomain, waterfall_steps
from combo_plot.grouping import BarSlot, StackGroup, allocate_bar_groups, group_stacked_areas
from combo_plot.layers import ChartType, LayerGroup, layer_group, layer_rank, sort_by_layer, z_index
from combo_plot.regression import RegressionFit, fit_regression
from combo_plot.scale_table import SCALE_X, Y_SCALE_NAMES, ScaleTable, y_scale_for
from combo_plot.scales import (
    BandScale,
    LinearScale,
    OrdinalScale,
    SqrtScale,
    TimeScale,
    XScale,
    scale_bandwidth,
    scale_position,
)
from combo_plot.series import CurveType, SeriesDeclaration, WaterfallKind, resolve_colors, resolve_curve

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlotPoint:
    x: float
    y: float
    x_value: Any
    value: float
    row_index: int
    radius: float | None = None
    color: str | None = None


@dataclass(frozen=True)
class WaterfallBar:
    row_index: int
    x: float
    width: float
    kind: WaterfallKind
    value: float
    start: float
    end: float
    y_top: float
    y_bottom: float
    color: str


@dataclass(frozen=True)
class Connector:
    x0: float
    x1: float
    y: float


@dataclass(frozen=True)
class RegressionLine:
    fit: RegressionFit
    points: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class SeriesPlan:
    """Everything a shape renderer needs for one series: scale handles, colours, pixel points."""

    series: SeriesDeclaration
    index: int
    chart_type: ChartType | None
    layer_rank: int
    z_index: int
    layer_group: LayerGroup | None
    x_scale: str
    y_scale: str
    color: str
    opacity: float
    points: tuple[PlotPoint, ...] = ()
    curve: CurveType | None = None
    stroke_width: float | None = None
    point_radius: float | None = None
    baseline_px: float | None = None
    bar_slot: BarSlot | None = None
    stack_group: StackGroup | None = None
    waterfall_bars: tuple[WaterfallBar, ...] = ()
    connectors: tuple[Connector, ...] = ()
    regression: RegressionLine | None = None

    @property
    def name(self) -> str:
        return self.series.label

    @property
    def type_tag(self) -> str:
        return self.series.type_tag

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "type": self.type_tag,
            "index": self.index,
            "layer_rank": self.layer_rank,
            "z_index": self.z_index,
            "layer_group": self.layer_group,
            "x_scale": self.x_scale,
            "y_scale": self.y_scale,
            "color": self.color,
            "opacity": self.opacity,
            "series": declaration_to_dict(self.series),
            "points": [_point_dict(p) for p in self.points],
        }
        for name in ("curve", "stroke_width", "point_radius", "baseline_px"):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        if self.bar_slot is not None:
            out["bar_slot"] = {
                "group_key": self.bar_slot.group_key,
                "index": self.bar_slot.index,
                "group_size": self.bar_slot.group_size,
                "width": self.bar_slot.width,
                "offset": self.bar_slot.offset,
            }
        if self.stack_group is not None:
            out["stack_group"] = stack_group_to_dict(self.stack_group)
        if self.waterfall_bars:
            out["waterfall_bars"] = [
                {
                    "row_index": b.row_index,
                    "x": b.x,
                    "width": b.width,
                    "kind": b.kind,
                    "value": b.value,
                    "start": b.start,
                    "end": b.end,
                    "y_top": b.y_top,
                    "y_bottom": b.y_bottom,
                    "color": b.color,
                }
                for b in self.waterfall_bars
            ]
        if self.connectors:
            out["connectors"] = [{"x0": c.x0, "x1": c.x1, "y": c.y} for c in self.connectors]
        if self.regression is not None:
            out["regression"] = {
                "kind": self.regression.fit.kind,
                "coefficients": list(self.regression.fit.coefficients),
                "r_squared": self.regression.fit.r_squared,
                "equation": self.regression.fit.equation(),
                "points": [list(p) for p in self.regression.points],
            }
        return out


@dataclass(frozen=True)
class RenderPlan:
    series: tuple[SeriesPlan, ...]
    scales: ScaleTable
    extents: AxisExtents
    x_domain: XDomain
    content_width: float
    content_height: float
    stack_groups: tuple[StackGroup, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.series

    @classmethod
    def empty(cls, content_width: float, content_height: float) -> "RenderPlan":
        return cls(
            series=(),
            scales=ScaleTable().seal(),
            extents=AxisExtents(),
            x_domain=XDomain(kind="band", values=()),
            content_width=content_width,
            content_height=content_height,
        )

    def series_named(self, name: str) -> SeriesPlan | None:
        for plan in self.series:
            if plan.name == name:
                return plan
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": {"width": self.content_width, "height": self.content_height},
            "empty": self.is_empty,
            "extents": {"left": list(self.extents.left), "right": list(self.extents.right)},
            "x_domain": {"kind": self.x_domain.kind, "values": [_jsonable(v) for v in self.x_domain.values]},
            "scales": self.scales.to_dict(),
            "stack_groups": [stack_group_to_dict(g) for g in self.stack_groups],
            "skipped": list(self.skipped),
            "series": [plan.to_dict() for plan in self.series],
        }


def declaration_to_dict(series: SeriesDeclaration) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for f in fields(series):
        if f.name in ("on_click", "on_hover"):
            continue
        value = getattr(series, f.name)
        if f.name == "type":
            value = series.type_tag
        elif f.name == "style":
            value = dict(value)
        elif isinstance(value, tuple):
            value = list(value)
        out[f.name] = value
    return out


def stack_group_to_dict(group: StackGroup) -> dict[str, Any]:
    return {
        "key": group.key,
        "axis": group.axis,
        "members": list(group.members),
        "value_fields": list(group.value_fields),
        "stack_order": group.stack_order,
        "stack_offset": group.stack_offset,
    }


def _point_dict(point: PlotPoint) -> dict[str, Any]:
    out: dict[str, Any] = {
        "x": point.x,
        "y": point.y,
        "x_value": _jsonable(point.x_value),
        "value": point.value,
        "row_index": point.row_index,
    }
    if point.radius is not None:
        out["radius"] = point.radius
    if point.color is not None:
        out["color"] = point.color
    return out


def _jsonable(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


@dataclass
class _PassContext:
    rows: Sequence[Mapping[str, Any]]
    series: Sequence[SeriesDeclaration]
    x_field: str
    x_scale: XScale
    config: ComboConfig
    colors: list[str]
    bandwidth: float
    bar_slots: dict[int, BarSlot] = field(default_factory=dict)
    stack_groups: dict[int, StackGroup] = field(default_factory=dict)

    def x_position(self, row: Mapping[str, Any]) -> float | None:
        return scale_position(self.x_scale, row.get(self.x_field))


SeriesBuilder = Callable[[_PassContext, SeriesDeclaration, int, LinearScale], SeriesPlan]


def _base_plan(
    ctx: _PassContext,
    series: SeriesDeclaration,
    index: int,
    *,
    opacity: float,
    points: tuple[PlotPoint, ...],
    **extra: Any,
) -> SeriesPlan:
    return SeriesPlan(
        series=series,
        index=index,
        chart_type=series.chart_type,
        layer_rank=layer_rank(series.type, ctx.config.default_layer_rank),
        z_index=z_index(series.type),
        layer_group=layer_group(series.type),
        x_scale=SCALE_X,
        y_scale=Y_SCALE_NAMES[series.axis],
        color=ctx.colors[index],
        opacity=series.opacity if series.opacity is not None else opacity,
        points=points,
        **extra,
    )


def _map_points(ctx: _PassContext, series: SeriesDeclaration, y_scale: LinearScale, *, x_offset: float = 0.0) -> tuple[PlotPoint, ...]:
    points: list[PlotPoint] = []
    for i, row in enumerate(ctx.rows):
        x = ctx.x_position(row)
        if x is None:
            continue
        value = coerce_number(row.get(series.value_field))
        points.append(
            PlotPoint(
                x=x + x_offset,
                y=y_scale(value),
                x_value=row.get(ctx.x_field),
                value=value,
                row_index=i,
            )
        )
    return tuple(points)


def _plan_bar(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    slot = ctx.bar_slots[index]
    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.bar_opacity,
        points=_map_points(ctx, series, y_scale, x_offset=slot.offset),
        bar_slot=slot,
        baseline_px=y_scale(0.0),
    )


def _plan_line(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.line_opacity,
        points=_map_points(ctx, series, y_scale),
        curve=resolve_curve(series.curve, ctx.config.default_curve),
        stroke_width=series.stroke_width if series.stroke_width is not None else ctx.config.stroke_width,
        point_radius=(series.point_radius if series.point_radius is not None else ctx.config.point_radius)
        if series.show_points
        else None,
    )


def _plan_area(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.area_opacity,
        points=_map_points(ctx, series, y_scale),
        curve=resolve_curve(series.curve, ctx.config.default_curve),
        baseline_px=y_scale(series.baseline),
    )


def _plan_stacked_area(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    group = ctx.stack_groups[index]
    # The whole group shares the first member's curve.
    leader = ctx.series[group.members[0]]
    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.stacked_area_opacity,
        points=_map_points(ctx, series, y_scale),
        curve=resolve_curve(leader.curve, ctx.config.default_curve),
        baseline_px=y_scale(0.0),
        stack_group=group,
    )


def _plan_scatter(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    points = _map_points(ctx, series, y_scale)
    default_radius = series.radius if series.radius is not None else ctx.config.scatter_radius

    size_scale: SqrtScale | None = None
    if series.size_field is not None and series.size_range is not None and points:
        sizes = [coerce_number(ctx.rows[p.row_index].get(series.size_field)) for p in points]
        size_scale = SqrtScale(domain=(min(sizes), max(sizes)), range=series.size_range)

    color_scale: OrdinalScale | None = None
    if series.color_field is not None:
        categories = tuple(
            dict.fromkeys(
                ctx.rows[p.row_index].get(series.color_field)
                for p in points
                if ctx.rows[p.row_index].get(series.color_field) is not None
            )
        )
        if categories:
            color_scale = OrdinalScale(domain=categories)

    styled: list[PlotPoint] = []
    for p in points:
        row = ctx.rows[p.row_index]
        radius = size_scale(coerce_number(row.get(series.size_field))) if size_scale is not None else default_radius
        color = color_scale(row.get(series.color_field)) if color_scale is not None else None
        styled.append(PlotPoint(x=p.x, y=p.y, x_value=p.x_value, value=p.value, row_index=p.row_index, radius=radius, color=color))

    regression = _regression_line(ctx, series, tuple(styled), y_scale) if series.show_regression else None
    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.scatter_opacity,
        points=tuple(styled),
        point_radius=default_radius,
        regression=regression,
    )


def _numeric_x(x_scale: XScale, value: Any) -> float | None:
    if isinstance(x_scale, BandScale):
        try:
            return float(x_scale.domain.index(value))
        except ValueError:
            return None
    if isinstance(x_scale, TimeScale):
        when = coerce_datetime(value)
        return to_timestamp(when) if when is not None else None
    return coerce_number(value)


def _regression_line(
    ctx: _PassContext,
    series: SeriesDeclaration,
    points: tuple[PlotPoint, ...],
    y_scale: LinearScale,
) -> RegressionLine | None:
    usable = [(nx, p) for p in points if (nx := _numeric_x(ctx.x_scale, p.x_value)) is not None]
    xs = np.asarray([nx for nx, _ in usable], dtype=np.float64)
    ys = np.asarray([p.value for _, p in usable], dtype=np.float64)
    fit = fit_regression(xs, ys, series.regression_type)
    if fit is None:
        LOGGER.debug("not enough points for %s regression on series %s", series.regression_type, series.label)
        return None
    pixel_by_x = dict(sorted((nx, p.x) for nx, p in usable))
    predicted = fit.predict(np.asarray(list(pixel_by_x), dtype=np.float64))
    line = tuple((px, y_scale(float(py))) for px, py in zip(pixel_by_x.values(), predicted.tolist(), strict=True))
    return RegressionLine(fit=fit, points=line)


def _plan_waterfall(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    colors: dict[WaterfallKind, str] = {
        "positive": series.positive_color,
        "negative": series.negative_color,
        "total": series.total_color,
        "subtotal": series.subtotal_color,
    }
    width = ctx.bandwidth
    bars: list[WaterfallBar] = []
    points: list[PlotPoint] = []
    for step in waterfall_steps(ctx.rows, series):
        row = ctx.rows[step.row_index]
        x = ctx.x_position(row)
        if x is None:
            continue
        bars.append(_waterfall_bar(step, x, width, y_scale, colors[step.kind]))
        points.append(
            PlotPoint(
                x=x,
                y=y_scale(step.end),
                x_value=row.get(ctx.x_field),
                value=step.value,
                row_index=step.row_index,
            )
        )

    connectors: list[Connector] = []
    if series.show_connectors:
        for prev, cur in zip(bars, bars[1:]):
            connectors.append(Connector(x0=prev.x + prev.width / 2.0, x1=cur.x - cur.width / 2.0, y=y_scale(prev.end)))

    return _base_plan(
        ctx,
        series,
        index,
        opacity=ctx.config.waterfall_opacity,
        points=tuple(points),
        baseline_px=y_scale(0.0),
        waterfall_bars=tuple(bars),
        connectors=tuple(connectors),
    )


def _waterfall_bar(step: WaterfallStep, x: float, width: float, y_scale: LinearScale, color: str) -> WaterfallBar:
    return WaterfallBar(
        row_index=step.row_index,
        x=x,
        width=width,
        kind=step.kind,
        value=step.value,
        start=step.start,
        end=step.end,
        y_top=y_scale(step.high),
        y_bottom=y_scale(step.low),
        color=color,
    )


def _plan_points(ctx: _PassContext, series: SeriesDeclaration, index: int, y_scale: LinearScale) -> SeriesPlan:
    return _base_plan(ctx, series, index, opacity=1.0, points=_map_points(ctx, series, y_scale))


SERIES_BUILDERS: dict[ChartType, SeriesBuilder] = {
    ChartType.STACKED_AREA: _plan_stacked_area,
    ChartType.AREA: _plan_area,
    ChartType.BAR: _plan_bar,
    ChartType.WATERFALL: _plan_waterfall,
    ChartType.HEATMAP: _plan_points,
    ChartType.BOXPLOT: _plan_points,
    ChartType.VIOLIN: _plan_points,
    ChartType.TREEMAP: _plan_points,
    ChartType.PIE: _plan_points,
    ChartType.SCATTER: _plan_scatter,
    ChartType.CANDLESTICK: _plan_points,
    ChartType.LINE: _plan_line,
    ChartType.GAUGE: _plan_points,
    ChartType.RADAR: _plan_points,
    ChartType.CORRELOGRAM: _plan_points,
    ChartType.FUNNEL: _plan_points,
}

_UNHANDLED = set(ChartType) - set(SERIES_BUILDERS)
if _UNHANDLED:
    raise RuntimeError("chart types without a series builder: " + ", ".join(sorted(t.value for t in _UNHANDLED)))


def dispatch_series(
    rows: Sequence[Mapping[str, Any]],
    series: Sequence[SeriesDeclaration],
    x_field: str,
    scales: ScaleTable,
    *,
    config: ComboConfig | None = None,
    diagnostics: DiagnosticSink | None = None,
) -> tuple[tuple[SeriesPlan, ...], tuple[str, ...]]:
    """Build one plan per series in layer order.

    Series whose Y axis has no registered scale are skipped and reported, as
    is everything when the X scale is missing. Returns ``(plans, skipped names)``.
    """
    cfg = config or ComboConfig()
    sink = diagnostics or null_sink

    x_scale = scales.get(SCALE_X)
    if x_scale is None:
        for s in series:
            _report_skip(sink, s, "missing_x_scale")
        return (), tuple(s.label for s in series)

    bandwidth = scale_bandwidth(x_scale, cfg.fallback_bandwidth)
    stack_groups = group_stacked_areas(series)
    ctx = _PassContext(
        rows=rows,
        series=series,
        x_field=x_field,
        x_scale=x_scale,
        config=cfg,
        colors=resolve_colors(series, cfg.palette),
        bandwidth=bandwidth,
        bar_slots=allocate_bar_groups(series, bandwidth),
        stack_groups={member: group for group in stack_groups for member in group.members},
    )

    ordered = sort_by_layer(list(enumerate(series)), type_of=lambda pair: pair[1].type, default_rank=cfg.default_layer_rank)
    plans: list[SeriesPlan] = []
    skipped: list[str] = []
    for index, s in ordered:
        y_scale = y_scale_for(scales, s.axis)
        if y_scale is None:
            _report_skip(sink, s, "missing_scale")
            skipped.append(s.label)
            continue
        chart_type = s.chart_type
        if chart_type is None:
            LOGGER.debug("series %s has unknown chart type %r; drawing as plain points", s.label, s.type_tag)
            sink({"action": "unknown_chart_type", "series": s.label, "axis": s.axis, "reason": s.type_tag})
            builder = _plan_points
        else:
            builder = SERIES_BUILDERS[chart_type]
        plans.append(builder(ctx, s, index, y_scale))
    return tuple(plans), tuple(skipped)


def _report_skip(sink: DiagnosticSink, series: SeriesDeclaration, reason: str) -> None:
    LOGGER.warning("skipping series %s on %s axis: %s", series.label, series.axis, reason)
    sink({"action": "series_skipped", "series": series.label, "axis": series.axis, "reason": reason})
