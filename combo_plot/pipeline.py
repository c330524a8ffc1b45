from __future__ import annotations

import logging
from numbers import Real
from typing import Any, Mapping, Sequence

from combo_plot.adapters.normalize import normalize_rows
from combo_plot.config import ComboConfig
from combo_plot.diagnostics import DiagnosticSink, null_sink
from combo_plot.dispatch import RenderPlan, dispatch_series
from combo_plot.domain import AxisExtents, AxisOverrides, resolve_axis_extent, resolve_x_domain
from combo_plot.errors import ChartInputError
from combo_plot.grouping import group_stacked_areas
from combo_plot.scale_table import build_scale_table
from combo_plot.series import SeriesDeclaration, coerce_series

LOGGER = logging.getLogger(__name__)


def render(
    rows: Any,
    series: Sequence[SeriesDeclaration | Mapping[str, Any]] | None,
    x_field: str,
    content_width: float,
    content_height: float,
    axis_overrides: AxisOverrides | Mapping[str, Any] | None = None,
    *,
    config: ComboConfig | None = None,
    diagnostics: DiagnosticSink | None = None,
) -> RenderPlan:
    """Run one render pass: domains, scales, grouping, layer sort, dispatch.

    Missing rows or series give an empty plan. Bad cell values are coerced,
    never raised; only malformed arguments raise :class:`ChartInputError`.
    """
    if not isinstance(x_field, str) or not x_field:
        raise ChartInputError("x_field must be a non-empty string")
    width = _coerce_extent(content_width, "content_width")
    height = _coerce_extent(content_height, "content_height")
    cfg = config or ComboConfig()
    sink = diagnostics or null_sink
    overrides = AxisOverrides.coerce(axis_overrides)

    data = normalize_rows(rows)
    declarations = coerce_series(series or ())
    if not data or not declarations:
        reason = "no_rows" if not data else "no_series"
        LOGGER.debug("empty render pass: %s", reason)
        sink({"action": "empty_render", "reason": reason, "rows": len(data), "series_count": len(declarations)})
        return RenderPlan.empty(width, height)

    extents = AxisExtents(
        left=overrides.left_domain
        or resolve_axis_extent(data, [s for s in declarations if s.axis == "left"], headroom_ratio=cfg.y_headroom_ratio),
        right=overrides.right_domain
        or resolve_axis_extent(data, [s for s in declarations if s.axis == "right"], headroom_ratio=cfg.y_headroom_ratio),
    )
    x_domain = resolve_x_domain(data, x_field)
    scales = build_scale_table(
        x_domain,
        extents,
        width,
        height,
        declarations,
        left_domain=overrides.left_domain,
        right_domain=overrides.right_domain,
        config=cfg,
    ).seal()

    plans, skipped = dispatch_series(data, declarations, x_field, scales, config=cfg, diagnostics=sink)
    return RenderPlan(
        series=plans,
        scales=scales,
        extents=extents,
        x_domain=x_domain,
        content_width=width,
        content_height=height,
        stack_groups=tuple(group_stacked_areas(declarations)),
        skipped=skipped,
    )


def _coerce_extent(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ChartInputError(f"{name} must be a number")
    out = float(value)
    if not out > 0:
        raise ChartInputError(f"{name} must be > 0")
    return out
