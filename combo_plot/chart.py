from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from combo_plot.config import DEFAULT_HEIGHT, DEFAULT_WIDTH, ComboConfig, Margin
from combo_plot.diagnostics import DiagnosticSink
from combo_plot.dispatch import RenderPlan
from combo_plot.domain import AxisOverrides
from combo_plot.layers import ChartType
from combo_plot.pipeline import render
from combo_plot.series import AxisSide, SeriesDeclaration, coerce_series


@dataclass
class ComboChart:
    """Series declarations plus the outer canvas; margins carve out the content rectangle."""

    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    margin: Margin = field(default_factory=Margin)
    config: ComboConfig = field(default_factory=ComboConfig)
    left_domain: tuple[float, float] | None = None
    right_domain: tuple[float, float] | None = None

    _series: list[SeriesDeclaration] = field(default_factory=list, init=False, repr=False)
    _last_plan: RenderPlan | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width/height must be > 0")

    @property
    def series(self) -> tuple[SeriesDeclaration, ...]:
        return tuple(self._series)

    def content_size(self) -> tuple[int, int]:
        w = self.width - self.margin.left - self.margin.right
        h = self.height - self.margin.top - self.margin.bottom
        return (max(1, w), max(1, h))

    def add(self, series: SeriesDeclaration | Mapping[str, Any]) -> "ComboChart":
        self._series.extend(coerce_series([series]))
        return self

    def bar(self, value_field: str, *, axis: AxisSide = "left", group_key: str | None = None, **options: Any) -> "ComboChart":
        return self.add(SeriesDeclaration(type=ChartType.BAR, value_field=value_field, axis=axis, group_key=group_key, **options))

    def line(self, value_field: str, *, axis: AxisSide = "left", curve: str | None = None, **options: Any) -> "ComboChart":
        return self.add(SeriesDeclaration(type=ChartType.LINE, value_field=value_field, axis=axis, curve=curve, **options))

    def area(self, value_field: str, *, axis: AxisSide = "left", baseline: float = 0.0, **options: Any) -> "ComboChart":
        return self.add(SeriesDeclaration(type=ChartType.AREA, value_field=value_field, axis=axis, baseline=baseline, **options))

    def stacked_area(
        self,
        value_field: str,
        *,
        axis: AxisSide = "left",
        stack_group_key: str | None = None,
        **options: Any,
    ) -> "ComboChart":
        return self.add(
            SeriesDeclaration(
                type=ChartType.STACKED_AREA,
                value_field=value_field,
                axis=axis,
                stack_group_key=stack_group_key,
                **options,
            )
        )

    def scatter(self, value_field: str, *, axis: AxisSide = "left", **options: Any) -> "ComboChart":
        return self.add(SeriesDeclaration(type=ChartType.SCATTER, value_field=value_field, axis=axis, **options))

    def waterfall(self, value_field: str, *, axis: AxisSide = "left", type_field: str | None = None, **options: Any) -> "ComboChart":
        return self.add(
            SeriesDeclaration(type=ChartType.WATERFALL, value_field=value_field, axis=axis, type_field=type_field, **options)
        )

    def set_left_domain(self, vmin: float, vmax: float) -> "ComboChart":
        self.left_domain = (float(vmin), float(vmax))
        return self

    def set_right_domain(self, vmin: float, vmax: float) -> "ComboChart":
        self.right_domain = (float(vmin), float(vmax))
        return self

    def clear_domains(self) -> "ComboChart":
        self.left_domain = None
        self.right_domain = None
        return self

    def render(self, rows: Any, x_field: str, *, diagnostics: DiagnosticSink | None = None) -> RenderPlan:
        content_w, content_h = self.content_size()
        plan = render(
            rows,
            self._series,
            x_field,
            content_w,
            content_h,
            AxisOverrides(left_domain=self.left_domain, right_domain=self.right_domain),
            config=self.config,
            diagnostics=diagnostics,
        )
        self._last_plan = plan
        return plan

    def last_plan(self) -> RenderPlan | None:
        return self._last_plan
