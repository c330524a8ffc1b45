from __future__ import annotations

from combo_plot.chart import ComboChart
from combo_plot.config import DEFAULT_HEIGHT, DEFAULT_WIDTH, ChartManifest, ComboConfig, Margin


def combo_chart(
    width: int | None = None,
    height: int | None = None,
    *,
    margin: Margin | None = None,
    config: ComboConfig | None = None,
) -> ComboChart:
    return ComboChart(
        width=DEFAULT_WIDTH if width is None else width,
        height=DEFAULT_HEIGHT if height is None else height,
        margin=margin or Margin(),
        config=config or ComboConfig(),
    )


def chart_from_manifest(manifest: ChartManifest) -> ComboChart:
    chart = ComboChart(width=manifest.width, height=manifest.height, margin=manifest.margin, config=manifest.config)
    for raw in manifest.series:
        chart.add(raw)
    if manifest.left_domain is not None:
        chart.set_left_domain(*manifest.left_domain)
    if manifest.right_domain is not None:
        chart.set_right_domain(*manifest.right_domain)
    return chart


__all__ = ["chart_from_manifest", "combo_chart"]
