from combo_plot.api import chart_from_manifest, combo_chart
from combo_plot.chart import ComboChart
from combo_plot.config import ChartManifest, ComboConfig, Margin, load_chart_manifest
from combo_plot.diagnostics import DiagnosticSink, JsonlDiagnosticSink, MemoryDiagnosticSink
from combo_plot.dispatch import PlotPoint, RenderPlan, SeriesPlan
from combo_plot.domain import AxisExtents, AxisOverrides, resolve_domains
from combo_plot.errors import ChartInputError, ComboPlotError, ManifestError, SeriesConfigError
from combo_plot.layers import ChartType, layer_group, layer_rank, sort_by_layer
from combo_plot.pipeline import render
from combo_plot.scale_table import ScaleTable
from combo_plot.series import SeriesDeclaration

__all__ = [
    "AxisExtents",
    "AxisOverrides",
    "ChartInputError",
    "ChartManifest",
    "ChartType",
    "ComboChart",
    "ComboConfig",
    "ComboPlotError",
    "DiagnosticSink",
    "JsonlDiagnosticSink",
    "Margin",
    "ManifestError",
    "MemoryDiagnosticSink",
    "PlotPoint",
    "RenderPlan",
    "ScaleTable",
    "SeriesConfigError",
    "SeriesDeclaration",
    "SeriesPlan",
    "chart_from_manifest",
    "combo_chart",
    "layer_group",
    "layer_rank",
    "load_chart_manifest",
    "render",
    "resolve_domains",
    "sort_by_layer",
]
