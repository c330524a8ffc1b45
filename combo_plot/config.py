from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
import tomllib
from typing import Any

from combo_plot.errors import ManifestError


DEFAULT_PALETTE = ("#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6", "#ec4899")
DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 400


@dataclass(frozen=True)
class Margin:
    top: int = 20
    right: int = 60
    bottom: int = 50
    left: int = 60


@dataclass(frozen=True)
class ComboConfig:
    """Tunables shared by every stage of a render pass."""

    y_headroom_ratio: float = 1.1
    band_padding: float = 0.1
    fallback_bandwidth: float = 40.0
    nice_count: int = 10
    default_layer_rank: int = 50
    default_curve: str = "monotone"
    palette: tuple[str, ...] = DEFAULT_PALETTE
    bar_opacity: float = 0.8
    area_opacity: float = 0.6
    stacked_area_opacity: float = 0.7
    scatter_opacity: float = 0.7
    waterfall_opacity: float = 0.8
    line_opacity: float = 1.0
    stroke_width: float = 2.0
    point_radius: float = 3.0
    scatter_radius: float = 4.0

    def __post_init__(self) -> None:
        if self.y_headroom_ratio <= 0:
            raise ValueError("y_headroom_ratio must be > 0")
        if not 0.0 <= self.band_padding < 1.0:
            raise ValueError("band_padding must be in [0, 1)")
        if self.fallback_bandwidth <= 0:
            raise ValueError("fallback_bandwidth must be > 0")
        if self.nice_count <= 0:
            raise ValueError("nice_count must be > 0")
        if not self.palette:
            raise ValueError("palette must not be empty")

    def with_overrides(self, **overrides: Any) -> "ComboConfig":
        return replace(self, **overrides)


@dataclass(frozen=True)
class ChartManifest:
    """A chart described in TOML: canvas size, x field, axis overrides and series tables."""

    x_field: str
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    margin: Margin = field(default_factory=Margin)
    left_domain: tuple[float, float] | None = None
    right_domain: tuple[float, float] | None = None
    series: tuple[dict[str, Any], ...] = ()
    config: ComboConfig = field(default_factory=ComboConfig)


def load_chart_manifest(path: str | Path) -> ChartManifest:
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"chart manifest not found: {manifest_path}")
    with manifest_path.open("rb") as f:
        try:
            raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ManifestError(f"invalid chart manifest {manifest_path}: {exc}") from exc
    return parse_chart_manifest(raw)


def parse_chart_manifest(raw: dict[str, Any]) -> ChartManifest:
    chart = raw.get("chart", {})
    if not isinstance(chart, dict):
        raise ManifestError("[chart] must be a table")
    try:
        x_field = str(chart["x_field"])
    except KeyError as exc:
        raise ManifestError(f"manifest missing required field: chart.{exc.args[0]}") from exc

    margin_raw = chart.get("margin", {})
    if not isinstance(margin_raw, dict):
        raise ManifestError("chart.margin must be a table")
    margin = Margin(**{k: _coerce_int(v, f"chart.margin.{k}") for k, v in margin_raw.items() if k in _MARGIN_KEYS})

    axes = raw.get("axes", {})
    if not isinstance(axes, dict):
        raise ManifestError("[axes] must be a table")

    series = raw.get("series", [])
    if not isinstance(series, list) or not all(isinstance(s, dict) for s in series):
        raise ManifestError("[[series]] must be an array of tables")

    config_raw = raw.get("config", {})
    if not isinstance(config_raw, dict):
        raise ManifestError("[config] must be a table")

    return ChartManifest(
        x_field=x_field,
        width=_coerce_int(chart.get("width", DEFAULT_WIDTH), "chart.width"),
        height=_coerce_int(chart.get("height", DEFAULT_HEIGHT), "chart.height"),
        margin=margin,
        left_domain=_coerce_optional_domain(axes.get("left_domain"), "axes.left_domain"),
        right_domain=_coerce_optional_domain(axes.get("right_domain"), "axes.right_domain"),
        series=tuple(dict(s) for s in series),
        config=config_from_mapping(config_raw),
    )


def config_from_mapping(raw: dict[str, Any]) -> ComboConfig:
    known = {f.name for f in fields(ComboConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ManifestError("unknown config keys: " + ", ".join(unknown))
    values = dict(raw)
    if "palette" in values:
        values["palette"] = tuple(_coerce_string_list(values["palette"], "config.palette"))
    try:
        return ComboConfig(**values)
    except (TypeError, ValueError) as exc:
        raise ManifestError(f"invalid config: {exc}") from exc


_MARGIN_KEYS = {"top", "right", "bottom", "left"}


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ManifestError(f"{field_name} must be an integer")
    return value


def _coerce_optional_domain(value: Any, field_name: str) -> tuple[float, float] | None:
    if value is None:
        return None
    if not isinstance(value, list) or len(value) != 2:
        raise ManifestError(f"{field_name} must be a [min, max] pair")
    lo, hi = value
    if isinstance(lo, bool) or isinstance(hi, bool) or not isinstance(lo, (int, float)) or not isinstance(hi, (int, float)):
        raise ManifestError(f"{field_name} must contain numbers")
    return (float(lo), float(hi))


def _coerce_string_list(value: Any, field_name: str) -> list[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ManifestError(f"{field_name} must be a list of strings")
    return list(value)
