from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Literal, Sequence

from combo_plot.config import ComboConfig
from combo_plot.domain import AxisExtents, XDomain
from combo_plot.scales import BandScale, LinearScale, Scale, create_x_scale, create_y_scale
from combo_plot.series import AxisSide, SeriesDeclaration


ScaleAxis = Literal["x", "y", "y2"]

SCALE_X = "x"
SCALE_LEFT_Y = "leftY"
SCALE_RIGHT_Y = "rightY"

Y_SCALE_NAMES: dict[AxisSide, str] = {"left": SCALE_LEFT_Y, "right": SCALE_RIGHT_Y}


@dataclass(frozen=True)
class ScaleConfig:
    type: str
    domain: tuple[Any, ...]
    range: tuple[float, float]
    padding: float | None = None
    nice: bool = False
    axis: ScaleAxis | None = None


@dataclass(frozen=True)
class ScaleRegistration:
    name: str
    scale: Scale
    config: ScaleConfig


class ScaleTableSealedError(RuntimeError):
    pass


class ScaleTable:
    """Scales of one render pass, looked up by logical name (``x``, ``leftY``, ``rightY``).

    A table is filled once, sealed, then read by every series. A new pass
    builds a new table so scales from older data are never reused.
    """

    def __init__(self) -> None:
        self._scales: dict[str, ScaleRegistration] = {}
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> "ScaleTable":
        self._sealed = True
        return self

    def register(self, name: str, scale: Scale, config: ScaleConfig) -> Scale:
        if self._sealed:
            raise ScaleTableSealedError(f"cannot register `{name}`: scale table is sealed")
        if not name or not isinstance(name, str):
            raise ValueError("scale name must be a non-empty string")
        self._scales[name] = ScaleRegistration(name=name, scale=scale, config=config)
        return scale

    def get(self, name: str) -> Scale | None:
        registration = self._scales.get(name)
        return registration.scale if registration is not None else None

    def config(self, name: str) -> ScaleConfig | None:
        registration = self._scales.get(name)
        return registration.config if registration is not None else None

    def by_axis(self, axis: ScaleAxis) -> list[ScaleRegistration]:
        return [reg for reg in self._scales.values() if reg.config.axis == axis]

    def names(self) -> list[str]:
        return list(self._scales)

    def __contains__(self, name: object) -> bool:
        return name in self._scales

    def __iter__(self) -> Iterator[ScaleRegistration]:
        return iter(self._scales.values())

    def __len__(self) -> int:
        return len(self._scales)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        out: dict[str, dict[str, Any]] = {}
        for reg in self._scales.values():
            entry: dict[str, Any] = {
                "type": reg.config.type,
                "domain": [_jsonable(v) for v in reg.config.domain],
                "range": list(reg.config.range),
                "nice": reg.config.nice,
                "axis": reg.config.axis,
            }
            if reg.config.padding is not None:
                entry["padding"] = reg.config.padding
            if isinstance(reg.scale, BandScale):
                entry["bandwidth"] = reg.scale.bandwidth
            out[reg.name] = entry
        return out


def _jsonable(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def build_scale_table(
    x_domain: XDomain,
    extents: AxisExtents,
    content_width: float,
    content_height: float,
    series: Sequence[SeriesDeclaration],
    *,
    left_domain: tuple[float, float] | None = None,
    right_domain: tuple[float, float] | None = None,
    config: ComboConfig | None = None,
) -> ScaleTable:
    """Register the X scale and a Y scale for each side that has series or an override.

    Overridden domains are used exactly as given; resolved extents get ``nice()``.
    """
    cfg = config or ComboConfig()
    table = ScaleTable()

    x_scale = create_x_scale(
        x_domain.kind,
        x_domain.values,
        content_width,
        padding=cfg.band_padding,
        nice_count=cfg.nice_count,
    )
    table.register(
        SCALE_X,
        x_scale,
        ScaleConfig(
            type=x_domain.kind,
            domain=tuple(x_scale.domain),
            range=tuple(x_scale.range),
            padding=cfg.band_padding if x_domain.kind == "band" else None,
            nice=x_domain.kind == "linear",
            axis="x",
        ),
    )

    overrides: dict[AxisSide, tuple[float, float] | None] = {"left": left_domain, "right": right_domain}
    for side, role in (("left", "y"), ("right", "y2")):
        override = overrides[side]
        has_series = any(s.axis == side for s in series)
        if not has_series and override is None:
            continue
        if override is not None:
            y_scale = create_y_scale(override, content_height, nice=False)
        else:
            y_scale = create_y_scale(extents.for_axis(side), content_height, nice_count=cfg.nice_count)
        table.register(
            Y_SCALE_NAMES[side],
            y_scale,
            ScaleConfig(
                type="linear",
                domain=tuple(y_scale.domain),
                range=tuple(y_scale.range),
                nice=override is None,
                axis=role,
            ),
        )
    return table


def y_scale_for(table: ScaleTable, axis: AxisSide) -> LinearScale | None:
    scale = table.get(Y_SCALE_NAMES[axis])
    return scale if isinstance(scale, LinearScale) else None
