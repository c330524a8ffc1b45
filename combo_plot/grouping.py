from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from combo_plot.layers import ChartType
from combo_plot.series import AxisSide, SeriesDeclaration, StackOffset, StackOrder


@dataclass(frozen=True)
class BarSlot:
    """Horizontal slot of one bar series inside a category band, relative to the band centre."""

    group_key: str
    index: int
    group_size: int
    width: float
    offset: float


@dataclass(frozen=True)
class StackGroup:
    key: str
    axis: AxisSide
    members: tuple[int, ...]
    value_fields: tuple[str, ...]
    stack_order: StackOrder = "none"
    stack_offset: StackOffset = "none"


def bar_slot_geometry(index: int, group_size: int, bandwidth: float) -> tuple[float, float]:
    """(width, centre offset) for bar ``index`` of ``group_size`` bars tiling a band."""
    if group_size <= 0:
        raise ValueError("group_size must be > 0")
    if not 0 <= index < group_size:
        raise ValueError("index must be in [0, group_size)")
    width = bandwidth / group_size
    offset = (index - (group_size - 1) / 2.0) * width
    return width, offset


def allocate_bar_groups(series: Sequence[SeriesDeclaration], bandwidth: float) -> dict[int, BarSlot]:
    """Slots for every bar series keyed by its position in ``series``.

    Bars sharing a group key split the band evenly in declaration order,
    whichever Y axis they use; the group is centred on the category.
    """
    groups: dict[str, list[int]] = {}
    for i, s in enumerate(series):
        if s.chart_type is not ChartType.BAR:
            continue
        groups.setdefault(s.resolved_group_key, []).append(i)

    slots: dict[int, BarSlot] = {}
    for key, members in groups.items():
        size = len(members)
        for position, series_index in enumerate(members):
            width, offset = bar_slot_geometry(position, size, bandwidth)
            slots[series_index] = BarSlot(group_key=key, index=position, group_size=size, width=width, offset=offset)
    return slots


def group_stacked_areas(series: Sequence[SeriesDeclaration]) -> list[StackGroup]:
    """Stack groups in first-seen order. Members keep declaration order; the first member sets the policy."""
    members: dict[tuple[AxisSide, str], list[int]] = {}
    for i, s in enumerate(series):
        if s.chart_type is not ChartType.STACKED_AREA:
            continue
        members.setdefault((s.axis, s.resolved_stack_group_key), []).append(i)

    groups: list[StackGroup] = []
    for (axis, key), indices in members.items():
        first = series[indices[0]]
        groups.append(
            StackGroup(
                key=key,
                axis=axis,
                members=tuple(indices),
                value_fields=tuple(series[i].value_field for i in indices),
                stack_order=first.stack_order,
                stack_offset=first.stack_offset,
            )
        )
    return groups
