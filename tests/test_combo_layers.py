from __future__ import annotations

import unittest

from combo_plot.layers import (
    CHART_LAYER_GROUPS,
    CHART_LAYER_ORDER,
    DEFAULT_LAYER_RANK,
    ChartType,
    layer_group,
    layer_rank,
    sort_by_layer,
    z_index,
)
from combo_plot.series import SeriesDeclaration


class LayerRegistryTests(unittest.TestCase):
    def test_rank_mapping_is_total_and_unique(self) -> None:
        self.assertEqual(set(CHART_LAYER_ORDER), set(ChartType))
        self.assertEqual(sorted(CHART_LAYER_ORDER.values()), list(range(len(ChartType))))

    def test_core_combo_types_render_back_to_front(self) -> None:
        ranks = [layer_rank(t) for t in ("stackedArea", "area", "bar", "waterfall", "scatter", "line")]
        self.assertEqual(ranks, sorted(ranks))
        self.assertEqual(layer_rank(ChartType.LINE), 11)

    def test_unknown_type_falls_back_to_default_rank(self) -> None:
        self.assertEqual(layer_rank("sparkline"), DEFAULT_LAYER_RANK)
        self.assertEqual(layer_rank(None), DEFAULT_LAYER_RANK)
        self.assertEqual(layer_rank("sparkline", 99), 99)
        self.assertEqual(z_index("sparkline"), 50)
        self.assertIsNone(layer_group("sparkline"))

    def test_groups_cover_every_type_once(self) -> None:
        members = [t for group in CHART_LAYER_GROUPS.values() for t in group]
        self.assertEqual(sorted(members, key=lambda t: t.value), sorted(ChartType, key=lambda t: t.value))
        self.assertEqual(layer_group("stackedArea"), "background")
        self.assertEqual(layer_group(ChartType.WATERFALL), "primary")
        self.assertEqual(layer_group("line"), "overlay")
        self.assertEqual(layer_group("funnel"), "specialty")

    def test_z_index_steps_by_ten(self) -> None:
        self.assertEqual(z_index("stackedArea"), 10)
        self.assertEqual(z_index("line"), 120)

    def test_sort_is_stable_for_equal_ranks(self) -> None:
        series = [
            SeriesDeclaration(type="line", value_field="a"),
            SeriesDeclaration(type="bar", value_field="b"),
            SeriesDeclaration(type="stackedArea", value_field="c"),
            SeriesDeclaration(type="bar", value_field="d"),
        ]
        ordered = sort_by_layer(series)
        self.assertEqual([s.value_field for s in ordered], ["c", "b", "d", "a"])
        # Input is left untouched.
        self.assertEqual([s.value_field for s in series], ["a", "b", "c", "d"])

    def test_sort_accepts_dicts_and_custom_accessor(self) -> None:
        items = [{"type": "scatter", "id": 1}, {"type": "mystery", "id": 2}, {"type": "area", "id": 3}]
        self.assertEqual([i["id"] for i in sort_by_layer(items)], [3, 1, 2])

        pairs = list(enumerate(["line", "area"]))
        ordered = sort_by_layer(pairs, type_of=lambda pair: pair[1])
        self.assertEqual([i for i, _ in ordered], [1, 0])

    def test_parse_rejects_non_members(self) -> None:
        self.assertIs(ChartType.parse("bar"), ChartType.BAR)
        self.assertIs(ChartType.parse(ChartType.PIE), ChartType.PIE)
        self.assertIsNone(ChartType.parse("Bar"))
        self.assertIsNone(ChartType.parse(3))


if __name__ == "__main__":
    unittest.main()
