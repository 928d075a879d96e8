"""Tests for the automap data model and its editing operations."""

from __future__ import annotations

import dataclasses

import pytest

from tessella import config
from tessella.automap import (
    EMPTY,
    IGNORE,
    LEAVE_UNCHANGED,
    NON_EMPTY,
    AutomapConfig,
    EdgeHandling,
    NotTile,
    Once,
    OutputAlternative,
    PatternDimensionError,
    PatternGrid,
    PlaceTile,
    Rule,
    RuleConfigurationError,
    RuleSet,
    Tile,
    UnknownRuleError,
    UnknownRuleSetError,
    UntilStable,
)
from tests.helpers import DIRT, GRASS, SAND, WATER, grid_from_rows, make_rule


class TestPatternGrid:
    @pytest.mark.parametrize("size", [(1, 1), (3, 3), (5, 1), (1, 7)])
    def test_odd_sizes_are_accepted(self, size: tuple[int, int]) -> None:
        width, height = size
        grid = PatternGrid.filled(width, height, IGNORE)
        assert len(grid.cells) == width * height

    @pytest.mark.parametrize("size", [(2, 3), (3, 4), (0, 1), (-1, 1)])
    def test_even_or_non_positive_sizes_are_rejected(
        self, size: tuple[int, int]
    ) -> None:
        with pytest.raises(PatternDimensionError):
            PatternGrid.filled(*size, IGNORE)

    def test_cell_count_must_fit_dimensions(self) -> None:
        with pytest.raises(PatternDimensionError, match="needs 9 cells"):
            PatternGrid(3, 3, [IGNORE] * 8)

    def test_origin_is_the_center_cell(self) -> None:
        assert PatternGrid.filled(3, 3, IGNORE).origin == (1, 1)
        assert PatternGrid.filled(5, 1, IGNORE).origin == (2, 0)
        assert PatternGrid.filled(1, 1, IGNORE).origin == (0, 0)

    def test_offsets_are_row_major_from_the_origin(self) -> None:
        grid = grid_from_rows(
            [[Tile(row * 3 + col + 1) for col in range(3)] for row in range(3)]
        )
        offsets = list(grid.offsets())
        assert [(dx, dy) for dx, dy, _ in offsets] == [
            (-1, -1), (0, -1), (1, -1),
            (-1, 0), (0, 0), (1, 0),
            (-1, 1), (0, 1), (1, 1),
        ]  # fmt: skip
        assert [cell.tile_id for _, _, cell in offsets] == list(range(1, 10))
        assert grid.get_offset(0, 0) == Tile(5)
        assert grid.get_offset(1, -1) == Tile(3)

    def test_out_of_range_access_raises(self) -> None:
        grid = PatternGrid.filled(3, 3, IGNORE)
        with pytest.raises(IndexError):
            grid.get(3, 0)
        with pytest.raises(IndexError):
            grid.set(0, -1, EMPTY)

    def test_resize_keeps_top_left_cells_and_pads(self) -> None:
        grid = grid_from_rows([[Tile(1), Tile(2), Tile(3)]] * 3)

        grown = grid.resized(5, 3, EMPTY)
        assert grown.get(2, 1) == Tile(3)
        assert grown.get(3, 1) == EMPTY
        assert grown.get(4, 2) == EMPTY

        shrunk = grid.resized(1, 1, EMPTY)
        assert shrunk.cells == [Tile(1)]
        # The original is untouched.
        assert grid.width == 3

    def test_copy_is_independent(self) -> None:
        grid = PatternGrid.filled(3, 3, IGNORE)
        clone = grid.copy()
        clone.set(1, 1, NON_EMPTY)
        assert grid.get(1, 1) == IGNORE


class TestCells:
    def test_cells_are_immutable(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            Tile(DIRT).tile_id = GRASS  # type: ignore[misc]

    def test_cells_compare_by_value(self) -> None:
        assert Tile(DIRT) == Tile(DIRT)
        assert Tile(DIRT) != NotTile(DIRT)
        assert PlaceTile(DIRT) != Tile(DIRT)
        assert {IGNORE, EMPTY, NON_EMPTY, LEAVE_UNCHANGED, Tile(1), Tile(1)} == {
            IGNORE,
            EMPTY,
            NON_EMPTY,
            LEAVE_UNCHANGED,
            Tile(1),
        }


class TestRule:
    def test_create_defaults(self) -> None:
        rule = Rule.create()
        assert rule.name == config.AUTOMAP_DEFAULT_RULE_NAME
        assert (rule.width, rule.height) == (3, 3)
        assert set(rule.input_pattern.cells) == {IGNORE}
        assert len(rule.outputs) == 1
        assert rule.outputs[0].weight == 1
        assert set(rule.outputs[0].grid.cells) == {LEAVE_UNCHANGED}
        assert not rule.no_overlapping_output

    def test_rule_needs_an_output(self) -> None:
        with pytest.raises(RuleConfigurationError, match="at least one"):
            Rule("bare", PatternGrid.filled(1, 1, IGNORE), [])

    def test_output_dimensions_must_match_input(self) -> None:
        with pytest.raises(RuleConfigurationError, match="output grid is 1x1"):
            Rule(
                "mismatch",
                PatternGrid.filled(3, 3, IGNORE),
                [OutputAlternative.blank(1, 1)],
            )

    def test_editing_cells(self) -> None:
        rule = Rule.create()
        rule.set_input_cell(1, 1, Tile(DIRT))
        rule.set_output_cell(0, 1, 1, PlaceTile(GRASS))
        assert rule.input_pattern.get_offset(0, 0) == Tile(DIRT)
        assert list(rule.outputs[0].writes()) == [(0, 0, GRASS)]

    def test_resize_keeps_outputs_in_step(self) -> None:
        rule = Rule.create(width=3, height=3)
        rule.add_output()
        rule.set_input_cell(0, 0, Tile(DIRT))
        rule.set_output_cell(1, 2, 2, PlaceTile(GRASS))

        rule.resize_pattern(5, 3)

        assert (rule.width, rule.height) == (5, 3)
        assert rule.input_pattern.get(0, 0) == Tile(DIRT)
        assert rule.input_pattern.get(4, 0) == IGNORE
        for alternative in rule.outputs:
            assert (alternative.grid.width, alternative.grid.height) == (5, 3)
            assert alternative.grid.get(4, 2) == LEAVE_UNCHANGED
        assert rule.outputs[1].grid.get(2, 2) == PlaceTile(GRASS)

    @pytest.mark.parametrize("size", [(4, 3), (3, 2), (0, 3)])
    def test_resize_to_even_size_is_rejected(self, size: tuple[int, int]) -> None:
        rule = Rule.create()
        with pytest.raises(PatternDimensionError):
            rule.resize_pattern(*size)
        assert (rule.width, rule.height) == (3, 3)

    def test_add_and_remove_outputs(self) -> None:
        rule = Rule.create()
        added = rule.add_output(weight=4)
        assert rule.outputs[-1] is added
        assert added.weight == 4

        assert rule.remove_output(0) is not added
        assert rule.outputs == [added]

    def test_last_output_cannot_be_removed(self) -> None:
        rule = Rule.create()
        with pytest.raises(RuleConfigurationError, match="at least one"):
            rule.remove_output(0)
        assert len(rule.outputs) == 1

    @pytest.mark.parametrize("weight", [0, -1, 101])
    def test_weight_outside_range_is_rejected(self, weight: int) -> None:
        rule = Rule.create()
        with pytest.raises(RuleConfigurationError, match="between 1 and 100"):
            rule.set_output_weight(0, weight)
        with pytest.raises(RuleConfigurationError):
            rule.add_output(weight)

    def test_probabilities(self) -> None:
        rule = Rule.create()
        rule.set_output_weight(0, 70)
        rule.add_output(30)
        assert rule.probabilities() == pytest.approx([0.7, 0.3])

    def test_duplicate_is_deep_with_new_ids(self) -> None:
        rule = make_rule(
            [[Tile(DIRT)]], [[PlaceTile(GRASS)]], [[PlaceTile(WATER)]],
            weights=[2, 5], no_overlapping_output=True,
        )  # fmt: skip

        clone = rule.duplicate()

        assert clone.id != rule.id
        assert [a.id for a in clone.outputs] != [a.id for a in rule.outputs]
        assert clone.name == rule.name
        assert clone.no_overlapping_output
        assert [a.weight for a in clone.outputs] == [2, 5]

        clone.set_input_cell(0, 0, EMPTY)
        clone.set_output_cell(0, 0, 0, LEAVE_UNCHANGED)
        assert rule.input_pattern.cells == [Tile(DIRT)]
        assert rule.outputs[0].grid.cells == [PlaceTile(GRASS)]

    def test_validate_rejects_bad_weight(self) -> None:
        rule = make_rule([[IGNORE]], [[PlaceTile(GRASS)]], weights=[0])
        with pytest.raises(RuleConfigurationError):
            rule.validate()
        rule.outputs[0].weight = 1
        rule.validate()

    def test_tile_references(self) -> None:
        rule = make_rule(
            [[Tile(DIRT), NotTile(SAND), NON_EMPTY]],
            [[LEAVE_UNCHANGED, PlaceTile(GRASS), LEAVE_UNCHANGED]],
        )
        assert rule.tile_references() == {DIRT, SAND, GRASS}


class TestApplyModes:
    def test_until_stable_default_cap(self) -> None:
        assert UntilStable().max_iterations == config.AUTOMAP_UNTIL_STABLE_MAX_ITERATIONS

    def test_until_stable_needs_a_positive_cap(self) -> None:
        with pytest.raises(RuleConfigurationError):
            UntilStable(0)

    def test_rule_set_defaults(self) -> None:
        rule_set = RuleSet("walls")
        assert rule_set.edge_handling is EdgeHandling.IGNORE
        assert rule_set.apply_mode == Once()
        assert not rule_set.disabled
        assert rule_set.rules == []


class TestRuleSet:
    def setup_method(self) -> None:
        self.rule_set = RuleSet("terrain")
        self.a = self.rule_set.add_rule(Rule.create("a"))
        self.b = self.rule_set.add_rule(Rule.create("b"))
        self.c = self.rule_set.add_rule(Rule.create("c"))

    def _names(self) -> list[str]:
        return [rule.name for rule in self.rule_set.rules]

    def test_add_default_rule(self) -> None:
        rule = self.rule_set.add_rule()
        assert rule.name == config.AUTOMAP_DEFAULT_RULE_NAME
        assert self.rule_set.rules[-1] is rule

    def test_move_rule(self) -> None:
        self.rule_set.move_rule(self.c.id, 0)
        assert self._names() == ["c", "a", "b"]
        self.rule_set.move_rule(self.c.id, 99)
        assert self._names() == ["a", "b", "c"]

    def test_duplicate_rule_lands_after_original(self) -> None:
        clone = self.rule_set.duplicate_rule(self.a.id)
        assert self.rule_set.rules[1] is clone
        assert self._names() == ["a", "a", "b", "c"]

    def test_remove_rule(self) -> None:
        assert self.rule_set.remove_rule(self.b.id) is self.b
        assert self._names() == ["a", "c"]
        with pytest.raises(UnknownRuleError):
            self.rule_set.remove_rule(self.b.id)

    def test_rename(self) -> None:
        self.rule_set.rename("cliffs")
        assert self.rule_set.name == "cliffs"


class TestAutomapConfig:
    def test_rule_set_management(self) -> None:
        automap_config = AutomapConfig()
        first = automap_config.add_rule_set()
        second = automap_config.add_rule_set("second")
        second.disabled = True

        assert first.name == config.AUTOMAP_DEFAULT_RULE_SET_NAME
        assert automap_config.get_rule_set(second.id) is second
        assert automap_config.enabled_rule_sets() == [first]

        automap_config.move_rule_set(second.id, 0)
        assert automap_config.rule_sets == [second, first]

        automap_config.remove_rule_set(first.id)
        with pytest.raises(UnknownRuleSetError):
            automap_config.get_rule_set(first.id)

    def test_validate_tile_references(self) -> None:
        automap_config = AutomapConfig()
        rule_set = automap_config.add_rule_set("terrain")
        rule_set.add_rule(
            make_rule([[Tile(DIRT)]], [[PlaceTile(GRASS)]], name="known")
        )
        dangling = rule_set.add_rule(
            make_rule([[NotTile(77)]], [[PlaceTile(88)]], name="dangling")
        )

        assert automap_config.tile_references() == {DIRT, GRASS, 77, 88}
        problems = automap_config.validate_tile_references({DIRT, GRASS})

        assert problems == [(rule_set, dangling, {77, 88})]
