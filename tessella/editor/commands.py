"""
Undoable editor commands.

Command:
    Base class for everything the history stack can undo. The stack itself
    belongs to the host editor; it only relies on execute(), undo() and
    description().

AutomapCommand:
    One automap run as a single undo step, however many passes the engine
    made. The first execute() runs the rules and records a per-cell diff of
    the output layer; later calls (redo) replay that diff instead of rolling
    new random outputs.
"""

from __future__ import annotations

import abc
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from tessella import automap
from tessella.environment.level import EMPTY_TILE
from tessella.events import LayerChangedEvent, publish_event
from tessella.types import CellValue, TilePos

if TYPE_CHECKING:
    from tessella.automap import ApplyResult, RuleSet
    from tessella.environment.level import TileLayer
    from tessella.util.rng import RNG


class Command(abc.ABC):
    """A reversible edit."""

    @abc.abstractmethod
    def execute(self) -> Any:
        """Apply (or re-apply) the edit."""

    @abc.abstractmethod
    def undo(self) -> None:
        """Revert the edit."""

    @abc.abstractmethod
    def description(self) -> str:
        """Short label for the Edit menu, e.g. "Undo Automap: Roads"."""


def diff_tiles(
    before: np.ndarray, after: np.ndarray
) -> dict[TilePos, tuple[CellValue, CellValue]]:
    """Return {(x, y): (old, new)} for every cell that differs."""
    changes: dict[TilePos, tuple[CellValue, CellValue]] = {}
    for x, y in np.argwhere(before != after):
        old = int(before[x, y])
        new = int(after[x, y])
        changes[(int(x), int(y))] = (
            None if old == EMPTY_TILE else old,
            None if new == EMPTY_TILE else new,
        )
    return changes


class AutomapCommand(Command):
    """Runs rule sets over a layer as one undoable step."""

    def __init__(
        self,
        rule_sets: Sequence[RuleSet],
        input_layer: TileLayer,
        output_layer: TileLayer,
        rng: RNG | None = None,
    ) -> None:
        self.rule_sets = list(rule_sets)
        self.input_layer = input_layer
        self.output_layer = output_layer
        self.rng = rng
        self.result: ApplyResult | None = None
        # (x, y) -> (old_tile, new_tile) on the output layer
        self.changes: dict[TilePos, tuple[CellValue, CellValue]] = {}

    def execute(self) -> ApplyResult:
        if self.result is None:
            before = self.output_layer.snapshot()
            self.result = automap.apply(
                self.rule_sets, self.input_layer, self.output_layer, self.rng
            )
            self.changes = diff_tiles(before, self.output_layer.tiles)
        else:
            for (x, y), (_, new_tile) in self.changes.items():
                self.output_layer.set(x, y, new_tile)

        publish_event(LayerChangedEvent(self.output_layer))
        return self.result

    def undo(self) -> None:
        for (x, y), (old_tile, _) in self.changes.items():
            self.output_layer.set(x, y, old_tile)
        publish_event(LayerChangedEvent(self.output_layer))

    def description(self) -> str:
        if len(self.rule_sets) == 1:
            return f"Automap: {self.rule_sets[0].name}"
        if not self.rule_sets:
            return "Automap"
        return f"Automap: {len(self.rule_sets)} rule sets"

    def is_empty(self) -> bool:
        """True when the run changed no cells; hosts may skip pushing it."""
        return not self.changes
