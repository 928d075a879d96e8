"""Plain-dict and JSON form of the automap config.

The project file stores the automap config as one JSON object next to its
levels and tilesets. Unit cell variants are written as bare strings and
parameterized ones as single-key objects, which keeps hand-edited files
readable:

    "cells": ["ignore", {"tile": 4}, "non_empty", {"not_tile": 7}, ...]
    "cells": ["leave_unchanged", {"place": 12}, ...]

Malformed data raises ValueError naming the offending key.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from .types import (
    EMPTY,
    IGNORE,
    LEAVE_UNCHANGED,
    NON_EMPTY,
    ApplyMode,
    AutomapConfig,
    EdgeHandling,
    Empty,
    Ignore,
    InputCell,
    LeaveUnchanged,
    NonEmpty,
    NotTile,
    Once,
    OutputAlternative,
    OutputCell,
    PatternGrid,
    PlaceTile,
    Rule,
    RuleSet,
    Tile,
    UntilStable,
)

FORMAT_VERSION = 1

_UNIT_INPUT_CELLS: dict[str, InputCell] = {
    "ignore": IGNORE,
    "empty": EMPTY,
    "non_empty": NON_EMPTY,
}


# =============================================================================
# Encoding
# =============================================================================


def _input_cell_to_json(cell: InputCell) -> Any:
    match cell:
        case Ignore():
            return "ignore"
        case Empty():
            return "empty"
        case NonEmpty():
            return "non_empty"
        case Tile(tile_id=tile_id):
            return {"tile": tile_id}
        case NotTile(tile_id=tile_id):
            return {"not_tile": tile_id}
    raise TypeError(f"Unknown input cell {cell!r}")


def _output_cell_to_json(cell: OutputCell) -> Any:
    match cell:
        case LeaveUnchanged():
            return "leave_unchanged"
        case PlaceTile(tile_id=tile_id):
            return {"place": tile_id}
    raise TypeError(f"Unknown output cell {cell!r}")


def _apply_mode_to_json(mode: ApplyMode) -> dict[str, Any]:
    match mode:
        case Once():
            return {"mode": "once"}
        case UntilStable(max_iterations=max_iterations):
            return {"mode": "until_stable", "max_iterations": max_iterations}
    raise TypeError(f"Unknown apply mode {mode!r}")


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    return {
        "id": str(rule.id),
        "name": rule.name,
        "no_overlapping_output": rule.no_overlapping_output,
        "width": rule.width,
        "height": rule.height,
        "input": [_input_cell_to_json(cell) for cell in rule.input_pattern.cells],
        "outputs": [
            {
                "id": str(alternative.id),
                "weight": alternative.weight,
                "cells": [_output_cell_to_json(c) for c in alternative.grid.cells],
            }
            for alternative in rule.outputs
        ],
    }


def rule_set_to_dict(rule_set: RuleSet) -> dict[str, Any]:
    return {
        "id": str(rule_set.id),
        "name": rule_set.name,
        "edge_handling": rule_set.edge_handling.name.lower(),
        "apply_mode": _apply_mode_to_json(rule_set.apply_mode),
        "disabled": rule_set.disabled,
        "rules": [rule_to_dict(rule) for rule in rule_set.rules],
    }


def config_to_dict(automap_config: AutomapConfig) -> dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "rule_sets": [rule_set_to_dict(rs) for rs in automap_config.rule_sets],
    }


def dumps(automap_config: AutomapConfig, indent: int | None = 2) -> str:
    """Serialize an AutomapConfig to a JSON string."""
    return json.dumps(config_to_dict(automap_config), indent=indent)


# =============================================================================
# Decoding
# =============================================================================


def _require(data: dict[str, Any], key: str, where: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"{where}: missing key {key!r}") from None


def _tile_id(value: Any, where: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{where}: tile id must be a non-negative integer")
    return value


def _input_cell_from_json(data: Any, where: str) -> InputCell:
    if isinstance(data, str) and data in _UNIT_INPUT_CELLS:
        return _UNIT_INPUT_CELLS[data]
    if isinstance(data, dict) and len(data) == 1:
        ((kind, value),) = data.items()
        if kind == "tile":
            return Tile(_tile_id(value, where))
        if kind == "not_tile":
            return NotTile(_tile_id(value, where))
    raise ValueError(f"{where}: unknown input cell {data!r}")


def _output_cell_from_json(data: Any, where: str) -> OutputCell:
    if data == "leave_unchanged":
        return LEAVE_UNCHANGED
    if isinstance(data, dict) and set(data) == {"place"}:
        return PlaceTile(_tile_id(data["place"], where))
    raise ValueError(f"{where}: unknown output cell {data!r}")


def _apply_mode_from_json(data: dict[str, Any], where: str) -> ApplyMode:
    mode = _require(data, "mode", where)
    if mode == "once":
        return Once()
    if mode == "until_stable":
        return UntilStable(int(_require(data, "max_iterations", where)))
    raise ValueError(f"{where}: unknown apply mode {mode!r}")


def _edge_handling_from_json(value: Any, where: str) -> EdgeHandling:
    try:
        return EdgeHandling[str(value).upper()]
    except KeyError:
        raise ValueError(f"{where}: unknown edge handling {value!r}") from None


def rule_from_dict(data: dict[str, Any]) -> Rule:
    name = _require(data, "name", "rule")
    where = f"rule {name!r}"
    width = _require(data, "width", where)
    height = _require(data, "height", where)

    input_pattern = PatternGrid(
        width,
        height,
        [
            _input_cell_from_json(cell, f"{where} input[{i}]")
            for i, cell in enumerate(_require(data, "input", where))
        ],
    )

    outputs: list[OutputAlternative] = []
    for index, alt_data in enumerate(_require(data, "outputs", where)):
        alt_where = f"{where} outputs[{index}]"
        cells = [
            _output_cell_from_json(cell, f"{alt_where} cells[{i}]")
            for i, cell in enumerate(_require(alt_data, "cells", alt_where))
        ]
        outputs.append(
            OutputAlternative(
                grid=PatternGrid(width, height, cells),
                weight=int(alt_data.get("weight", 1)),
                id=uuid.UUID(_require(alt_data, "id", alt_where)),
            )
        )

    return Rule(
        name=name,
        input_pattern=input_pattern,
        outputs=outputs,
        no_overlapping_output=bool(data.get("no_overlapping_output", False)),
        id=uuid.UUID(_require(data, "id", where)),
    )


def rule_set_from_dict(data: dict[str, Any]) -> RuleSet:
    name = _require(data, "name", "rule set")
    where = f"rule set {name!r}"
    return RuleSet(
        name=name,
        rules=[rule_from_dict(rule) for rule in _require(data, "rules", where)],
        edge_handling=_edge_handling_from_json(
            _require(data, "edge_handling", where), where
        ),
        apply_mode=_apply_mode_from_json(_require(data, "apply_mode", where), where),
        disabled=bool(data.get("disabled", False)),
        id=uuid.UUID(_require(data, "id", where)),
    )


def config_from_dict(data: dict[str, Any]) -> AutomapConfig:
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"automap config: unsupported version {version!r}")
    return AutomapConfig(
        rule_sets=[rule_set_from_dict(rs) for rs in data.get("rule_sets", [])]
    )


def loads(text: str) -> AutomapConfig:
    """Parse an AutomapConfig from a JSON string."""
    return config_from_dict(json.loads(text))
