"""The rule engine: applies automap rule sets to a tile layer.

The entry point is apply(). Rule sets run one after another in declared
order, and each runs to completion before the next one starts. A rule set
runs in passes. In each pass its rules run in declared order, and each rule
scans every position of the layer row by row (y outer, x inner), so for a
fixed layer and fixed rules the sequence of matches is always the same. The
only nondeterminism is the weighted output draw, taken from the rng handed
in.

Overlap bookkeeping is an explicit set of positions written during a pass,
threaded through every rule of that pass. A rule with no_overlapping_output
skips a match outright if any cell it would write is already in the set, so
a position is always either fully written or fully skipped. Each further
pass of a rule set starts with a fresh set. The first pass of a rule set
continues the set left by the previous rule set's last pass, so cells
claimed by an earlier rule set stay claimed for a later one.

Apply modes:
- Once: the rule set makes exactly one pass.
- UntilStable(max_iterations): the rule set repeats passes until one of
  them changes nothing, or it has made max_iterations passes.

A rule set's first pass reads from the input layer; its later passes read
the output layer, so each pass sees the previous pass's result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tessella import config
from tessella.environment.level import TileLayer
from tessella.types import RuleSetId, TileCoord, TileId, TilePos
from tessella.util import rng as rng_streams
from tessella.util.rng import RNG

from .grid import GridAccessor
from .matcher import matches
from .selector import select_output
from .types import Once, Rule, RuleSet, UntilStable

logger = logging.getLogger(__name__)

_rng = rng_streams.get(config.AUTOMAP_RNG_DOMAIN)


@dataclass
class ApplyResult:
    """Outcome of one apply() call.

    Attributes:
        changed_cells: Cell writes that changed a value, summed over passes.
        passes: Number of passes made.
        converged: False if an UntilStable rule set was still changing cells
            when it reached its iteration cap.
    """

    changed_cells: int = 0
    passes: int = 0
    converged: bool = True


@dataclass
class PassResult:
    """Outcome of a single pass.

    Attributes:
        changed_cells: Cell writes in this pass that changed a value.
        overlap: Positions written during the pass, by any rule.
        changes_by_rule_set: changed_cells broken down per rule set.
    """

    changed_cells: int = 0
    overlap: set[TilePos] = field(default_factory=set)
    changes_by_rule_set: dict[RuleSetId, int] = field(default_factory=dict)


def apply(
    rule_sets: Sequence[RuleSet],
    input_layer: TileLayer,
    output_layer: TileLayer,
    rng: RNG | None = None,
) -> ApplyResult:
    """Apply rule sets to ``output_layer``, matching against ``input_layer``.

    The two layers may be the same object for in-place rewriting. Disabled
    rule sets and rule sets without rules are skipped; with nothing to run
    the call is a no-op.

    Args:
        rule_sets: Rule sets in run order. Never modified.
        input_layer: Layer patterns are matched against on the first pass.
        output_layer: Layer that receives the writes.
        rng: Source for weighted output selection. Defaults to the
            process-wide "automap.output" stream.

    Returns:
        The cumulative ApplyResult of all passes.

    Raises:
        ValueError: If the two layers differ in size.
    """
    if (input_layer.width, input_layer.height) != (
        output_layer.width,
        output_layer.height,
    ):
        raise ValueError(
            f"Input layer {input_layer.name!r} is {input_layer.width}x"
            f"{input_layer.height} but output layer {output_layer.name!r} is "
            f"{output_layer.width}x{output_layer.height}"
        )
    if rng is None:
        rng = _rng

    result = ApplyResult()
    overlap: set[TilePos] = set()
    for rule_set in rule_sets:
        if rule_set.disabled or not rule_set.rules:
            continue
        overlap = _run_rule_set(
            rule_set, input_layer, output_layer, rng, overlap, result
        )
    return result


def _run_rule_set(
    rule_set: RuleSet,
    input_layer: TileLayer,
    output_layer: TileLayer,
    rng: RNG,
    overlap: set[TilePos],
    result: ApplyResult,
) -> set[TilePos]:
    """Run one rule set to completion, adding its passes to ``result``.

    Returns:
        The overlap set of the rule set's last pass.
    """
    match rule_set.apply_mode:
        case UntilStable(max_iterations=max_iterations):
            until_stable = True
        case Once():
            max_iterations = 1
            until_stable = False

    source = input_layer
    for iteration in range(1, max_iterations + 1):
        pass_result = apply_pass([rule_set], source, output_layer, rng, overlap)
        result.passes += 1
        result.changed_cells += pass_result.changed_cells
        logger.debug(
            f"Rule set {rule_set.name!r} pass {iteration}: "
            f"{pass_result.changed_cells} changes"
        )
        if not until_stable or pass_result.changed_cells == 0:
            return pass_result.overlap
        source = output_layer
        overlap = set()

    result.converged = False
    logger.warning(
        f"Rule set {rule_set.name!r} did not converge after {max_iterations} passes"
    )
    return pass_result.overlap


def apply_pass(
    rule_sets: Sequence[RuleSet],
    source: TileLayer,
    target: TileLayer,
    rng: RNG,
    overlap: set[TilePos] | None = None,
) -> PassResult:
    """Run one pass of every rule of every given rule set.

    Args:
        rule_sets: Rule sets taking part in this pass, in run order.
        source: Layer patterns are matched against.
        target: Layer that receives the writes.
        rng: Source for weighted output selection.
        overlap: Positions already claimed this pass. A new set is used if
            omitted. The set is updated in place and returned in the result.
    """
    result = PassResult(overlap=overlap if overlap is not None else set())
    for rule_set in rule_sets:
        accessor = GridAccessor(source, rule_set.edge_handling)
        changed = 0
        for rule in rule_set.rules:
            changed += apply_rule(rule, accessor, target, rng, result.overlap)
        result.changes_by_rule_set[rule_set.id] = changed
        result.changed_cells += changed
    return result


def apply_rule(
    rule: Rule,
    source: GridAccessor,
    target: TileLayer,
    rng: RNG,
    overlap: set[TilePos],
) -> int:
    """Scan the whole layer with one rule and commit its output.

    Every committed write is added to ``overlap``, whatever the rule's own
    no_overlapping_output setting, so later rules in the pass can see it.

    Returns:
        Number of writes that changed a cell's value.
    """
    changed = 0
    skipped_zero_weight = 0

    if any(alternative.weight < 0 for alternative in rule.outputs):
        logger.warning(
            f"Rule {rule.name!r} has negative output weights; they count as 0"
        )

    for y in range(source.height):
        for x in range(source.width):
            if not matches(rule, source, x, y):
                continue

            alternative = select_output(rule, rng)
            if alternative is None:
                skipped_zero_weight += 1
                continue

            writes = _clip_writes(target, x, y, alternative.writes())
            if rule.no_overlapping_output and any(
                (wx, wy) in overlap for wx, wy, _ in writes
            ):
                continue

            for wx, wy, tile_id in writes:
                if target.get(wx, wy) != tile_id:
                    target.set(wx, wy, tile_id)
                    changed += 1
                overlap.add((wx, wy))

    if skipped_zero_weight:
        logger.warning(
            f"Rule {rule.name!r} matched {skipped_zero_weight} position(s) but its "
            "output weights sum to 0; matches skipped"
        )
    return changed


def _clip_writes(
    target: TileLayer,
    anchor_x: TileCoord,
    anchor_y: TileCoord,
    offsets: Iterable[tuple[int, int, TileId]],
) -> list[tuple[TileCoord, TileCoord, TileId]]:
    """Translate output offsets to layer positions, dropping any off the layer."""
    writes: list[tuple[TileCoord, TileCoord, TileId]] = []
    for dx, dy, tile_id in offsets:
        x, y = anchor_x + dx, anchor_y + dy
        if target.in_bounds(x, y):
            writes.append((x, y, tile_id))
    return writes
