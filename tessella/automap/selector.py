"""Weighted random choice between a rule's output alternatives."""

from __future__ import annotations

from tessella.util.rng import RNG

from .types import OutputAlternative, Rule


def select_output(rule: Rule, rng: RNG) -> OutputAlternative | None:
    """Pick one of ``rule``'s alternatives with probability weight / total.

    Alternatives are walked in declaration order, so for a fixed draw the
    result is stable. A rule with a single positive-weight alternative
    returns it without consuming randomness. Negative weights count as 0.
    Returns None when the total weight is 0, in which case nothing can be
    selected.
    """
    outputs = rule.outputs
    if len(outputs) == 1:
        return outputs[0] if outputs[0].weight > 0 else None

    total = sum(max(alternative.weight, 0) for alternative in outputs)
    if total <= 0:
        return None

    pick = rng.randrange(total)
    for alternative in outputs:
        weight = max(alternative.weight, 0)
        if pick < weight:
            return alternative
        pick -= weight

    # Unreachable while total > 0.
    return outputs[-1]


def output_probabilities(rule: Rule) -> list[float]:
    """Return the display probability of each alternative.

    Informational only; the selector never reads it back.
    """
    return rule.probabilities()
