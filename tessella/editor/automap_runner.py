"""Editor-side entry point for running automap rules.

The rule editor's "Run Rules" button and the auto-run-after-painting hook
both go through AutomapRunner. It resolves the request's layers and rule
sets against the project, runs an AutomapCommand, and reports the outcome on
the event bus for the status bar.

A stale layer id is a hard failure: the runner publishes an error message
and re-raises LayerNotFoundError rather than writing somewhere unexpected.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tessella import config
from tessella.automap import (
    ApplyResult,
    AutomapConfig,
    RuleSet,
    UnknownRuleSetError,
)
from tessella.environment.level import LayerNotFoundError, Level
from tessella.events import AutomapStatusEvent, MessageEvent, publish_event
from tessella.types import LayerId, RuleSetId
from tessella.util.rng import RNG

from .commands import AutomapCommand

logger = logging.getLogger(__name__)


@dataclass
class AutomapRunRequest:
    """What the user asked to run.

    Attributes:
        level: Level holding the target layers.
        output_layer_id: Layer that receives the writes.
        input_layer_id: Layer patterns are matched against. None means the
            output layer itself (in-place rewriting).
        rule_set_ids: Rule sets to run, in config order. None means every
            enabled rule set.
    """

    level: Level
    output_layer_id: LayerId
    input_layer_id: LayerId | None = None
    rule_set_ids: list[RuleSetId] | None = None


def status_message(result: ApplyResult) -> str:
    """Status-bar text for a finished run."""
    if result.changed_cells == 0:
        text = "No changes: no rules matched"
    else:
        text = f"Applied {result.changed_cells} changes"
    if not result.converged:
        text += f" (stopped after {result.passes} passes without settling)"
    return text


class AutomapRunner:
    """Turns run requests into executed AutomapCommands."""

    def __init__(
        self,
        automap_config: AutomapConfig,
        rng: RNG | None = None,
        auto_on_draw: bool = config.AUTOMAP_AUTO_ON_DRAW,
    ) -> None:
        self.automap_config = automap_config
        self.rng = rng
        self.auto_on_draw = auto_on_draw
        self.last_status: str | None = None

    def run_disabled_reason(self, level: Level | None) -> str | None:
        """Why "Run Rules" is greyed out, or None if it can run."""
        if level is None:
            return "No level selected"
        if not self.automap_config.rule_sets:
            return "No rule sets defined"
        if all(not rs.rules for rs in self.automap_config.rule_sets):
            return "No rules defined"
        return None

    def resolve_rule_sets(self, rule_set_ids: list[RuleSetId] | None) -> list[RuleSet]:
        """Return the requested rule sets in config order.

        Raises:
            UnknownRuleSetError: If an id isn't in the config.
        """
        if rule_set_ids is None:
            return self.automap_config.enabled_rule_sets()
        wanted = {self.automap_config.get_rule_set(rs_id).id for rs_id in rule_set_ids}
        return [rs for rs in self.automap_config.rule_sets if rs.id in wanted]

    def run(self, request: AutomapRunRequest) -> AutomapCommand:
        """Execute the request and return the command for the undo stack.

        Raises:
            LayerNotFoundError: If a requested layer no longer exists.
            UnknownRuleSetError: If a requested rule set no longer exists.
        """
        try:
            output_layer = request.level.get_layer(request.output_layer_id)
            input_layer = (
                output_layer
                if request.input_layer_id is None
                else request.level.get_layer(request.input_layer_id)
            )
            rule_sets = self.resolve_rule_sets(request.rule_set_ids)
        except (LayerNotFoundError, UnknownRuleSetError) as exc:
            self.last_status = f"Automap failed: {exc}"
            publish_event(MessageEvent(self.last_status, is_error=True))
            raise

        command = AutomapCommand(rule_sets, input_layer, output_layer, self.rng)
        result = command.execute()

        self.last_status = status_message(result)
        logger.info(f"{command.description()}: {self.last_status}")
        publish_event(
            AutomapStatusEvent(
                description=command.description(),
                changed_cells=result.changed_cells,
                passes=result.passes,
                converged=result.converged,
            )
        )
        publish_event(MessageEvent(self.last_status))
        return command

    def on_paint_completed(
        self, level: Level, layer_id: LayerId
    ) -> AutomapCommand | None:
        """Hook for the paint tools: rerun rules in place after a stroke.

        Does nothing unless auto_on_draw is on and there is something to run.
        """
        if not self.auto_on_draw or self.run_disabled_reason(level) is not None:
            return None
        return self.run(AutomapRunRequest(level=level, output_layer_id=layer_id))
