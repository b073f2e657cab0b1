"""
prio-router: Rule engine facade.

Bundles the priority classifier, task parser and SMART goal template behind
one object sharing a single clock. Pure functions of (input, clock); no I/O.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Callable

from prio_router.models import ParsedTask, PriorityClassification, SmartGoalSuggestion
from prio_router.rules.goals import SmartGoalTemplate
from prio_router.rules.parser import TaskParser
from prio_router.rules.priority import PriorityClassifier


class RuleEngine:
    """Deterministic classifier and parser.

    Example::

        engine = RuleEngine()
        result = engine.classify_priority("URGENT: server down")
        result.quadrant  # Quadrant.DO_FIRST
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self.clock = clock or datetime.now
        self._classifier = PriorityClassifier(self.clock)
        self._parser = TaskParser(self.clock, self._classifier)
        self._goals = SmartGoalTemplate(self.clock)

    def classify_priority(self, text: str, due_date: date | None = None) -> PriorityClassification:
        return self._classifier.classify(text, due_date)

    def parse_task(self, text: str) -> ParsedTask:
        return self._parser.parse(text)

    def suggest_smart_goal(self, text: str) -> SmartGoalSuggestion:
        return self._goals.suggest(text)
