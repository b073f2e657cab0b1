"""Deterministic rule engine: priority classification, task parsing, SMART goals."""

from prio_router.rules.engine import RuleEngine
from prio_router.rules.goals import SmartGoalTemplate
from prio_router.rules.parser import TaskParser
from prio_router.rules.priority import PriorityClassifier

__all__ = ["RuleEngine", "PriorityClassifier", "TaskParser", "SmartGoalTemplate"]
