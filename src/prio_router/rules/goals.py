"""
prio-router: Template-based SMART goal decomposition.

Works with zero inference backends, so goal refinement always has an answer.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Callable

from prio_router.models import SmartGoalSuggestion

TEMPLATE_CONFIDENCE = 0.4
DEFAULT_HORIZON_DAYS = 90

_NUMBER_RE = re.compile(
    r"(\$\s?\d[\d,]*(?:\.\d+)?|\d[\d,]*(?:\.\d+)?\s*(?:%|k|kg|lbs?|pounds|miles|km|hours|books|pages|times)?)",
    re.IGNORECASE,
)
_DEADLINE_RE = re.compile(
    r"\b(by\s+(?:the\s+)?(?:end\s+of\s+)?(?:january|february|march|april|may|june|july|august|"
    r"september|october|november|december|next\s+\w+|this\s+\w+|\d{4}|summer|winter|spring|fall)"
    r"|in\s+\d+\s+(?:days|weeks|months|years)|within\s+\d+\s+(?:days|weeks|months|years))\b",
    re.IGNORECASE,
)
_AREAS = (
    ("career", ("job", "career", "promotion", "work", "business", "client", "skill")),
    ("health", ("weight", "run", "marathon", "gym", "health", "exercise", "sleep", "diet")),
    ("financial", ("save", "money", "debt", "invest", "budget", "income", "$")),
    ("learning", ("learn", "read", "study", "course", "language", "certification")),
    ("relationships", ("family", "friend", "partner", "kids", "relationship")),
)


class SmartGoalTemplate:
    """Builds a SMART breakdown of a goal from fixed templates."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now) -> None:
        self._clock = clock

    def suggest(self, text: str) -> SmartGoalSuggestion:
        goal = text.strip() or text
        lowered = goal.lower()

        number = _NUMBER_RE.search(goal)
        if number:
            measurable = f"Track progress toward {number.group(0).strip()} and review it weekly"
        else:
            measurable = "Pick one number that shows progress (count, amount or hours) and log it weekly"

        area = next(
            (name for name, words in _AREAS if any(w in lowered for w in words)),
            "personal",
        )

        deadline = _DEADLINE_RE.search(goal)
        if deadline:
            time_bound = f"Complete {deadline.group(0).strip()}"
        else:
            target = (self._clock() + timedelta(days=DEFAULT_HORIZON_DAYS)).date()
            time_bound = f"Complete by {target.isoformat()} ({DEFAULT_HORIZON_DAYS} days)"

        return SmartGoalSuggestion(
            refined_goal=goal,
            specific=f'Define exactly what "{goal}" looks like when it is done',
            measurable=measurable,
            achievable="Break it into weekly steps that fit your current schedule",
            relevant=f"Supports your {area} priorities",
            time_bound=time_bound,
            suggested_milestones=[
                "Week 1: write down the first concrete step and do it",
                "25%: build a weekly routine around the goal",
                "50%: review progress and adjust the plan",
                "100%: reach the target and reflect on what worked",
            ],
        )
