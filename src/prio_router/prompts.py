"""
prio-router: Prompt builders for inference-backed providers.

One builder per request type. Structured request types ask the model for a
single JSON object with fixed field names, which prio_router.parsing reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from prio_router.models import AiRequest


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


CLASSIFY_SYSTEM = """You are a productivity assistant that classifies tasks using the Eisenhower Matrix.

- DO (urgent and important): imminent deadlines that directly affect key goals, crises
- SCHEDULE (important, not urgent): long-term goals, planning, learning, relationships
- DELEGATE (urgent, not important): time-sensitive routine work someone else can do
- ELIMINATE (neither): low-value activities and distractions

URGENCY signals: deadlines, "today", "ASAP", "urgent", "by [date]", "due", people waiting
IMPORTANCE signals: goals, career, health, key relationships, clients, strategic value

Respond with ONLY a JSON object:
{"quadrant": "DO|SCHEDULE|DELEGATE|ELIMINATE", "confidence": 0.0-1.0, "explanation": "brief reason", "is_urgent": true|false, "is_important": true|false}"""

PARSE_TASK_SYSTEM = """You are a task parser. Extract structured information from a natural language task.

Respond with ONLY a JSON object with these fields:
- title: the task itself, without dates or priority words
- due_date: YYYY-MM-DD or null
- due_time: HH:MM in 24-hour format or null
- is_urgent: true if the text signals urgency ("urgent", "ASAP", "!!")
- keywords: list of short lowercase tags (e.g. "work", "health")
- confidence: 0.0-1.0

Time keywords: morning 09:00, noon 12:00, afternoon 14:00, evening 18:00, end of day 17:00."""

SMART_GOAL_SYSTEM = """You are a goal coach. Rewrite the goal using the SMART framework.

Respond with ONLY a JSON object:
{"refined_goal": "...", "specific": "...", "measurable": "...", "achievable": "...", "relevant": "...", "time_bound": "...", "suggested_milestones": ["...", "..."]}"""

BRIEFING_SYSTEM = """You write short, encouraging daily briefings for a personal task manager.

Respond with ONLY a JSON object:
{"greeting": "...", "summary": "...", "top_priorities": ["..."], "insights": ["..."], "motivational_quote": "..." or null}"""

ACTION_ITEMS_SYSTEM = """Extract action items from meeting notes.

Respond with ONLY a JSON object:
{"items": [{"description": "...", "assignee": "..." or null, "due_date": "YYYY-MM-DD" or null}]}"""

GENERAL_SYSTEM = "You are a concise, helpful assistant inside a personal task manager."


def _context_lines(request: AiRequest) -> str:
    context = request.context
    if context is None:
        return ""
    lines = []
    if context.existing_goals:
        lines.append("Current goals: " + "; ".join(context.existing_goals[:5]))
    if context.recent_tasks:
        lines.append("Recent tasks: " + "; ".join(context.recent_tasks[:5]))
    if context.due_date is not None:
        lines.append(f"Due date: {context.due_date.isoformat()}")
    return "\n".join(lines) + ("\n\n" if lines else "")


def classify_priority(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(
        CLASSIFY_SYSTEM,
        f'{_context_lines(request)}Classify this task:\n"{request.input}"\n\nJSON:',
    )


def parse_task(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(
        PARSE_TASK_SYSTEM,
        f'Parse this task: "{request.input}"\n\n'
        f"Current date: {now.date().isoformat()}\n"
        f"Current day: {now.strftime('%A')}\n\nJSON:",
    )


def suggest_smart_goal(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(
        SMART_GOAL_SYSTEM,
        f'{_context_lines(request)}Goal: "{request.input}"\n'
        f"Today: {now.date().isoformat()}\n\nJSON:",
    )


def generate_briefing(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(
        BRIEFING_SYSTEM,
        f"{_context_lines(request)}Date: {now.strftime('%A, %Y-%m-%d')}\n\n{request.input}\n\nJSON:",
    )


def extract_action_items(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(ACTION_ITEMS_SYSTEM, f"Meeting notes:\n{request.input}\n\nJSON:")


def general_generate(request: AiRequest, now: datetime) -> Prompt:
    return Prompt(GENERAL_SYSTEM, f"{_context_lines(request)}{request.input}")
