"""
prio-router: Natural-language task parser.

Turns quick-capture text such as "remind me to call mom tomorrow at 5pm
#family" into a structured ParsedTask: a clean title, an ISO due date, a
24-hour due time and keyword tags. Never raises; unparseable input falls
back to the raw text as title with low confidence.
"""

from __future__ import annotations

import calendar
import logging
import re
from datetime import date, datetime, timedelta
from typing import Callable

from prio_router.models import ParsedTask
from prio_router.rules.priority import PriorityClassifier

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
MAX_TITLE_LENGTH = 100

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
NUMBER_WORDS = {
    "a": 1, "an": 1, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

_PREP = r"(?:(?:by|before|due|on|until|for)\s+)?"

DIRECTIVE_RE = re.compile(
    r"^\s*(?:please\s+|pls\s+)?(?:"
    r"remind me to|remind me|don'?t forget to|i need to|i have to|i must|i should|"
    r"i want to|need to|have to|add (?:a )?task:?|create (?:a )?task:?|todo:|to-do:|task:"
    r")\s*",
    re.IGNORECASE,
)
URGENT_WORD_RE = re.compile(r"\b(?:urgent(?:ly)?|asap|a\.s\.a\.p\.?|immediately)\b:?|!+", re.IGNORECASE)
HASHTAG_RE = re.compile(r"(?<!\w)#(\w+)")

TIME_AMPM_RE = re.compile(r"\b(?:at\s+)?(\d{1,2})(?::(\d{2}))?\s*(am|pm)\b", re.IGNORECASE)
TIME_24H_RE = re.compile(r"\b(?:at\s+)?([01]?\d|2[0-3]):([0-5]\d)\b", re.IGNORECASE)
TIME_WORDS = (
    (re.compile(r"\b(?:by\s+|at\s+)?(?:eod|end of (?:the )?day|close of business|cob)\b", re.IGNORECASE), "17:00"),
    (re.compile(r"\b(?:in the |this )?morning\b", re.IGNORECASE), "09:00"),
    (re.compile(r"\b(?:at\s+)?(?:noon|lunch(?:time)?)\b", re.IGNORECASE), "12:00"),
    (re.compile(r"\b(?:in the |this )?afternoon\b", re.IGNORECASE), "14:00"),
    (re.compile(r"\b(?:in the |this )?evening\b", re.IGNORECASE), "18:00"),
)

AREA_KEYWORDS = {
    "work": ("meeting", "client", "report", "email", "project", "presentation", "boss", "deadline"),
    "health": ("doctor", "dentist", "gym", "workout", "medication", "pharmacy", "therapy", "run"),
    "finance": ("tax", "taxes", "bill", "bills", "invoice", "budget", "rent", "bank", "pay"),
    "family": ("mom", "dad", "kids", "family", "wife", "husband", "parents", "birthday"),
    "learning": ("course", "study", "read", "learn", "class", "homework", "book"),
    "errand": ("buy", "groceries", "pick up", "drop off", "return", "store"),
}


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def _next_weekday(today: date, weekday: int) -> date:
    ahead = (weekday - today.weekday()) % 7
    return today + timedelta(days=ahead or 7)


class TaskParser:
    """Extracts task structure from quick-capture text.

    Args:
        clock: Returns the current time; relative dates resolve against it.
        classifier: Used to suggest a quadrant for the parsed task.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        classifier: PriorityClassifier | None = None,
    ) -> None:
        self._clock = clock
        self._classifier = classifier or PriorityClassifier(clock)

    def parse(self, text: str) -> ParsedTask:
        try:
            return self._parse(text)
        except Exception as e:
            logger.warning(f"Task parsing failed, using raw text as title: {e}")
            return self._fallback(text)

    def _parse(self, text: str) -> ParsedTask:
        today = self._clock().date()
        working = text.strip()
        tags: list[str] = []

        for tag in HASHTAG_RE.findall(working):
            tags.append(tag.lower())
        working = HASHTAG_RE.sub(" ", working)

        if URGENT_WORD_RE.search(working):
            tags.append("urgent")
            working = URGENT_WORD_RE.sub(" ", working)

        # Repeat so "please remind me to ..." and "todo: I need to ..." both strip.
        for _ in range(2):
            working = DIRECTIVE_RE.sub("", working, count=1)

        due_date, working = self._extract_date(working, today)
        due_time, working = self._extract_time(working)
        if due_time is not None and due_date is None:
            due_date = today

        lowered = text.lower()
        for area, keywords in AREA_KEYWORDS.items():
            if any(re.search(rf"\b{re.escape(k)}\b", lowered) for k in keywords) and area not in tags:
                tags.append(area)

        title = self._clean_title(working)
        if not title:
            return self._fallback(text)

        confidence = 0.7
        if due_date is not None:
            confidence += 0.1
        if due_time is not None:
            confidence += 0.05
        if len(text.split()) > 15:
            confidence -= 0.25
        confidence = max(FALLBACK_CONFIDENCE, min(0.95, confidence))

        classification = self._classifier.classify(text, due_date)
        return ParsedTask(
            title=title,
            due_date=due_date.isoformat() if due_date else None,
            due_time=due_time,
            suggested_quadrant=classification.quadrant,
            tags=list(dict.fromkeys(tags)),
            confidence=confidence,
        )

    @staticmethod
    def _fallback(text: str) -> ParsedTask:
        return ParsedTask(title=text.strip()[:MAX_TITLE_LENGTH], confidence=FALLBACK_CONFIDENCE)

    @staticmethod
    def _extract_date(text: str, today: date) -> tuple[date | None, str]:
        rules: list[tuple[re.Pattern[str], Callable[[re.Match[str]], date]]] = [
            (re.compile(rf"\b{_PREP}(?:today|tonight)\b", re.I), lambda m: today),
            (re.compile(rf"\b{_PREP}tomorrow\b", re.I), lambda m: today + timedelta(days=1)),
            (
                re.compile(rf"\b{_PREP}this weekend\b", re.I),
                lambda m: today if today.weekday() == 5 else _next_weekday(today, 5),
            ),
            (
                re.compile(rf"\b{_PREP}(?:this week|end of (?:the )?week|eow)\b", re.I),
                lambda m: today + timedelta(days=max(0, 4 - today.weekday())),
            ),
            (re.compile(rf"\b{_PREP}next week\b", re.I), lambda m: today + timedelta(days=7)),
            (re.compile(rf"\b{_PREP}next month\b", re.I), lambda m: _add_months(today, 1)),
            (
                re.compile(rf"\b{_PREP}end of (?:the )?month\b", re.I),
                lambda m: today.replace(day=calendar.monthrange(today.year, today.month)[1]),
            ),
            (
                re.compile(rf"\b{_PREP}in\s+(\d+|{'|'.join(NUMBER_WORDS)})\s+(day|week)s?\b", re.I),
                lambda m: today
                + timedelta(
                    days=(int(m.group(1)) if m.group(1).isdigit() else NUMBER_WORDS[m.group(1).lower()])
                    * (7 if m.group(2).lower() == "week" else 1)
                ),
            ),
            (
                re.compile(rf"\b{_PREP}(?:(?:this|next)\s+)?({'|'.join(WEEKDAYS)})\b", re.I),
                lambda m: _next_weekday(today, WEEKDAYS.index(m.group(1).lower())),
            ),
        ]
        for pattern, resolve in rules:
            match = pattern.search(text)
            if match:
                return resolve(match), text[: match.start()] + " " + text[match.end():]
        return None, text

    @staticmethod
    def _extract_time(text: str) -> tuple[str | None, str]:
        match = TIME_AMPM_RE.search(text)
        if match:
            hour = int(match.group(1)) % 12
            minute = int(match.group(2) or 0)
            if match.group(3).lower() == "pm":
                hour += 12
            if minute < 60:
                return f"{hour:02d}:{minute:02d}", text[: match.start()] + " " + text[match.end():]

        match = TIME_24H_RE.search(text)
        if match:
            return (
                f"{int(match.group(1)):02d}:{match.group(2)}",
                text[: match.start()] + " " + text[match.end():],
            )

        for pattern, value in TIME_WORDS:
            match = pattern.search(text)
            if match:
                return value, text[: match.start()] + " " + text[match.end():]
        return None, text

    @staticmethod
    def _clean_title(text: str) -> str:
        title = re.sub(r"\s+", " ", text).strip(" ,.;:-")
        # Drop prepositions left dangling after removing a date or time.
        while True:
            stripped = re.sub(r"\s+(?:by|before|due|on|at|until|for)$", "", title, flags=re.I)
            if stripped == title:
                break
            title = stripped.strip(" ,.;:-")
        title = title[:MAX_TITLE_LENGTH]
        return title[:1].upper() + title[1:]
