"""
Purpose: Spot stress language in a user message before it reaches the backend.
Content: fixed vocabulary, the four mindfulness activities, and pickers that
choose which activity to offer. No I/O; safe to call from anywhere.
"""

from __future__ import annotations
import random
from itertools import cycle
from typing import Optional, Protocol, Sequence

from ..models import Activity, ActivityKind, StressPrompt

STRESS_KEYWORDS = [
    "stress",
    "anxiety",
    "worried",
    "panic",
    "overwhelmed",
    "nervous",
    "tense",
    "pressure",
    "can't cope",
    "exhausted",
]

ACTIVITIES = (
    Activity(
        kind=ActivityKind.BREATHING,
        title="Breathing Exercise",
        description="Follow calming breathing exercises with visual guidance",
    ),
    Activity(
        kind=ActivityKind.GARDEN,
        title="Zen Garden",
        description="Create and maintain your digital peaceful space",
    ),
    Activity(
        kind=ActivityKind.FOREST,
        title="Mindful Forest",
        description="Take a peaceful walk through a virtual forest",
    ),
    Activity(
        kind=ActivityKind.WAVES,
        title="Ocean Waves",
        description="Match your breath with gentle ocean waves",
    ),
)


class ActivityPicker(Protocol):
    def pick(self, activities: Sequence[Activity]) -> Activity: ...


class RandomActivityPicker:
    """Uniform choice; pass a seed for reproducible runs."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def pick(self, activities: Sequence[Activity]) -> Activity:
        return self._rng.choice(list(activities))


class RotatingActivityPicker:
    """Cycles through the activities in order: breathing, garden, forest, waves."""

    def __init__(self) -> None:
        self._order = cycle(range(len(ACTIVITIES)))

    def pick(self, activities: Sequence[Activity]) -> Activity:
        return activities[next(self._order) % len(activities)]


_default_picker = RandomActivityPicker()


def _normalize(text: str) -> str:
    return (text or "").replace("’", "'").lower()


def find_stress_keyword(text: str) -> Optional[str]:
    """First vocabulary term (in vocabulary order) contained in the text."""
    lowered = _normalize(text)
    return next((k for k in STRESS_KEYWORDS if k in lowered), None)


def detect_stress_signals(
    text: str, *, picker: Optional[ActivityPicker] = None
) -> Optional[StressPrompt]:
    keyword = find_stress_keyword(text)
    if keyword is None:
        return None
    activity = (picker or _default_picker).pick(ACTIVITIES)
    return StressPrompt(trigger=keyword, activity=activity)


def make_picker(selection: str, *, seed: Optional[int] = None) -> ActivityPicker:
    if selection == "rotate":
        return RotatingActivityPicker()
    if selection == "random":
        return RandomActivityPicker(seed)
    raise ValueError(f"Unknown activity selection: {selection!r}")
