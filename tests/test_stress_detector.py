import pytest

from mindspace.models import ActivityKind
from mindspace.services.stress_detector import (
    ACTIVITIES,
    STRESS_KEYWORDS,
    RandomActivityPicker,
    RotatingActivityPicker,
    detect_stress_signals,
    find_stress_keyword,
    make_picker,
)


@pytest.mark.parametrize("keyword", STRESS_KEYWORDS)
def test_every_keyword_triggers_case_insensitively(keyword: str) -> None:
    prompt = detect_stress_signals(f"Lately I feel {keyword.upper()} at work")
    assert prompt is not None
    assert prompt.trigger == keyword
    assert prompt.activity in ACTIVITIES


@pytest.mark.parametrize(
    "text",
    [
        "Can we talk about improving sleep?",
        "I need help with work-life balance",
        "",
        "   ",
    ],
)
def test_calm_messages_do_not_trigger(text: str) -> None:
    assert detect_stress_signals(text) is None


def test_first_keyword_in_vocabulary_order_wins() -> None:
    # "panic" appears first in the text but "anxiety" is earlier in the vocabulary
    assert find_stress_keyword("panic attacks and anxiety") == "anxiety"


def test_substring_match_counts() -> None:
    assert find_stress_keyword("Such a stressful week") == "stress"


def test_typographic_apostrophe_is_normalized() -> None:
    assert find_stress_keyword("I can’t cope anymore") == "can't cope"


def test_overwhelmed_scenario() -> None:
    prompt = detect_stress_signals("I've been feeling overwhelmed lately")
    assert prompt is not None
    assert prompt.trigger == "overwhelmed"


def test_rotating_picker_cycles_through_all_activities() -> None:
    picker = RotatingActivityPicker()
    kinds = [
        detect_stress_signals("stress", picker=picker).activity.kind for _ in range(5)
    ]
    assert kinds == [
        ActivityKind.BREATHING,
        ActivityKind.GARDEN,
        ActivityKind.FOREST,
        ActivityKind.WAVES,
        ActivityKind.BREATHING,
    ]


def test_seeded_random_picker_is_reproducible() -> None:
    first = [RandomActivityPicker(seed=7).pick(ACTIVITIES) for _ in range(3)]
    second = [RandomActivityPicker(seed=7).pick(ACTIVITIES) for _ in range(3)]
    assert first == second


def test_make_picker_rejects_unknown_selection() -> None:
    assert isinstance(make_picker("rotate"), RotatingActivityPicker)
    assert isinstance(make_picker("random", seed=1), RandomActivityPicker)
    with pytest.raises(ValueError):
        make_picker("weighted")
