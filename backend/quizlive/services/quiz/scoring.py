import math


def clamp_time_left(time_left, budget_sec: float) -> float:
    """Clamp a client-reported time left into [0, budget].

    Missing or non-numeric values count as 0.
    """
    try:
        value = float(time_left or 0)
    except (TypeError, ValueError):
        value = 0.0
    if math.isnan(value):
        value = 0.0
    return max(0.0, min(value, float(budget_sec)))


def speed_bonus(clamped_time_left: float, budget_sec: float, bonus_points: int = 10) -> int:
    if budget_sec <= 0:
        return 0
    # Round half up, so 0.5 of a point counts
    return int(math.floor((clamped_time_left / budget_sec) * bonus_points + 0.5))


def score_delta(is_correct: bool, time_left, budget_sec: float,
                base_points: int = 10, bonus_points: int = 10) -> int:
    """Points for one answer.

    Correct answers get ``base_points`` plus a speed bonus proportional to
    the clamped time left; anything else scores 0.
    """
    if not is_correct:
        return 0
    clamped = clamp_time_left(time_left, budget_sec)
    return base_points + speed_bonus(clamped, budget_sec, bonus_points)


def normalize_option(text) -> str:
    return str(text if text is not None else '').strip().lower()


def is_correct_answer(question, selected_option) -> bool:
    """Compare the selection against the option flagged correct."""
    correct = question.correct_option
    if correct is None:
        return False
    selected = normalize_option(selected_option)
    return bool(selected) and selected == normalize_option(correct.text)
