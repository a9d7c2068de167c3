"""
Weekly reductions over daily check-in rows, and the gentle copy built on them.

Rows are anything exposing `emotion`, `energy` and `score` attributes
(ORM rows or the `DayEntry` tuples used by the compare view).
"""
from collections import Counter
from statistics import mean
from typing import Iterable, List, NamedTuple, Optional, Sequence

SERIES_TREND_THRESHOLD = 0.6
TWO_WEEK_TREND_THRESHOLD = 0.15
MIN_TREND_POINTS = 3

LOW_ENERGIES = ("low", "tired", "drained")
HIGH_ENERGIES = ("great", "good", "energized")


class DayEntry(NamedTuple):
    date: str
    score: float
    emotion: str
    energy: str


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def completed_days(rows: Sequence) -> int:
    return len(rows)


def top_emotion(rows: Iterable) -> Optional[str]:
    # Counter keeps first-seen order, and most_common is stable, so ties go
    # to the emotion that appeared first.
    counts = Counter(e for e in (_clean(r.emotion) for r in rows) if e)
    if not counts:
        return None
    return counts.most_common()[0][0]


def series_trend(scores: Sequence[float]) -> str:
    """Compares the last score of the week with the first one."""
    if len(scores) < MIN_TREND_POINTS:
        return "na"
    diff = scores[-1] - scores[0]
    if diff >= SERIES_TREND_THRESHOLD:
        return "up"
    if diff <= -SERIES_TREND_THRESHOLD:
        return "down"
    return "flat"


def two_week_trend(last_scores: Sequence[float], prev_scores: Sequence[float]) -> str:
    """Compares this week's average score with the previous week's."""
    if len(last_scores) < MIN_TREND_POINTS or len(prev_scores) < MIN_TREND_POINTS:
        return "na"
    diff = mean(last_scores) - mean(prev_scores)
    if diff > TWO_WEEK_TREND_THRESHOLD:
        return "up"
    if diff < -TWO_WEEK_TREND_THRESHOLD:
        return "down"
    return "flat"


def scores_of(rows: Iterable) -> List[float]:
    return [r.score for r in rows if isinstance(r.score, (int, float)) and not isinstance(r.score, bool)]


def scores_with_fallback(rows: Sequence) -> List[float]:
    """
    Real scores when any row has one; otherwise a tiny derived score
    (one point each for a logged emotion and a logged energy).
    """
    scores = scores_of(rows)
    if scores:
        return scores
    return [(1 if r.emotion else 0) + (1 if r.energy else 0) for r in rows]


def build_insights(completed: int, top: Optional[str], trend: str, rows: Sequence) -> List[str]:
    insights = []

    if completed == 0:
        insights.append("There wasn't much logged this week, and that's okay. This space stays here for you.")
    elif completed <= 2:
        insights.append("You checked in a couple of times this week. Small moments still count.")
    elif completed <= 5:
        insights.append("You came back to your space more than once this week. That kind of continuity matters.")
    else:
        insights.append("You showed up for yourself most days this week. Steady, quiet consistency.")

    if top:
        insights.append(f"The feeling that showed up most was “{top}.”")
    elif completed > 0:
        insights.append("A clear emotional theme didn't stand out. This week looks mixed, not one-note.")

    energies = [e for e in (_clean(r.energy) for r in rows) if e]
    if len(energies) >= 3:
        majority = max(2, -(-len(energies) // 2))
        lowish = sum(1 for e in energies if e.lower() in LOW_ENERGIES)
        highish = sum(1 for e in energies if e.lower() in HIGH_ENERGIES)
        if lowish >= majority:
            insights.append("Energy seems to have been on the lower side for much of the week.")
        elif highish >= majority:
            insights.append("Energy leaned a bit brighter this week than it usually does.")
        else:
            insights.append("Your energy looks varied: some lighter moments, some heavier ones.")

    if trend == "up":
        insights.append("Compared with the week before, things look a little steadier.")
    elif trend == "flat":
        insights.append("Compared with the week before, things look fairly similar. Steady, not dramatic.")
    elif trend == "down":
        insights.append("Compared with the week before, this week looks a bit heavier.")
    else:
        insights.append("There isn't enough pattern yet to call a trend, and that's completely fine.")

    return insights[:4]


def gentle_suggestion(trend: str) -> str:
    if trend == "down":
        return ("If you want, keep it simple this week: one small check-in when things feel heavy. "
                "Even a single sentence is enough.")
    if trend == "up":
        return ("If you want, notice what helped you feel steadier. Not to optimize, "
                "just to keep a little of it close.")
    if trend == "flat":
        return ("If you want, try one gentle check-in at a calm moment. Not to fix anything, "
                "just to stay connected.")
    return "If you want, give it one quiet check-in this week. No pressure, just a little space."


def build_soft_insights(completed: int, top: Optional[str], trend: str) -> List[str]:
    out = []

    if completed == 0:
        out.append("There were no reflections this week yet.")
    elif completed <= 2:
        out.append("There wasn't enough reflection data this week to notice patterns yet.")
    else:
        out.append(f"You checked in {completed}/7 days this week.")

    if top:
        out.append(f"The most common emotion you picked was “{top}”.")
    else:
        out.append("Top emotion: not enough data yet.")

    if trend == "na":
        out.append("There wasn't enough data to identify an energy trend this week.")
    elif trend == "up":
        out.append("Your energy trend looked a bit higher by the end of the week.")
    elif trend == "down":
        out.append("Your energy trend looked a bit lower by the end of the week.")
    else:
        out.append("Your energy trend looked steady across the week.")

    return out[:4]


def change_note(delta_days: int) -> str:
    if delta_days == 0:
        return "Same number of check-ins as last week."
    if delta_days > 0:
        return f"More check-ins than last week (+{delta_days})."
    return f"Fewer check-ins than last week ({delta_days})."


def to_series(rows: Iterable) -> List[DayEntry]:
    return [
        DayEntry(
            date=r.date.isoformat() if hasattr(r.date, "isoformat") else str(r.date),
            score=float(r.score or 0),
            emotion=_clean(r.emotion),
            energy=_clean(r.energy),
        )
        for r in rows
    ]


def summarize_week(rows: Sequence, start, end) -> dict:
    """Week summary for the compare view; trend runs first-to-last over the daily scores."""
    series = to_series(rows)
    completed = completed_days(series)
    top = top_emotion(series)
    trend = series_trend([s.score for s in series])
    return {
        "range": {"start": start.isoformat(), "end": end.isoformat()},
        "completedDays": completed,
        "topEmotion": top,
        "trend": trend,
        "series": [s._asdict() for s in series],
        "insights": build_soft_insights(completed, top, trend),
    }


def day_dots(rows: Iterable) -> List[dict]:
    return [
        {
            "date": r.date.isoformat() if hasattr(r.date, "isoformat") else str(r.date),
            "done": True,
            "emotion": r.emotion,
            "energy": r.energy,
        }
        for r in rows
    ]


def weekly_bundle(last_rows: Sequence, prev_rows: Sequence, fallback_scores: bool = False) -> dict:
    """Payload shared by the week and weekly-insights views."""
    completed = completed_days(last_rows)
    top = top_emotion(last_rows)
    if fallback_scores:
        trend = two_week_trend(scores_with_fallback(last_rows), scores_with_fallback(prev_rows))
    else:
        trend = two_week_trend(scores_of(last_rows), scores_of(prev_rows))
    return {
        "completedDays": completed,
        "topEmotion": top,
        "trend": trend,
        "days": day_dots(last_rows),
        "insights": build_insights(completed, top, trend, last_rows),
        "suggestion": gentle_suggestion(trend),
    }
