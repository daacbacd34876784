"""Frustration estimation from session counters and the current challenge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from engines.session import LearningSession
from engines.validation import clamp


@dataclass(frozen=True)
class FrustrationBreakdown:
    level: float
    baseline: float
    contributions: Tuple[Tuple[str, float], ...]


class FrustrationDetector:
    """Six-term frustration estimate bounded to ``[0, 1]``.

    The detector is pure: the session passed in is never modified.
    """

    def detect(
        self,
        session: LearningSession,
        recent_errors: int,
        time_on_challenge_seconds: float,
        hints_requested: int,
    ) -> float:
        return self.explain(session, recent_errors, time_on_challenge_seconds, hints_requested).level

    def explain(
        self,
        session: LearningSession,
        recent_errors: int,
        time_on_challenge_seconds: float,
        hints_requested: int,
    ) -> FrustrationBreakdown:
        contributions: List[Tuple[str, float]] = []

        contributions.append(("recent_errors", 0.1 * clamp(recent_errors, 0, 5)))

        if time_on_challenge_seconds > 180:
            overtime = (time_on_challenge_seconds - 180) / 60
            contributions.append(("time_on_challenge", 0.1 * clamp(overtime, 0, 3)))

        if hints_requested > 1:
            contributions.append(("hints_requested", 0.05 * clamp(hints_requested, 0, 5)))

        success_rate = session.success_rate
        if session.challenges_attempted > 2 and success_rate < 0.5:
            contributions.append(("low_success_rate", 0.2 * (1 - success_rate)))

        error_rate = session.average_errors_per_challenge
        if session.challenges_attempted > 0 and error_rate > 3:
            contributions.append(("error_rate", 0.1 * clamp(error_rate / 5, 0, 1)))

        if session.is_user_struggling:
            contributions.append(("struggling", 0.1))

        baseline = session.frustration_level
        level = clamp(baseline + sum(value for _, value in contributions), 0.0, 1.0)
        return FrustrationBreakdown(level=level, baseline=baseline, contributions=tuple(contributions))
