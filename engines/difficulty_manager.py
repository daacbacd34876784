"""Bounded difficulty adjustment between challenges."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from engines.frustration import FrustrationDetector
from engines.session import LearningSession
from engines.validation import clamp

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


@dataclass(frozen=True)
class Adjustment:
    current: int
    raw: int          # sum of every fired rule
    fired: Tuple[str, ...]
    frustration: float
    difficulty: int   # new difficulty after step cap and clamp

    @property
    def step(self) -> int:
        return self.difficulty - self.current


class DifficultyController:
    def __init__(self, frustration_detector: Optional[FrustrationDetector] = None):
        self.frustration_detector = frustration_detector or FrustrationDetector()

    def evaluate(
        self,
        current_difficulty: int,
        session: LearningSession,
        time_spent_seconds: float,
        errors_count: int,
        hints_used: int,
        concept_proficiency: Optional[float] = None,
    ) -> Adjustment:
        """Apply every rule and cap the step to one level."""

        current = int(clamp(int(current_difficulty), MIN_DIFFICULTY, MAX_DIFFICULTY))
        success_rate = session.success_rate
        fired = []
        raw = 0

        def rule(name: str, delta: int) -> None:
            nonlocal raw
            fired.append(name)
            raw += delta

        if time_spent_seconds > 300:
            rule("slow_completion", -1)
        elif time_spent_seconds < 60 and success_rate > 0.7:
            rule("fast_completion", +1)

        if errors_count > 5 or hints_used > 3:
            rule("heavy_support", -1)

        frustration = self.frustration_detector.detect(
            session, errors_count, time_spent_seconds, hints_used
        )
        if frustration > 0.7:
            rule("high_frustration", -1)
        elif frustration < 0.2 and success_rate > 0.8:
            rule("low_frustration", +1)

        if concept_proficiency is not None:
            if concept_proficiency > 0.8 and current < 4:
                rule("strong_concept", +1)
            elif concept_proficiency < 0.3 and current > 2:
                rule("weak_concept", -1)

        step = int(clamp(raw, -1, 1))
        difficulty = int(clamp(current + step, MIN_DIFFICULTY, MAX_DIFFICULTY))
        return Adjustment(
            current=current,
            raw=raw,
            fired=tuple(fired),
            frustration=frustration,
            difficulty=difficulty,
        )

    def adjust(
        self,
        current_difficulty: int,
        session: LearningSession,
        time_spent_seconds: float,
        errors_count: int,
        hints_used: int,
        concept_proficiency: Optional[float] = None,
    ) -> int:
        return self.evaluate(
            current_difficulty,
            session,
            time_spent_seconds,
            errors_count,
            hints_used,
            concept_proficiency,
        ).difficulty
