"""Copy-on-write learning session state."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from engines.validation import ErrorKind, PreconditionViolation, clamp
from learning_taxonomy import LearningPathType
from schemas import utcnow

MAX_SESSION_ACTIONS = 50


@dataclass(frozen=True)
class LearningSession:
    """A single learning session.

    Instances are immutable; every recording method returns a new session.
    Recording against an ended session raises :class:`PreconditionViolation`.
    """

    session_id: str
    user_id: str
    start_time: datetime
    learning_path_type: Optional[LearningPathType] = None
    end_time: Optional[datetime] = None
    time_spent_minutes: int = 0
    challenges_attempted: int = 0
    challenges_completed: int = 0
    hints_requested: int = 0
    errors_made: int = 0
    engagement_score: float = 0.5
    frustration_level: float = 0.0
    mastery_level: float = 0.0
    difficulty_level: int = 1
    performance_metrics: Dict[str, float] = field(default_factory=dict)
    action_history: Tuple[Dict[str, Any], ...] = ()
    is_active: bool = True

    @classmethod
    def start(
        cls,
        user_id: str,
        path_type: Optional[LearningPathType] = None,
        *,
        now: Optional[datetime] = None,
        difficulty_level: int = 1,
    ) -> "LearningSession":
        return cls(
            session_id=uuid.uuid4().hex,
            user_id=user_id,
            start_time=now or utcnow(),
            learning_path_type=path_type,
            difficulty_level=int(clamp(difficulty_level, 1, 5)),
        )

    # ----- derived values ----------------------------------------------
    @property
    def success_rate(self) -> float:
        if self.challenges_attempted == 0:
            return 0.0
        return self.challenges_completed / self.challenges_attempted

    @property
    def average_errors_per_challenge(self) -> float:
        if self.challenges_attempted == 0:
            return 0.0
        return self.errors_made / self.challenges_attempted

    @property
    def average_hints_per_challenge(self) -> float:
        if self.challenges_attempted == 0:
            return 0.0
        return self.hints_requested / self.challenges_attempted

    @property
    def is_user_struggling(self) -> bool:
        return self.frustration_level > 0.7 or (
            self.success_rate < 0.3 and self.challenges_attempted > 2
        )

    @property
    def is_user_excelling(self) -> bool:
        return (
            self.mastery_level > 0.8
            and self.success_rate > 0.8
            and self.challenges_attempted > 2
        )

    @property
    def recommended_difficulty_adjustment(self) -> int:
        if self.is_user_struggling:
            return -1
        if self.is_user_excelling:
            return 1
        return 0

    # ----- transitions -------------------------------------------------
    def record_challenge_attempt(
        self,
        successful: bool,
        difficulty_level: Optional[int] = None,
        time_spent_seconds: float = 0,
        errors_count: int = 0,
        hints_used: int = 0,
        *,
        now: Optional[datetime] = None,
    ) -> "LearningSession":
        self._ensure_active()
        difficulty = difficulty_level if difficulty_level is not None else self.difficulty_level

        attempted = self.challenges_attempted + 1
        completed = self.challenges_completed + (1 if successful else 0)
        hints = self.hints_requested + hints_used
        errors = self.errors_made + errors_count

        engagement = self.engagement_score + (0.1 if successful else -0.05)

        frustration = self.frustration_level + (-0.2 if successful else 0.1)
        if errors_count > 3:
            frustration += 0.1
        if hints_used > 2:
            frustration += 0.05
        frustration = clamp(frustration, 0.0, 1.0)

        mastery = self.mastery_level
        if successful:
            mastery += (difficulty / 5.0) * 0.2
        mastery = clamp(mastery, 0.0, 1.0)

        new_difficulty = self.difficulty_level
        if successful and frustration < 0.3 and mastery > 0.7:
            new_difficulty += 1
        elif not successful and frustration > 0.6:
            new_difficulty -= 1

        entry = {
            "type": "challenge_attempt",
            "successful": successful,
            "difficulty": difficulty,
            "time_spent_seconds": time_spent_seconds,
            "errors_count": errors_count,
            "hints_used": hints_used,
            "timestamp": (now or utcnow()).isoformat(),
        }
        updated = replace(
            self,
            challenges_attempted=attempted,
            challenges_completed=completed,
            hints_requested=hints,
            errors_made=errors,
            engagement_score=clamp(engagement, 0.0, 1.0),
            frustration_level=frustration,
            mastery_level=mastery,
            difficulty_level=int(clamp(new_difficulty, 1, 5)),
            action_history=self._append_action(entry),
        )
        return updated._with_metrics()

    def record_hint_request(self, *, now: Optional[datetime] = None) -> "LearningSession":
        self._ensure_active()
        updated = replace(
            self,
            hints_requested=self.hints_requested + 1,
            frustration_level=clamp(self.frustration_level + 0.05, 0.0, 1.0),
            action_history=self._append_action(
                {"type": "hint_request", "timestamp": (now or utcnow()).isoformat()}
            ),
        )
        return updated._with_metrics()

    def record_error(self, *, now: Optional[datetime] = None) -> "LearningSession":
        self._ensure_active()
        updated = replace(
            self,
            errors_made=self.errors_made + 1,
            frustration_level=clamp(self.frustration_level + 0.1, 0.0, 1.0),
            action_history=self._append_action(
                {"type": "error", "timestamp": (now or utcnow()).isoformat()}
            ),
        )
        return updated._with_metrics()

    def with_frustration(self, level: float) -> "LearningSession":
        self._ensure_active()
        return replace(self, frustration_level=clamp(level, 0.0, 1.0))

    def end(self, *, now: Optional[datetime] = None) -> "LearningSession":
        self._ensure_active()
        end_time = now or utcnow()
        elapsed = max(0, int((end_time - self.start_time).total_seconds() // 60))
        return replace(
            self,
            end_time=end_time,
            time_spent_minutes=elapsed,
            is_active=False,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "userId": self.user_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "timeSpentMinutes": self.time_spent_minutes,
            "challengesAttempted": self.challenges_attempted,
            "challengesCompleted": self.challenges_completed,
            "hintsRequested": self.hints_requested,
            "errorsMade": self.errors_made,
            "engagementScore": self.engagement_score,
            "frustrationLevel": self.frustration_level,
            "masteryLevel": self.mastery_level,
            "learningPathType": self.learning_path_type.value if self.learning_path_type else None,
            "difficultyLevel": self.difficulty_level,
            "performanceMetrics": dict(self.performance_metrics),
            "isActive": self.is_active,
        }

    # ----- internals ---------------------------------------------------
    def _ensure_active(self) -> None:
        if not self.is_active:
            raise PreconditionViolation(ErrorKind.SESSION_ENDED)

    def _append_action(self, entry: Dict[str, Any]) -> Tuple[Dict[str, Any], ...]:
        return (*self.action_history, entry)[-MAX_SESSION_ACTIONS:]

    def _with_metrics(self) -> "LearningSession":
        return replace(
            self,
            performance_metrics={
                "successRate": self.success_rate,
                "averageErrorsPerChallenge": self.average_errors_per_challenge,
                "averageHintsPerChallenge": self.average_hints_per_challenge,
            },
        )
