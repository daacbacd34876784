"""Per-concept proficiency transitions and mastery classification."""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from engines.validation import clamp
from learning_taxonomy import MASTERY_THRESHOLD, ProficiencyLevel
from schemas import ConceptMastery, UserProgress, utcnow

_LOGGER = logging.getLogger(__name__)

NOT_INTRODUCED = "not_introduced"
IN_PROGRESS = "in_progress"
MASTERED = "mastered"


class ProficiencyStore:
    """Apply proficiency deltas to a :class:`UserProgress` aggregate.

    Parameters
    ----------
    mastery_threshold:
        Proficiency at or above which a concept counts as mastered.
    success_step:
        Gain per unit of difficulty for a successful attempt.
    failure_penalty:
        Flat loss applied to an unsuccessful attempt.
    quality_weight:
        Multiplier for the optional solution quality score in
        :meth:`assess_concept_mastery`.
    perfect_bonus:
        Bonus for a successful attempt without hints and errors.
    struggle_penalty:
        Penalty when more than two hints or more than three errors were needed.

    Every operation returns a new aggregate; the input is never mutated.
    Mastery is one-directional: once mastered, a concept is never moved back
    to the in-progress set.
    """

    def __init__(
        self,
        mastery_threshold: float = MASTERY_THRESHOLD,
        success_step: float = 0.1,
        failure_penalty: float = 0.05,
        quality_weight: float = 0.1,
        perfect_bonus: float = 0.05,
        struggle_penalty: float = 0.03,
    ) -> None:
        if not 0.0 < mastery_threshold <= 1.0:
            raise ValueError("mastery_threshold must be in (0, 1]")
        if success_step < 0 or failure_penalty < 0:
            raise ValueError("success_step and failure_penalty must be non-negative")
        self.mastery_threshold = float(mastery_threshold)
        self.success_step = float(success_step)
        self.failure_penalty = float(failure_penalty)
        self.quality_weight = float(quality_weight)
        self.perfect_bonus = float(perfect_bonus)
        self.struggle_penalty = float(struggle_penalty)

    # ----- public API --------------------------------------------------
    def update_proficiency(
        self,
        progress: UserProgress,
        concept_id: str,
        success: bool,
        difficulty: float,
    ) -> UserProgress:
        """Apply the base delta for one attempt and reclassify the concept."""

        old = progress.proficiency(concept_id)
        new = clamp(old + self._base_delta(success, difficulty), 0.0, 1.0)
        updated = self._apply(progress, concept_id, new)
        record = self._mastery_record(updated, concept_id, success=success, challenge_id=None)
        _LOGGER.debug(
            "Proficiency for %s/%s moved %.3f -> %.3f (%s)",
            progress.user_id,
            concept_id,
            old,
            new,
            self.classify(updated, concept_id),
        )
        return self._store_record(updated, record)

    def assess_concept_mastery(
        self,
        progress: UserProgress,
        concept_id: str,
        challenge_id: str,
        success: bool,
        difficulty: float,
        solution_quality: Optional[float] = None,
        hints_used: int = 0,
        errors_count: int = 0,
    ) -> Tuple[UserProgress, ConceptMastery]:
        """Apply the base delta plus quality, perfect-solve and struggle adjustments."""

        delta = self._base_delta(success, difficulty)
        if solution_quality is not None:
            # Scores outside [0, 1] are clamped, not rejected.
            delta += self.quality_weight * clamp(solution_quality, 0.0, 1.0)
        if success and hints_used == 0 and errors_count == 0:
            delta += self.perfect_bonus
        if hints_used > 2 or errors_count > 3:
            delta -= self.struggle_penalty

        new = clamp(progress.proficiency(concept_id) + delta, 0.0, 1.0)
        updated = self._apply(progress, concept_id, new)
        record = self._mastery_record(updated, concept_id, success=success, challenge_id=challenge_id)
        updated = self._store_record(updated, record)
        return updated, record

    def classify(self, progress: UserProgress, concept_id: str) -> str:
        if progress.is_mastered(concept_id):
            return MASTERED
        if progress.is_in_progress(concept_id):
            return IN_PROGRESS
        return NOT_INTRODUCED

    def mastery(self, progress: UserProgress, concept_id: str) -> ConceptMastery:
        """Return the stored mastery record, or a fresh one for unknown concepts."""

        existing = progress.concept_mastery.get(concept_id)
        if existing is not None:
            return existing
        value = progress.proficiency(concept_id)
        return ConceptMastery(
            concept_id=concept_id,
            proficiency=value,
            level=ProficiencyLevel.from_value(value),
        )

    # ----- internals ---------------------------------------------------
    def _base_delta(self, success: bool, difficulty: float) -> float:
        return self.success_step * float(difficulty) if success else -self.failure_penalty

    def _apply(self, progress: UserProgress, concept_id: str, value: float) -> UserProgress:
        proficiency = dict(progress.skill_proficiency)
        proficiency[concept_id] = value
        mastered = list(progress.concepts_mastered)
        in_progress = list(progress.concepts_in_progress)

        if value >= self.mastery_threshold and concept_id not in mastered:
            if concept_id in in_progress:
                in_progress.remove(concept_id)
            mastered.append(concept_id)
        elif 0.0 < value < self.mastery_threshold and concept_id not in mastered and concept_id not in in_progress:
            in_progress.append(concept_id)

        return progress.model_copy(
            update={
                "skill_proficiency": proficiency,
                "concepts_mastered": mastered,
                "concepts_in_progress": in_progress,
            }
        )

    def _mastery_record(
        self,
        progress: UserProgress,
        concept_id: str,
        *,
        success: bool,
        challenge_id: Optional[str],
    ) -> ConceptMastery:
        previous = self.mastery(progress, concept_id)
        demonstrations = list(previous.demonstrations)
        if success and challenge_id and challenge_id not in demonstrations:
            demonstrations.append(challenge_id)
        value = progress.proficiency(concept_id)
        return ConceptMastery(
            concept_id=concept_id,
            proficiency=value,
            level=ProficiencyLevel.from_value(value),
            demonstrations=demonstrations,
            attempts=previous.attempts + 1,
            successful_attempts=previous.successful_attempts + (1 if success else 0),
            last_updated=utcnow(),
        )

    @staticmethod
    def _store_record(progress: UserProgress, record: ConceptMastery) -> UserProgress:
        records = dict(progress.concept_mastery)
        records[record.concept_id] = record
        return progress.model_copy(update={"concept_mastery": records})
