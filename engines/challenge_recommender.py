"""Challenge-type ranking and challenge sequence generation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from engines.validation import clamp
from learning_taxonomy import DEFAULT_CATALOG, ConceptCatalog, LearningPathType, dedupe
from schemas import UserProgress

_LOGGER = logging.getLogger(__name__)

WEAK_AREA_WEIGHT = 0.5
STRENGTH_WEIGHT = 0.2
PREFERRED_PATH_MULTIPLIER = 1.5
IN_PROGRESS_MULTIPLIER = 1.3
MASTERED_MULTIPLIER = 0.7
RECENT_MULTIPLIER = 0.5


@dataclass(frozen=True)
class ChallengeSpec:
    challenge_type: str
    concept: str
    difficulty: int
    is_prerequisite: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "challengeType": self.challenge_type,
            "concept": self.concept,
            "difficulty": self.difficulty,
            "isPrerequisite": self.is_prerequisite,
        }


def difficulty_for_proficiency(proficiency: float, path_type: Optional[LearningPathType] = None) -> int:
    """Map a proficiency value onto the 1-5 challenge difficulty scale."""

    if proficiency < 0.3:
        base = 1
    elif proficiency < 0.6:
        base = 2
    elif proficiency < 0.9:
        base = 3
    else:
        base = 4
    if path_type == LearningPathType.CHALLENGE_BASED:
        base += 1
    return int(clamp(base, 1, 5))


class ChallengeRecommender:
    """Rank challenge types against a learner's skill profile."""

    def __init__(self, catalog: ConceptCatalog = DEFAULT_CATALOG) -> None:
        self.catalog = catalog

    def score(
        self,
        skill_proficiency: Mapping[str, float],
        preferred_path_type: Optional[LearningPathType] = None,
        user_progress: Optional[UserProgress] = None,
        recent_challenges: Optional[Iterable[str]] = None,
    ) -> Dict[str, float]:
        favored = set(self.catalog.favored_types(preferred_path_type))
        recent = set(recent_challenges or ())
        in_progress = set(user_progress.concepts_in_progress) if user_progress else set()
        mastered = set(user_progress.concepts_mastered) if user_progress else set()

        scores: Dict[str, float] = {}
        for challenge_type in self.catalog.challenge_type_order():
            related = self.catalog.concepts_for_type(challenge_type)
            score = 0.0
            for concept in related:
                proficiency = float(skill_proficiency.get(concept, 0.0))
                score += (1 - proficiency) * WEAK_AREA_WEIGHT + proficiency * STRENGTH_WEIGHT

            if challenge_type in favored:
                score *= PREFERRED_PATH_MULTIPLIER
            for concept in related:
                if concept in in_progress:
                    score *= IN_PROGRESS_MULTIPLIER
            if user_progress is not None and related and all(c in mastered for c in related):
                score *= MASTERED_MULTIPLIER
            if challenge_type in recent:
                score *= RECENT_MULTIPLIER

            scores[challenge_type] = score
        return scores

    def rank(
        self,
        skill_proficiency: Mapping[str, float],
        preferred_path_type: Optional[LearningPathType] = None,
        user_progress: Optional[UserProgress] = None,
        recent_challenges: Optional[Iterable[str]] = None,
        count: int = 3,
    ) -> List[str]:
        if count <= 0:
            return []
        scores = self.score(skill_proficiency, preferred_path_type, user_progress, recent_challenges)
        # sorted() is stable, so equal scores keep the catalogue order.
        ranked = sorted(scores, key=lambda challenge_type: -scores[challenge_type])
        return ranked[:count]

    def generate_challenge_sequence(
        self,
        user_progress: UserProgress,
        target_concept: str,
        count: int = 5,
        path_type: Optional[LearningPathType] = None,
        adapt_to_difficulty: bool = True,
    ) -> List[ChallengeSpec]:
        """Build an ordered challenge sequence leading up to ``target_concept``.

        Prerequisites come first, weakest concept first. Remaining slots are
        filled with the target concept at increasing difficulty, unless the
        target has no challenge types of its own.
        """

        if count <= 0:
            return []
        concepts = dedupe([target_concept, *self.catalog.prerequisites_for(target_concept)])
        concepts = [c for c in concepts if self.catalog.related_types(c)]
        concepts.sort(key=user_progress.proficiency)

        sequence: List[ChallengeSpec] = []
        for concept in concepts:
            if len(sequence) >= count:
                break
            difficulty = (
                difficulty_for_proficiency(user_progress.proficiency(concept), path_type)
                if adapt_to_difficulty
                else 1
            )
            sequence.append(
                ChallengeSpec(
                    challenge_type=self._pick_type(concept, path_type),
                    concept=concept,
                    difficulty=difficulty,
                    is_prerequisite=concept != target_concept,
                )
            )

        if not self.catalog.related_types(target_concept):
            _LOGGER.debug("No challenge types for concept %s", target_concept)
            return sequence

        if adapt_to_difficulty:
            base = difficulty_for_proficiency(user_progress.proficiency(target_concept), path_type)
        else:
            base = 2
        target_type = self._pick_type(target_concept, path_type)
        index = 0
        while len(sequence) < count:
            sequence.append(
                ChallengeSpec(
                    challenge_type=target_type,
                    concept=target_concept,
                    difficulty=int(clamp(base + index, 1, 5)),
                )
            )
            index += 1
        return sequence

    def _pick_type(self, concept: str, path_type: Optional[LearningPathType]) -> str:
        related = self.catalog.related_types(concept)
        favored = self.catalog.favored_types(path_type)
        for challenge_type in related:
            if challenge_type in favored:
                return challenge_type
        return related[0]
