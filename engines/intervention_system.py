"""Learning interventions, hint prioritisation and progress reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from engines.learning_style import LearningStyleClassifier
from engines.validation import clamp
from learning_taxonomy import LearningStyle, ProficiencyLevel
from schemas import ActionRecord, UserProgress

_LOGGER = logging.getLogger(__name__)

STRENGTH_THRESHOLD = 0.8
IMPROVEMENT_THRESHOLD = 0.4
PLATEAU_WINDOW = 3
TUTORIAL_FAILURES = 3
DEFAULT_HINT_PRIORITY = 5

_STRUGGLING_BANDS = (ProficiencyLevel.INTRODUCED, ProficiencyLevel.PRACTICING)
_GROWING_BANDS = (ProficiencyLevel.DEVELOPING, ProficiencyLevel.PROFICIENT)

# Hint types that get a boost when the learner is still early in the concept.
_EARLY_HINT_CONCEPTS = {"loop": "loops", "conditional": "conditionals"}

# Substring of the hint type that matches each learning style.
_STYLE_HINT_MARKERS = {
    LearningStyle.VISUAL: "image",
    LearningStyle.VERBAL: "text",
    LearningStyle.LOGICAL: "logic",
    LearningStyle.PRACTICAL: "example",
}

CONTENT_RECOMMENDATIONS: Dict[LearningStyle, Dict[str, str]] = {
    LearningStyle.VISUAL: {
        "hintStyle": "visual",
        "instructionStyle": "diagram",
        "feedbackStyle": "visual",
        "culturalContentFocus": "patterns",
        "challengeStyle": "pattern-focused",
    },
    LearningStyle.LOGICAL: {
        "hintStyle": "structured",
        "instructionStyle": "step-by-step",
        "feedbackStyle": "analytical",
        "culturalContentFocus": "symbolism",
        "challengeStyle": "logic-focused",
    },
    LearningStyle.PRACTICAL: {
        "hintStyle": "example",
        "instructionStyle": "hands-on",
        "feedbackStyle": "direct",
        "culturalContentFocus": "applications",
        "challengeStyle": "practical-focused",
    },
    LearningStyle.VERBAL: {
        "hintStyle": "text",
        "instructionStyle": "narrative",
        "feedbackStyle": "descriptive",
        "culturalContentFocus": "stories",
        "challengeStyle": "story-focused",
    },
    LearningStyle.REFLECTIVE: {
        "hintStyle": "question",
        "instructionStyle": "conceptual",
        "feedbackStyle": "detailed",
        "culturalContentFocus": "meanings",
        "challengeStyle": "open-ended",
    },
    LearningStyle.SOCIAL: {
        "hintStyle": "collaborative",
        "instructionStyle": "discussion",
        "feedbackStyle": "encouraging",
        "culturalContentFocus": "community",
        "challengeStyle": "sharing-focused",
    },
}


@dataclass(frozen=True)
class Intervention:
    type: str  # 'tutorial', 'alternative_approach', 'learning_style_assessment'
    priority: str  # 'high', 'medium', 'low'
    reason: str
    concept: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "reason": self.reason,
            "priority": self.priority,
        }
        if self.concept is not None:
            payload["concept"] = self.concept
        return payload


def proficiency_levels(progress: UserProgress) -> Dict[str, ProficiencyLevel]:
    return {
        concept: ProficiencyLevel.from_value(value)
        for concept, value in progress.skill_proficiency.items()
    }


def hint_usage(actions: Iterable[ActionRecord]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for action in actions:
        if action.action_type != "hint_viewed":
            continue
        hint_type = action.metadata.get("hintType") or action.metadata.get("hint_type")
        if hint_type:
            counts[str(hint_type)] = counts.get(str(hint_type), 0) + 1
    return counts


def content_recommendations(style: LearningStyle) -> Dict[str, str]:
    return dict(CONTENT_RECOMMENDATIONS[style])


class LearningInterventionSystem:
    """Rule-based interventions derived from challenge history and hint usage."""

    def __init__(
        self,
        tutorial_failures: int = TUTORIAL_FAILURES,
        plateau_window: int = PLATEAU_WINDOW,
    ) -> None:
        if tutorial_failures < 1 or plateau_window < 2:
            raise ValueError("tutorial_failures must be >= 1 and plateau_window >= 2")
        self.tutorial_failures = tutorial_failures
        self.plateau_window = plateau_window

    def detect(
        self,
        progress: UserProgress,
        style: LearningStyle,
        recent_actions: Sequence[ActionRecord] = (),
    ) -> List[Intervention]:
        interventions: List[Intervention] = []
        interventions.extend(self._detect_repeated_failures(progress))
        interventions.extend(self._detect_plateaus(progress))
        mismatch = self._detect_style_mismatch(style, recent_actions)
        if mismatch is not None:
            interventions.append(mismatch)
        if interventions:
            _LOGGER.debug(
                "Detected %d interventions for %s: %s",
                len(interventions),
                progress.user_id,
                [i.type for i in interventions],
            )
        return interventions

    def _detect_repeated_failures(self, progress: UserProgress) -> List[Intervention]:
        found = []
        for concept, level in proficiency_levels(progress).items():
            if level not in _STRUGGLING_BANDS:
                continue
            failures = sum(
                1
                for record in progress.challenge_history
                if not record.success and concept in record.concepts
            )
            if failures >= self.tutorial_failures:
                found.append(
                    Intervention(
                        type="tutorial",
                        priority="high",
                        concept=concept,
                        reason="Multiple failed attempts indicate a need for additional instruction",
                        context={"failed_attempts": failures},
                    )
                )
        return found

    def _detect_plateaus(self, progress: UserProgress) -> List[Intervention]:
        series: Dict[str, List[float]] = {}
        for record in sorted(progress.challenge_history, key=lambda r: r.timestamp):
            for concept in record.concepts:
                if concept in record.proficiency_snapshot:
                    series.setdefault(concept, []).append(record.proficiency_snapshot[concept])

        found = []
        for concept, values in series.items():
            if len(values) < self.plateau_window:
                continue
            window = values[-self.plateau_window:]
            improved = any(later > earlier for earlier, later in zip(window, window[1:]))
            if not improved:
                found.append(
                    Intervention(
                        type="alternative_approach",
                        priority="medium",
                        concept=concept,
                        reason="Skills plateau detected - may need different instruction approach",
                        context={"recent_proficiency": window},
                    )
                )
        return found

    @staticmethod
    def _detect_style_mismatch(
        style: LearningStyle, recent_actions: Sequence[ActionRecord]
    ) -> Optional[Intervention]:
        usage = hint_usage(recent_actions)
        visual = usage.get("visual", 0)
        text = usage.get("text", 0)
        if (style == LearningStyle.VISUAL and visual < text) or (
            style == LearningStyle.VERBAL and text < visual
        ):
            return Intervention(
                type="learning_style_assessment",
                priority="low",
                reason="Hint usage patterns suggest potential learning style mismatch",
                context={"hint_usage": usage},
            )
        return None


def hint_priority(
    hint_type: str,
    progress: Optional[UserProgress],
    style: LearningStyle,
    consecutive_failures: int = 0,
) -> int:
    """Priority in ``[0, 10]`` for showing a hint of ``hint_type``."""

    if progress is None:
        return DEFAULT_HINT_PRIORITY

    def band(concept: str) -> ProficiencyLevel:
        return ProficiencyLevel.from_value(progress.proficiency(concept))

    priority = DEFAULT_HINT_PRIORITY
    if hint_type in _EARLY_HINT_CONCEPTS:
        if band(_EARLY_HINT_CONCEPTS[hint_type]) in _STRUGGLING_BANDS:
            priority += 3
    elif hint_type == "pattern":
        if band("patterns") in _GROWING_BANDS:
            priority += 2
    elif hint_type == "cultural":
        if band("cultural") in _GROWING_BANDS:
            priority += 2
        if progress.preferences.get("interestedInCulture") is True:
            priority += 2
        if style in (LearningStyle.VERBAL, LearningStyle.REFLECTIVE):
            priority += 1
    elif hint_type == "debug":
        if consecutive_failures >= 3:
            priority += 4

    marker = _STYLE_HINT_MARKERS.get(style)
    if marker and marker in hint_type:
        priority += 2

    return int(clamp(priority, 0, 10))


def concepts_by_readiness(progress: UserProgress, limit: int = 5) -> List[str]:
    """Concepts ordered developing, practicing, introduced, then not introduced."""

    levels = proficiency_levels(progress)
    order = (
        ProficiencyLevel.DEVELOPING,
        ProficiencyLevel.PRACTICING,
        ProficiencyLevel.INTRODUCED,
        ProficiencyLevel.NOT_INTRODUCED,
    )
    ranked = [concept for level in order for concept, value in levels.items() if value == level]
    return ranked[:limit]


def progress_report(
    progress: UserProgress,
    classifier: LearningStyleClassifier,
    recommended_concepts: Optional[List[str]] = None,
) -> Dict[str, Any]:
    mastery: Dict[str, float] = {
        concept: level.percentage for concept, level in proficiency_levels(progress).items()
    }
    overall = sum(mastery.values()) / len(mastery) if mastery else 0.0
    strengths = [c for c, value in mastery.items() if value >= STRENGTH_THRESHOLD]
    improvements = [c for c, value in mastery.items() if value <= IMPROVEMENT_THRESHOLD]
    style = classifier.primary_style()
    return {
        "userId": progress.user_id,
        "overallProgress": overall,
        "conceptMastery": mastery,
        "strengths": strengths,
        "areasForImprovement": improvements,
        "challengesCompleted": len(progress.completed_challenges),
        "storiesExplored": len(progress.completed_stories),
        "xpLevel": progress.level,
        "experiencePoints": progress.experience_points,
        "learningStyle": style.value,
        "learningStyleConfidence": classifier.confidence(style),
        "recommendations": (
            recommended_concepts if recommended_concepts is not None else concepts_by_readiness(progress)
        ),
        "contentPreferences": content_recommendations(style),
    }


def summarize(interventions: Iterable[Intervention]) -> List[Mapping[str, Any]]:
    return [intervention.to_dict() for intervention in interventions]
