"""Pydantic schemas for the durable learner aggregate and boundary records."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError

from learning_taxonomy import LearningPathType, ProficiencyLevel, SkillLevel

__all__ = [
    "ActionMetadata",
    "ActionRecord",
    "ChallengeAttemptRecord",
    "ConceptMastery",
    "ConceptRecommendationResponse",
    "LearningPath",
    "LearningPathItem",
    "Milestone",
    "MilestoneRequirement",
    "MilestoneReward",
    "SkillAssessmentEntry",
    "SkillAssessmentResponse",
    "UserProgress",
    "parse_json_safe",
    "utcnow",
]

MAX_CHALLENGE_HISTORY = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ActionMetadata(BaseModel):
    """Validated metadata attached to a learner action.

    The hosting application sends camelCase keys; unknown keys are kept so
    that downstream consumers can still inspect them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    challenge_id: str | None = Field(default=None, alias="challengeId")
    challenge_type: str | None = Field(
        default=None,
        alias="challengeType",
        description="Concept exercised by a completed challenge (e.g. loops).",
    )
    difficulty: float | None = Field(default=None, ge=0.0)
    concepts: List[str] = Field(default_factory=list)
    completion_time_seconds: float | None = Field(default=None, ge=0.0, alias="completionTimeSeconds")
    attempts: int | None = Field(default=None, ge=0)
    block_count: int | None = Field(default=None, ge=0, alias="blockCount")
    shared: bool = False
    viewed_hint: bool = Field(default=False, alias="viewedHint")
    hint_type: str | None = Field(default=None, alias="hintType")
    solution_quality: float | None = Field(default=None, ge=0.0, le=1.0, alias="solutionQuality")
    hints_used: int = Field(default=0, ge=0, alias="hintsUsed")
    errors_count: int = Field(default=0, ge=0, alias="errorsCount")


class ActionRecord(BaseModel):
    action_type: str
    was_successful: bool
    timestamp: datetime = Field(default_factory=utcnow)
    context_id: str | None = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ChallengeAttemptRecord(BaseModel):
    challenge_id: str
    concepts: List[str] = Field(default_factory=list)
    success: bool
    difficulty: float = 1.0
    timestamp: datetime = Field(default_factory=utcnow)
    proficiency_snapshot: Dict[str, float] = Field(
        default_factory=dict,
        description="Proficiency of each listed concept right after the attempt was applied.",
    )


class MilestoneRequirement(BaseModel):
    type: Literal[
        "story_count",
        "pattern_count",
        "challenge_count",
        "concept_mastery",
        "streak",
        "cultural_exploration",
        "level",
    ]
    value: int = Field(ge=0)


class MilestoneReward(BaseModel):
    xp: int = Field(default=0, ge=0)
    badge_id: str | None = None


class Milestone(BaseModel):
    id: str
    title: str
    description: str = ""
    requirement: MilestoneRequirement
    reward: MilestoneReward = Field(default_factory=MilestoneReward)


class ConceptMastery(BaseModel):
    concept_id: str
    proficiency: float = Field(default=0.0, ge=0.0, le=1.0)
    level: ProficiencyLevel = ProficiencyLevel.NOT_INTRODUCED
    demonstrations: List[str] = Field(
        default_factory=list,
        description="Challenge ids in which the learner successfully demonstrated the concept.",
    )
    attempts: int = 0
    successful_attempts: int = 0
    last_updated: datetime | None = None


class UserProgress(BaseModel):
    """Durable per-user aggregate persisted under ``user_progress_<id>``."""

    user_id: str
    name: str = "User"
    skill_proficiency: Dict[str, float] = Field(default_factory=dict)
    concepts_mastered: List[str] = Field(default_factory=list)
    concepts_in_progress: List[str] = Field(default_factory=list)
    completed_challenges: List[str] = Field(default_factory=list)
    completed_stories: List[str] = Field(default_factory=list)
    experience_points: int = 0
    level: int = 1
    streak: int = 0
    last_active_date: datetime = Field(default_factory=utcnow)
    completed_milestones: List[str] = Field(default_factory=list)
    earned_badges: List[str] = Field(default_factory=list)
    concept_mastery: Dict[str, ConceptMastery] = Field(default_factory=dict)
    learning_style_points: Dict[str, int] = Field(default_factory=dict)
    challenge_history: List[ChallengeAttemptRecord] = Field(default_factory=list)
    preferences: Dict[str, Any] = Field(default_factory=dict)

    def proficiency(self, concept_id: str) -> float:
        return float(self.skill_proficiency.get(concept_id, 0.0))

    def is_mastered(self, concept_id: str) -> bool:
        return concept_id in self.concepts_mastered

    def is_in_progress(self, concept_id: str) -> bool:
        return concept_id in self.concepts_in_progress

    def with_challenge_record(self, record: ChallengeAttemptRecord) -> "UserProgress":
        history = [*self.challenge_history, record][-MAX_CHALLENGE_HISTORY:]
        return self.model_copy(update={"challenge_history": history})


class LearningPathItem(BaseModel):
    concept: str
    title: str
    description: str = ""
    skill_level: SkillLevel = SkillLevel.NOVICE
    estimated_minutes: int = Field(default=20, ge=0)
    prerequisites: List[str] = Field(default_factory=list)
    challenge_types: List[str] = Field(default_factory=list)
    cultural_elements: List[Dict[str, Any]] = Field(default_factory=list)
    cultural_connection: str | None = None
    is_completed: bool = False


class LearningPath(BaseModel):
    user_id: str
    path_type: LearningPathType
    items: List[LearningPathItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def concepts(self) -> List[str]:
        return [item.concept for item in self.items]


class SkillAssessmentEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = "BEGINNER"
    explanation: str | None = None


class SkillAssessmentResponse(RootModel[Dict[str, Union[SkillAssessmentEntry, str]]]):
    """Generative-text skill assessment keyed by skill name."""


class ConceptRecommendationResponse(RootModel[List[str]]):
    """Generative-text concept recommendation list."""


_T = TypeVar("_T", bound=BaseModel)

_CLOSERS = {"{": "}", "[": "]"}


def _find_first_json_value(text: str, openers: str = "{[") -> tuple[str, int, int]:
    positions = [text.find(opener) for opener in openers if text.find(opener) != -1]
    start = min(positions) if positions else -1
    while start != -1:
        opener = text[start]
        closer = _CLOSERS[opener]
        depth = 0
        for idx in range(start, len(text)):
            char = text[idx]
            if char == opener and (idx == 0 or text[idx - 1] != "\\"):
                depth += 1
            elif char == closer and (idx == 0 or text[idx - 1] != "\\"):
                depth -= 1
                if depth == 0:
                    candidate = text[start : idx + 1]
                    try:
                        json.loads(candidate)
                    except Exception:
                        break
                    return candidate, start, idx + 1
        following = [
            text.find(candidate_opener, start + 1)
            for candidate_opener in openers
            if text.find(candidate_opener, start + 1) != -1
        ]
        start = min(following) if following else -1
    raise ValueError("No JSON value found in provided text")


def parse_json_safe(text: str, model: Type[_T], *, allow_trailing: bool = False) -> _T:
    """Parse ``text`` into ``model`` with a fallback JSON extraction pass.

    ``allow_trailing`` accepts free-form prose after the embedded JSON value,
    which generative-text responses frequently contain.
    """

    first_error: Exception | None = None
    try:
        return model.model_validate_json(text)
    except (ValidationError, ValueError, TypeError) as exc:
        first_error = exc

    try:
        snippet, _, end = _find_first_json_value(text)
    except ValueError:
        if first_error:
            raise first_error
        raise

    trailing = text[end:]
    if trailing.strip() and not allow_trailing:
        if isinstance(first_error, ValidationError):
            raise first_error
        raise ValueError("Trailing content detected after JSON value")

    try:
        return model.model_validate_json(snippet)
    except Exception:
        if first_error:
            raise first_error
        raise
