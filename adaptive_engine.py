"""Adaptive learning engine: the public entry point for the hosting app.

The engine is explicitly constructed with its collaborators (storage,
generative text, path enricher, clock). It keeps one current user in
memory, persists the full :class:`schemas.UserProgress` aggregate after each
mutation and never surfaces collaborator outages to the caller.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError

from engines.caching import EngineCaches
from engines.challenge_recommender import ChallengeRecommender, ChallengeSpec
from engines.difficulty_manager import DifficultyController
from engines.frustration import FrustrationDetector
from engines.intervention_system import (
    Intervention,
    LearningInterventionSystem,
    content_recommendations,
    hint_priority,
    progress_report,
)
from engines.learning_style import LearningStyleClassifier
from engines.milestones import MilestoneTracker, add_experience, update_streak, xp_for_action
from engines.proficiency import ProficiencyStore
from engines.session import LearningSession
from engines.text_generation import (
    AIAssessmentService,
    GenerativeTextService,
    HttpGenerativeTextClient,
    default_concept_recommendations,
    default_skill_assessment,
)
from engines.validation import Err, ErrorKind, Ok, PreconditionViolation, Result
from env_validation import EngineSettings, validate_environment
from learning_path import CulturalPathEnricher, LearningPathBuilder, PathEnricher, recommend_learning_path_type
from learning_taxonomy import (
    DEFAULT_CATALOG,
    ConceptCatalog,
    LearningPathType,
    LearningStyle,
    LegacyLearningStyle,
    ProficiencyLevel,
    SkillLevel,
    dedupe,
    parse_path_type,
)
from schemas import (
    ActionMetadata,
    ActionRecord,
    ChallengeAttemptRecord,
    ConceptMastery,
    LearningPath,
    Milestone,
    UserProgress,
    utcnow,
)
from storage import KeyValueStore, SQLiteKeyValueStore, StorageError

_LOGGER = logging.getLogger(__name__)

USER_PROGRESS_PREFIX = "user_progress_"
LEARNING_PATH_PREFIX = "learning_path_"
RECOMMENDATION_PREFIX = "adaptive_learning_recommendations_"
RECOMMENDATION_TTL = timedelta(hours=1)
MAX_RECENT_ACTIONS = 50

# Skill touched by each action type, with an optional fixed difficulty.
_ACTION_CONCEPTS: Dict[str, tuple] = {
    "story_progress": ("storytelling", None),
    "pattern_creation": ("patterns", None),
    "cultural_exploration": ("cultural", None),
    "debug_success": ("debugging", None),
    "debug_failure": ("debugging", None),
    "block_connection": ("structure", 0.5),
}

_BAND_DIFFICULTY = {
    ProficiencyLevel.NOT_INTRODUCED: 1,
    ProficiencyLevel.INTRODUCED: 1,
    ProficiencyLevel.PRACTICING: 2,
    ProficiencyLevel.DEVELOPING: 3,
    ProficiencyLevel.PROFICIENT: 4,
    ProficiencyLevel.MASTERED: 5,
}


def _log_json(event: str, payload: Dict[str, Any]) -> None:
    record = {"event": event, **payload}
    try:
        message = json.dumps(record, ensure_ascii=False, sort_keys=True, default=str)
    except (TypeError, ValueError):
        fallback = {
            "event": event,
            "error": "serialization_failed",
            "payload_repr": repr(payload),
        }
        message = json.dumps(fallback, ensure_ascii=False, sort_keys=True)
    _LOGGER.info(message)


def _bump_preference(progress: UserProgress, key: str, amount: float = 1) -> UserProgress:
    preferences = dict(progress.preferences)
    current = preferences.get(key, 0)
    if not isinstance(current, (int, float)) or isinstance(current, bool):
        current = 0
    preferences[key] = current + amount
    return progress.model_copy(update={"preferences": preferences})


class AdaptiveEngine:
    """Root orchestrator for proficiency, style, session and recommendations."""

    def __init__(
        self,
        storage: KeyValueStore,
        generator: Optional[GenerativeTextService] = None,
        *,
        enricher: Optional[PathEnricher] = None,
        clock: Callable[[], Any] = utcnow,
        catalog: ConceptCatalog = DEFAULT_CATALOG,
        ai_timeout: float = 10.0,
        milestones: Optional[MilestoneTracker] = None,
    ) -> None:
        self.storage = storage
        self.clock = clock
        self.catalog = catalog
        self.proficiency = ProficiencyStore()
        self.frustration = FrustrationDetector()
        self.difficulty = DifficultyController(self.frustration)
        self.recommender = ChallengeRecommender(catalog)
        self.paths = LearningPathBuilder(
            catalog, enricher if enricher is not None else CulturalPathEnricher()
        )
        self.milestones = milestones or MilestoneTracker()
        self.interventions = LearningInterventionSystem()
        self.ai = AIAssessmentService(generator, timeout=ai_timeout, catalog=catalog)
        self.caches = EngineCaches()

        self._progress: Optional[UserProgress] = None
        self._classifier = LearningStyleClassifier()
        self._session: Optional[LearningSession] = None
        self._frustration_level: Optional[float] = None
        # Users whose stored progress could not be read; never overwrite it.
        self._unreadable_users: Set[str] = set()
        self._recent_actions: List[ActionRecord] = []
        self._consecutive_successes = 0
        self._consecutive_failures = 0

    @classmethod
    def from_settings(cls, settings: Optional[EngineSettings] = None) -> "AdaptiveEngine":
        if settings is None:
            validate_environment()
            settings = EngineSettings.from_env()
        generator = None
        if settings.ai_enabled and settings.generative_text_url:
            generator = HttpGenerativeTextClient(settings.model_config())
        return cls(
            SQLiteKeyValueStore(settings.storage_path),
            generator,
            enricher=CulturalPathEnricher(),
            ai_timeout=settings.generative_text_timeout,
        )

    # ------------------------------------------------------------------
    # Current user state
    # ------------------------------------------------------------------
    @property
    def current_user(self) -> Optional[UserProgress]:
        return self._progress

    @property
    def current_session(self) -> Optional[LearningSession]:
        return self._session

    @property
    def frustration_level(self) -> Optional[float]:
        """Last level reported by :meth:`detect_frustration` in this session."""
        return self._frustration_level

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def consecutive_successes(self) -> int:
        return self._consecutive_successes

    @property
    def recent_actions(self) -> List[ActionRecord]:
        return list(self._recent_actions)

    @property
    def learning_style(self) -> LearningStyleClassifier:
        return self._classifier

    def _require_user(self) -> UserProgress:
        if self._progress is None:
            raise PreconditionViolation(ErrorKind.NO_ACTIVE_USER)
        return self._progress

    def _classifier_for(self, progress: UserProgress) -> LearningStyleClassifier:
        if self._progress is not None and self._progress.user_id == progress.user_id:
            return self._classifier
        return LearningStyleClassifier.from_points(progress.learning_style_points)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def _new_progress(self, user_id: str) -> UserProgress:
        return UserProgress(user_id=user_id, last_active_date=self.clock())

    async def _read_progress(self, user_id: str) -> UserProgress:
        key = f"{USER_PROGRESS_PREFIX}{user_id}"
        try:
            raw = await self.storage.get(key)
        except StorageError as exc:
            _LOGGER.warning("Failed to read progress for %s: %s", user_id, exc)
            self._unreadable_users.add(user_id)
            if self._progress is not None and self._progress.user_id == user_id:
                return self._progress
            return self._new_progress(user_id)
        self._unreadable_users.discard(user_id)
        if raw is None:
            return self._new_progress(user_id)
        try:
            progress = UserProgress.model_validate_json(raw)
        except (ValidationError, ValueError) as exc:
            _LOGGER.warning("Corrupt progress for %s, starting fresh: %s", user_id, exc)
            return self._new_progress(user_id)
        if progress.user_id != user_id:
            _LOGGER.warning("Stored progress under %s belongs to %s; starting fresh", key, progress.user_id)
            return self._new_progress(user_id)
        return progress

    async def _progress_for(self, user_id: str) -> UserProgress:
        if self._progress is not None and self._progress.user_id == user_id:
            return self._progress
        return await self._read_progress(user_id)

    async def _save_progress(self, progress: UserProgress) -> UserProgress:
        if self._progress is not None and self._progress.user_id == progress.user_id:
            progress = progress.model_copy(
                update={"learning_style_points": self._classifier.to_points()}
            )
            self._progress = progress
        self.caches.invalidate_user(progress.user_id)
        if progress.user_id in self._unreadable_users:
            _LOGGER.warning("Not persisting progress for %s until stored state can be read", progress.user_id)
            return progress
        try:
            await self.storage.put(
                f"{USER_PROGRESS_PREFIX}{progress.user_id}",
                progress.model_dump_json().encode("utf-8"),
            )
        except StorageError as exc:
            _LOGGER.warning("Failed to persist progress for %s: %s", progress.user_id, exc)
        return progress

    async def load_user(self, user_id: str) -> UserProgress:
        """Load (or initialise) ``user_id`` and make it the current user."""

        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        progress = await self._read_progress(user_id)
        if self._progress is None or self._progress.user_id != user_id:
            self._recent_actions = []
            self._consecutive_successes = 0
            self._consecutive_failures = 0
            if self._session is not None and self._session.user_id != user_id:
                self._session = None
        self._progress = progress
        self._classifier = LearningStyleClassifier.from_points(progress.learning_style_points)
        return progress

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    async def record_action(
        self,
        action_type: str,
        was_successful: bool,
        context_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> UserProgress:
        progress = self._require_user()
        meta = metadata if isinstance(metadata, ActionMetadata) else ActionMetadata.model_validate(metadata or {})
        meta_dict = meta.model_dump(by_alias=True, exclude_none=True)
        now = self.clock()

        if was_successful:
            self._consecutive_successes += 1
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
            self._consecutive_successes = 0

        self._recent_actions.append(
            ActionRecord(
                action_type=action_type,
                was_successful=was_successful,
                timestamp=now,
                context_id=context_id,
                metadata=meta_dict,
            )
        )
        self._recent_actions = self._recent_actions[-MAX_RECENT_ACTIONS:]

        progress = self._apply_skill_updates(progress, action_type, was_successful, context_id, meta)

        self._classifier.update(action_type, meta)
        if was_successful:
            progress = add_experience(progress, xp_for_action(action_type, meta_dict))
        progress = update_streak(progress, now)
        progress = self.milestones.check(progress).progress

        return await self._save_progress(progress)

    def _apply_skill_updates(
        self,
        progress: UserProgress,
        action_type: str,
        success: bool,
        context_id: Optional[str],
        meta: ActionMetadata,
    ) -> UserProgress:
        difficulty = meta.difficulty if meta.difficulty is not None else 1.0

        if action_type == "challenge_completion":
            concept = meta.challenge_type
            if concept:
                progress = self.proficiency.update_proficiency(progress, concept, success, difficulty)
            challenge_id = meta.challenge_id or context_id
            if success and challenge_id and challenge_id not in progress.completed_challenges:
                progress = progress.model_copy(
                    update={"completed_challenges": [*progress.completed_challenges, challenge_id]}
                )
            concepts = dedupe([c for c in [concept, *meta.concepts] if c])
            if challenge_id or concepts:
                progress = progress.with_challenge_record(
                    ChallengeAttemptRecord(
                        challenge_id=challenge_id or "unknown",
                        concepts=concepts,
                        success=success,
                        difficulty=difficulty,
                        timestamp=self.clock(),
                        proficiency_snapshot={c: progress.proficiency(c) for c in concepts},
                    )
                )
            return progress

        mapping = _ACTION_CONCEPTS.get(action_type)
        if mapping is None:
            return progress
        concept, fixed_difficulty = mapping
        progress = self.proficiency.update_proficiency(
            progress, concept, success, fixed_difficulty if fixed_difficulty is not None else difficulty
        )
        if action_type == "pattern_creation" and success:
            progress = _bump_preference(progress, "patternCount")
        elif action_type == "cultural_exploration":
            progress = _bump_preference(progress, "culturalExplorationCount")
        elif action_type == "story_progress" and success and context_id:
            if context_id not in progress.completed_stories:
                progress = progress.model_copy(
                    update={"completed_stories": [*progress.completed_stories, context_id]}
                )
        return progress

    # ------------------------------------------------------------------
    # Proficiency
    # ------------------------------------------------------------------
    async def update_skill_proficiency(
        self, user_id: str, concept_id: str, success: bool, difficulty: float
    ) -> UserProgress:
        progress = await self._progress_for(user_id)
        before = progress.proficiency(concept_id)
        progress = self.proficiency.update_proficiency(progress, concept_id, success, difficulty)
        _log_json(
            "proficiency_updated",
            {
                "user_id": user_id,
                "concept": concept_id,
                "success": success,
                "difficulty": difficulty,
                "before": before,
                "after": progress.proficiency(concept_id),
                "status": self.proficiency.classify(progress, concept_id),
            },
        )
        return await self._save_progress(progress)

    async def assess_concept_mastery(
        self,
        user_id: str,
        concept_id: str,
        challenge_id: str,
        success: bool,
        difficulty: float,
        solution_quality: Optional[float] = None,
        hints_used: int = 0,
        errors_count: int = 0,
    ) -> ConceptMastery:
        progress = await self._progress_for(user_id)
        progress, mastery = self.proficiency.assess_concept_mastery(
            progress,
            concept_id,
            challenge_id,
            success,
            difficulty,
            solution_quality=solution_quality,
            hints_used=hints_used,
            errors_count=errors_count,
        )
        await self._save_progress(progress)
        self.caches.mastery.add(user_id, concept_id, mastery)
        _log_json(
            "concept_mastery_assessed",
            {
                "user_id": user_id,
                "concept": concept_id,
                "challenge_id": challenge_id,
                "proficiency": mastery.proficiency,
                "level": mastery.level.value,
            },
        )
        return mastery

    async def get_concept_mastery(self, user_id: str, concept_id: str) -> ConceptMastery:
        cached = self.caches.mastery.get(user_id, concept_id)
        if cached is not None:
            _LOGGER.debug("Mastery cache hit for %s/%s", user_id, concept_id)
            return cached
        progress = await self._progress_for(user_id)
        mastery = self.proficiency.mastery(progress, concept_id)
        self.caches.mastery.add(user_id, concept_id, mastery)
        return mastery

    # ------------------------------------------------------------------
    # Difficulty and recommendations
    # ------------------------------------------------------------------
    def calculate_difficulty_level(
        self,
        user_progress: Optional[UserProgress] = None,
        concept_id: Optional[str] = None,
        time_spent_seconds: float = 0,
        errors_count: int = 0,
        hints_used: int = 0,
    ) -> int:
        progress = user_progress or self._progress
        session = self._session
        if session is not None and session.is_active:
            proficiency = progress.proficiency(concept_id) if progress and concept_id else None
            return self.difficulty.adjust(
                session.difficulty_level,
                session,
                time_spent_seconds,
                errors_count,
                hints_used,
                proficiency,
            )
        if progress is None:
            return 1
        if concept_id is not None:
            value = progress.proficiency(concept_id)
        elif progress.skill_proficiency:
            value = max(progress.skill_proficiency.values())
        else:
            value = 0.0
        return _BAND_DIFFICULTY[ProficiencyLevel.from_value(value)]

    async def recommend_next_concepts(
        self, user_progress: Optional[UserProgress] = None, count: int = 3
    ) -> List[str]:
        progress = user_progress or self._progress
        if progress is None or count <= 0:
            return []

        if self.ai.enabled:
            cached = self.caches.recommendations.get(progress.user_id, count)
            if cached is not None:
                _LOGGER.debug("Recommendation cache hit for %s", progress.user_id)
                return cached

            key = f"{RECOMMENDATION_PREFIX}{progress.user_id}_{count}"
            stored = await self._read_cached_list(key)
            if stored is not None:
                self.caches.recommendations.add(progress.user_id, count, stored)
                return stored

            concepts = await self.ai.recommend_concepts(progress, count)
            if concepts:
                self.caches.recommendations.add(progress.user_id, count, concepts)
                try:
                    entry = {"concepts": concepts, "storedAt": self.clock().isoformat()}
                    await self.storage.put(key, json.dumps(entry).encode("utf-8"))
                except StorageError as exc:
                    _LOGGER.warning("Failed to cache recommendations for %s: %s", progress.user_id, exc)
                return concepts

        _LOGGER.debug("Using deterministic concept recommendations for %s", progress.user_id)
        return default_concept_recommendations(progress, count, self.catalog)

    async def _read_cached_list(self, key: str) -> Optional[List[str]]:
        """Stored recommendation list, or ``None`` when missing, invalid or expired."""

        try:
            raw = await self.storage.get(key)
        except StorageError as exc:
            _LOGGER.warning("Failed to read %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            concepts = entry["concepts"]
            stored_at = datetime.fromisoformat(entry["storedAt"])
        except (ValueError, TypeError, KeyError):
            _LOGGER.debug("Ignoring invalid cached value under %s", key)
            return None
        if not isinstance(concepts, list) or not all(isinstance(c, str) for c in concepts):
            return None
        if self.clock() - stored_at > RECOMMENDATION_TTL:
            _LOGGER.debug("Cached recommendations under %s expired", key)
            return None
        return concepts

    async def recommend_learning_path_type(
        self,
        user_id: str,
        preference: Optional[LearningPathType] = None,
        session: Optional[LearningSession] = None,
    ) -> LearningPathType:
        progress = await self._progress_for(user_id)
        if session is None and self._session is not None and self._session.user_id == user_id:
            session = self._session
        return recommend_learning_path_type(progress, parse_path_type(preference), session)

    async def generate_learning_path(
        self,
        user_id: str,
        path_type: LearningPathType,
        force_regenerate: bool = False,
    ) -> LearningPath:
        path_type = parse_path_type(path_type, LearningPathType.BALANCED)
        key = f"{LEARNING_PATH_PREFIX}{user_id}_{path_type.value}"

        if not force_regenerate:
            try:
                raw = await self.storage.get(key)
            except StorageError as exc:
                _LOGGER.warning("Failed to read cached path %s: %s", key, exc)
                raw = None
            if raw is not None:
                try:
                    return LearningPath.model_validate_json(raw)
                except (ValidationError, ValueError) as exc:
                    _LOGGER.warning("Discarding corrupt cached path %s: %s", key, exc)

        progress = await self._progress_for(user_id)
        style = self._classifier_for(progress).primary_style()
        path = self.paths.build(user_id, path_type, style, progress)
        try:
            await self.storage.put(key, path.model_dump_json().encode("utf-8"))
        except StorageError as exc:
            _LOGGER.warning("Failed to persist path %s: %s", key, exc)
        return path

    def get_hint_priority(self, hint_type: str) -> int:
        return hint_priority(
            hint_type,
            self._progress,
            self._classifier.primary_style(),
            self._consecutive_failures,
        )

    def _default_path_type(self, path_type: Optional[LearningPathType]) -> Optional[LearningPathType]:
        if path_type is not None:
            return parse_path_type(path_type)
        if self._session is not None and self._session.learning_path_type is not None:
            return self._session.learning_path_type
        if self._progress is not None:
            return parse_path_type(self._progress.preferences.get("preferredLearningPath"))
        return None

    def recommend_challenges(
        self,
        count: int = 3,
        recent_challenges: Optional[List[str]] = None,
        path_type: Optional[LearningPathType] = None,
    ) -> List[str]:
        progress = self._progress
        return self.recommender.rank(
            progress.skill_proficiency if progress else {},
            self._default_path_type(path_type),
            progress,
            recent_challenges,
            count,
        )

    def generate_challenge_sequence(
        self,
        target_concept: str,
        count: int = 5,
        path_type: Optional[LearningPathType] = None,
        adapt_to_difficulty: bool = True,
    ) -> List[ChallengeSpec]:
        progress = self._progress or UserProgress(user_id="anonymous")
        return self.recommender.generate_challenge_sequence(
            progress,
            target_concept,
            count,
            self._default_path_type(path_type),
            adapt_to_difficulty,
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    async def start_session(
        self, user_id: str, path_type: Optional[LearningPathType] = None
    ) -> Result[LearningSession]:
        if self._session is not None and self._session.is_active:
            return Err(ErrorKind.SESSION_ALREADY_ACTIVE)
        if self._progress is None or self._progress.user_id != user_id:
            await self.load_user(user_id)
        self._session = LearningSession.start(user_id, parse_path_type(path_type), now=self.clock())
        self._frustration_level = None
        _log_json(
            "session_started",
            {
                "user_id": user_id,
                "session_id": self._session.session_id,
                "path_type": self._session.learning_path_type,
            },
        )
        return Ok(self._session)

    def record_challenge_attempt(
        self,
        successful: bool,
        difficulty_level: Optional[int] = None,
        time_spent_seconds: float = 0,
        errors_count: int = 0,
        hints_used: int = 0,
    ) -> Result[LearningSession]:
        if self._session is None:
            return Err(ErrorKind.NO_ACTIVE_SESSION)
        self._session = self._session.record_challenge_attempt(
            successful,
            difficulty_level,
            time_spent_seconds,
            errors_count,
            hints_used,
            now=self.clock(),
        )
        return Ok(self._session)

    def record_hint_request(self) -> Result[LearningSession]:
        if self._session is None:
            return Err(ErrorKind.NO_ACTIVE_SESSION)
        self._session = self._session.record_hint_request(now=self.clock())
        return Ok(self._session)

    def record_error(self) -> Result[LearningSession]:
        if self._session is None:
            return Err(ErrorKind.NO_ACTIVE_SESSION)
        self._session = self._session.record_error(now=self.clock())
        return Ok(self._session)

    def detect_frustration(
        self,
        recent_errors: int,
        time_on_challenge_seconds: float,
        hints_requested: int,
    ) -> Result[float]:
        if self._session is None:
            return Err(ErrorKind.NO_ACTIVE_SESSION)
        level = self.frustration.detect(
            self._session, recent_errors, time_on_challenge_seconds, hints_requested
        )
        self._frustration_level = level
        return Ok(level)

    async def end_session(self) -> Result[LearningSession]:
        if self._session is None:
            return Err(ErrorKind.NO_ACTIVE_SESSION)
        ended = self._session.end(now=self.clock())
        self._session = None
        self._frustration_level = None

        progress = await self._progress_for(ended.user_id)
        progress = _bump_preference(progress, "totalTimeSpentMinutes", ended.time_spent_minutes)
        await self._save_progress(progress)
        _log_json("session_ended", ended.to_dict())
        return Ok(ended)

    # ------------------------------------------------------------------
    # Milestones, interventions, reporting
    # ------------------------------------------------------------------
    async def check_milestones(self) -> List[Milestone]:
        if self._progress is None:
            return []
        result = self.milestones.check(self._progress)
        if result.completed:
            await self._save_progress(result.progress)
            _log_json(
                "milestones_completed",
                {"user_id": result.progress.user_id, "milestones": [m.id for m in result.completed]},
            )
        return list(result.completed)

    def detect_interventions(self) -> List[Intervention]:
        if self._progress is None:
            return []
        return self.interventions.detect(
            self._progress, self._classifier.primary_style(), self._recent_actions
        )

    def get_content_recommendations(self) -> Dict[str, str]:
        return content_recommendations(self._classifier.primary_style())

    def primary_learning_style(self) -> LearningStyle:
        return self._classifier.primary_style()

    def generate_progress_report(self) -> Dict[str, Any]:
        if self._progress is None:
            return {"error": "No user progress available"}
        return progress_report(self._progress, self._classifier)

    async def assess_skills(
        self, user_progress: Optional[UserProgress] = None, recent_solutions: int = 0
    ) -> Dict[str, SkillLevel]:
        progress = user_progress or self._progress
        if progress is None:
            return {}
        cached = self.caches.assessments.get(progress.user_id)
        if cached is not None:
            _LOGGER.debug("Assessment cache hit for %s", progress.user_id)
            return cached
        assessment = await self.ai.assess_skills(progress, recent_solutions)
        if assessment is None:
            return default_skill_assessment(progress)
        self.caches.assessments.add(progress.user_id, assessment)
        return assessment

    async def detect_learning_style_label(
        self,
        user_progress: Optional[UserProgress] = None,
        interaction_history: Optional[Mapping[str, Any]] = None,
    ) -> LegacyLearningStyle:
        progress = user_progress or self._progress
        if progress is None:
            return LegacyLearningStyle.MIXED
        return await self.ai.detect_learning_style(progress, interaction_history)
