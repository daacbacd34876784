"""Generative-text collaborator and AI-assisted assessments.

Every AI-assisted call has a deterministic fallback. Empty, malformed or
unparseable responses, timeouts and transport failures are all treated as
"service unavailable".
"""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx
from pydantic import ValidationError

from learning_taxonomy import (
    DEFAULT_CATALOG,
    ConceptCatalog,
    LegacyLearningStyle,
    SkillLevel,
)
from schemas import (
    ConceptRecommendationResponse,
    SkillAssessmentEntry,
    SkillAssessmentResponse,
    UserProgress,
    parse_json_safe,
)

logger = logging.getLogger(__name__)

ASSESSED_SKILLS = (
    "PATTERN_RECOGNITION",
    "LOGICAL_THINKING",
    "SEQUENTIAL_REASONING",
    "ALGORITHMIC_THINKING",
    "PROBLEM_SOLVING",
    "CREATIVE_THINKING",
)

_SKILL_LEVEL_LABELS = {
    "BEGINNER": SkillLevel.BEGINNER,
    "INTERMEDIATE": SkillLevel.INTERMEDIATE,
    "ADVANCED": SkillLevel.ADVANCED,
}


class GenerativeTextError(RuntimeError):
    """Raised when the generative-text service cannot produce a response."""


class GenerativeTextService:
    """Interface of the generative-text collaborator."""

    async def prompt(self, text: str) -> Optional[str]:
        raise NotImplementedError


class HttpGenerativeTextClient(GenerativeTextService):
    """Post prompts to an HTTP text generation endpoint with httpx.

    ``model_config`` uses the keys ``api_url``, ``api_key``, ``model_id``,
    ``timeout``, ``max_retries``, ``retry_backoff`` and optional ``headers``.
    """

    def __init__(self, model_config: Mapping[str, Any]) -> None:
        self.model_config = dict(model_config)

    async def prompt(self, text: str) -> Optional[str]:
        try:
            return await self.generate(text)
        except GenerativeTextError as exc:
            logger.warning("Generative text unavailable: %s", exc)
            return None

    async def generate(self, text: str) -> str:
        api_url = self.model_config.get("api_url")
        if not api_url:
            raise GenerativeTextError("Generative text API URL not configured.")

        model_id = self.model_config.get("model_id", "gemini-pro")
        timeout_seconds = float(self.model_config.get("timeout", 10.0))
        max_retries = int(self.model_config.get("max_retries", 1))
        backoff_seconds = float(self.model_config.get("retry_backoff", 0.5))

        headers: Dict[str, str] = {}
        if api_key := self.model_config.get("api_key"):
            headers["Authorization"] = f"Bearer {api_key}"
        extra_headers = self.model_config.get("headers")
        if isinstance(extra_headers, dict):
            headers.update({str(k): str(v) for k, v in extra_headers.items()})

        payload = {"model": model_id, "prompt": text}

        last_exception: Optional[Exception] = None
        attempt_count = max(0, max_retries) + 1

        for attempt_index in range(attempt_count):
            attempt_number = attempt_index + 1
            start_time = perf_counter()
            client = httpx.AsyncClient(timeout=timeout_seconds)
            try:
                response = await client.post(api_url, json=payload, headers=headers or None)
                response.raise_for_status()
                content = self._extract_text(response.json())
                latency_ms = int((perf_counter() - start_time) * 1000)
                logger.info(
                    "Generative text produced in %d ms using model %s (attempt %d/%d)",
                    latency_ms,
                    model_id,
                    attempt_number,
                    attempt_count,
                )
                return content
            except httpx.HTTPStatusError as exc:
                latency_ms = int((perf_counter() - start_time) * 1000)
                status = getattr(getattr(exc, "response", None), "status_code", "unknown")
                logger.warning(
                    "Generative text HTTP error %s for model %s (attempt %d/%d, %d ms): %s",
                    status,
                    model_id,
                    attempt_number,
                    attempt_count,
                    latency_ms,
                    exc,
                )
                last_exception = exc
            except (httpx.TimeoutException, httpx.RequestError, GenerativeTextError, ValueError, TypeError, KeyError) as exc:
                latency_ms = int((perf_counter() - start_time) * 1000)
                logger.warning(
                    "Generative text request failed for model %s (attempt %d/%d, %d ms): %s",
                    model_id,
                    attempt_number,
                    attempt_count,
                    latency_ms,
                    exc,
                )
                last_exception = exc
            finally:
                await client.aclose()

            if attempt_index < attempt_count - 1:
                await asyncio.sleep(backoff_seconds * (2 ** attempt_index))

        raise GenerativeTextError(
            f"Generative text failed after {attempt_count} attempts for model {model_id}."
        ) from last_exception

    @staticmethod
    def _extract_text(payload: Any) -> str:
        if isinstance(payload, str):
            candidates: List[Any] = [payload]
        elif isinstance(payload, dict):
            data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
            candidates = [
                payload.get("text"),
                payload.get("content"),
                payload.get("output"),
                data.get("text"),
                data.get("content"),
            ]
        else:
            raise GenerativeTextError("Generative text response must be a JSON object or string.")
        text = next((c for c in candidates if isinstance(c, str) and c.strip()), None)
        if text is None:
            raise GenerativeTextError("Generative text response missing content.")
        return text


def default_skill_level(progress: UserProgress) -> SkillLevel:
    mastered = len(progress.concepts_mastered)
    if mastered < 5:
        return SkillLevel.BEGINNER
    if mastered < 10:
        return SkillLevel.INTERMEDIATE
    return SkillLevel.ADVANCED


def default_skill_assessment(progress: UserProgress) -> Dict[str, SkillLevel]:
    level = default_skill_level(progress)
    return {skill: level for skill in ASSESSED_SKILLS}


def default_concept_recommendations(
    progress: UserProgress, count: int, catalog: ConceptCatalog = DEFAULT_CATALOG
) -> List[str]:
    """In-progress catalogue concepts first, then new ones, never mastered ones."""

    if count <= 0:
        return []
    available = [c for c in catalog.level_sequence() if c not in progress.concepts_mastered]
    in_progress = [c for c in available if c in progress.concepts_in_progress]
    if len(in_progress) >= count:
        return in_progress[:count]
    fresh = [c for c in available if c not in progress.concepts_in_progress]
    return (in_progress + fresh)[:count]


def _describe(label: str, values: Iterable[str], empty: str) -> str:
    values = list(values)
    return f"{label}: {', '.join(values)}." if values else empty


class AIAssessmentService:
    """Prompt construction and response parsing around a text collaborator."""

    def __init__(
        self,
        generator: Optional[GenerativeTextService],
        *,
        timeout: float = 10.0,
        catalog: ConceptCatalog = DEFAULT_CATALOG,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.generator = generator
        self.timeout = timeout
        self.catalog = catalog

    @property
    def enabled(self) -> bool:
        return self.generator is not None

    async def _ask(self, prompt: str) -> Optional[str]:
        if self.generator is None:
            return None
        try:
            response = await asyncio.wait_for(self.generator.prompt(prompt), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Generative text timed out after %.1fs; using fallback", self.timeout)
            return None
        except GenerativeTextError as exc:
            logger.warning("Generative text failed: %s; using fallback", exc)
            return None
        except Exception as exc:
            logger.warning("Generative text collaborator raised %r; using fallback", exc)
            return None
        if not response or not response.strip():
            return None
        return response

    # ----- skills ------------------------------------------------------
    def skill_prompt(self, progress: UserProgress, recent_solutions: int = 0) -> str:
        solutions = (
            f"Recent solutions: {recent_solutions} patterns created."
            if recent_solutions
            else "No recent solutions available."
        )
        challenges = (
            f"Completed {len(progress.completed_challenges)} challenges."
            if progress.completed_challenges
            else "No completed challenges available."
        )
        return (
            "You are an AI educational assessment system analyzing a child's coding skills "
            "through their Kente weaving patterns. "
            f"User ID: {progress.user_id}. {solutions} {challenges} "
            f"{_describe('Concepts mastered', progress.concepts_mastered, 'No concepts mastered yet.')} "
            f"{_describe('Concepts in progress', progress.concepts_in_progress, 'No concepts in progress yet.')} "
            "Please assess the user's skills in the following areas: "
            f"{', '.join(ASSESSED_SKILLS)}. "
            "For each skill, provide a skill level (BEGINNER, INTERMEDIATE, ADVANCED) "
            "and a brief explanation of your assessment. "
            "Format your response as a JSON object with skill names as keys and objects "
            "containing level and explanation as values."
        )

    async def assess_skills(self, progress: UserProgress, recent_solutions: int = 0) -> Optional[Dict[str, SkillLevel]]:
        """Return the AI assessment, or ``None`` when the fallback should be used."""

        response = await self._ask(self.skill_prompt(progress, recent_solutions))
        if response is None:
            return None
        try:
            parsed = parse_json_safe(response, SkillAssessmentResponse, allow_trailing=True)
        except (ValidationError, ValueError) as exc:
            logger.warning("Unparseable skill assessment: %s", exc)
            return None

        result: Dict[str, SkillLevel] = {}
        for skill, entry in parsed.root.items():
            label = entry.level if isinstance(entry, SkillAssessmentEntry) else entry
            result[skill.upper()] = _SKILL_LEVEL_LABELS.get(str(label).strip().upper(), SkillLevel.BEGINNER)
        return result or None

    # ----- learning style ----------------------------------------------
    def style_prompt(self, progress: UserProgress, interaction_history: Mapping[str, Any]) -> str:
        interactions = (
            f"User has spent {interaction_history.get('timeInStories', 0)} minutes in stories, "
            f"{interaction_history.get('timeInChallenges', 0)} minutes in challenges, "
            f"and {interaction_history.get('timeInPatternCreation', 0)} minutes in pattern creation. "
            f"User has completed {interaction_history.get('storiesCompleted', 0)} stories and "
            f"{interaction_history.get('challengesCompleted', 0)} challenges."
        )
        return (
            "You are an AI educational assessment system analyzing a child's learning style "
            "through their interactions with a coding app. "
            f"User ID: {progress.user_id}. {interactions} "
            "Please determine the user's primary learning style based on their interactions. "
            "Consider the following learning styles: visual, auditory, kinesthetic, "
            "reading/writing, or mixed. "
            "Provide a single learning style as your answer, along with a brief explanation "
            "of your assessment."
        )

    async def detect_learning_style(
        self, progress: UserProgress, interaction_history: Optional[Mapping[str, Any]]
    ) -> LegacyLearningStyle:
        if interaction_history is None:
            return LegacyLearningStyle.MIXED
        response = await self._ask(self.style_prompt(progress, interaction_history))
        if response is None:
            return LegacyLearningStyle.MIXED
        lowered = response.lower()
        for label in LegacyLearningStyle:
            if label.value in lowered:
                return label
        return LegacyLearningStyle.MIXED

    # ----- concepts ----------------------------------------------------
    def concept_prompt(self, progress: UserProgress, count: int) -> str:
        level_name = default_skill_level(progress).value.capitalize()
        levels = " ".join(
            f"Level {level}: {', '.join(concepts)}."
            for level, concepts in sorted(self.catalog.concepts_by_level.items())
        )
        return (
            "You are an AI educational recommendation system suggesting coding concepts for "
            "a child to learn next. "
            f"User ID: {progress.user_id}. Skill level: {level_name}. "
            f"{_describe('Concepts mastered', progress.concepts_mastered, 'No concepts mastered yet.')} "
            f"{_describe('Concepts in progress', progress.concepts_in_progress, 'No concepts in progress yet.')} "
            f"Please recommend the next {count} coding concepts this user should learn, based "
            "on their current progress. Consider concepts that build on what they already "
            "know, but are not too advanced for their skill level. "
            f"Available concepts by level: {levels} "
            "Format your response as a JSON array of concept names."
        )

    async def recommend_concepts(self, progress: UserProgress, count: int) -> Optional[List[str]]:
        response = await self._ask(self.concept_prompt(progress, count))
        if response is None:
            return None
        try:
            parsed = parse_json_safe(response, ConceptRecommendationResponse, allow_trailing=True)
        except (ValidationError, ValueError) as exc:
            logger.warning("Unparseable concept recommendations: %s", exc)
            return None
        concepts = [str(c).strip() for c in parsed.root if str(c).strip()]
        return concepts[:count] or None
