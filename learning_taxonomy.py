"""Closed vocabularies and the static concept catalogue.

The catalogue describes which concepts exist, which prerequisites each one
has, which challenge types exercise it and which challenge types a learning
path favours. All label parsing for learning styles, path types and
proficiency bands goes through the helpers defined here so that call sites
never round-trip enum names by hand.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple


class ConceptCatalogError(ValueError):
    """Raised when a concept catalogue file contains invalid data."""


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class LearningStyle(str, Enum):
    """Learning styles in declaration order; order breaks arg-max ties."""

    VISUAL = "visual"
    LOGICAL = "logical"
    PRACTICAL = "practical"
    VERBAL = "verbal"
    SOCIAL = "social"
    REFLECTIVE = "reflective"


class LegacyLearningStyle(str, Enum):
    """Labels understood by the generative-text style detector."""

    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING_WRITING = "reading/writing"
    MIXED = "mixed"


class LearningPathType(str, Enum):
    LOGIC_BASED = "logicBased"
    CREATIVITY_BASED = "creativityBased"
    CHALLENGE_BASED = "challengeBased"
    BALANCED = "balanced"


class SkillLevel(str, Enum):
    NOVICE = "novice"
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ProficiencyLevel(str, Enum):
    """Coarse proficiency bands derived from the proficiency scalar."""

    NOT_INTRODUCED = "not_introduced"
    INTRODUCED = "introduced"
    PRACTICING = "practicing"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    MASTERED = "mastered"

    @classmethod
    def from_value(cls, value: float) -> "ProficiencyLevel":
        if value < 0.1:
            return cls.NOT_INTRODUCED
        if value < 0.3:
            return cls.INTRODUCED
        if value < 0.5:
            return cls.PRACTICING
        if value < 0.7:
            return cls.DEVELOPING
        if value < 0.9:
            return cls.PROFICIENT
        return cls.MASTERED

    @property
    def percentage(self) -> float:
        return _LEVEL_PERCENTAGE[self]


_LEVEL_PERCENTAGE: Dict[ProficiencyLevel, float] = {
    ProficiencyLevel.NOT_INTRODUCED: 0.0,
    ProficiencyLevel.INTRODUCED: 0.2,
    ProficiencyLevel.PRACTICING: 0.4,
    ProficiencyLevel.DEVELOPING: 0.6,
    ProficiencyLevel.PROFICIENT: 0.8,
    ProficiencyLevel.MASTERED: 1.0,
}

MASTERY_THRESHOLD = 0.8


# ---------------------------------------------------------------------------
# Label mapping tables
# ---------------------------------------------------------------------------

LEGACY_TO_STYLE: Dict[LegacyLearningStyle, Optional[LearningStyle]] = {
    LegacyLearningStyle.VISUAL: LearningStyle.VISUAL,
    LegacyLearningStyle.AUDITORY: LearningStyle.VERBAL,
    LegacyLearningStyle.READING_WRITING: LearningStyle.VERBAL,
    LegacyLearningStyle.KINESTHETIC: LearningStyle.PRACTICAL,
    LegacyLearningStyle.MIXED: None,
}

STYLE_TO_LEGACY: Dict[LearningStyle, LegacyLearningStyle] = {
    LearningStyle.VISUAL: LegacyLearningStyle.VISUAL,
    LearningStyle.VERBAL: LegacyLearningStyle.AUDITORY,
    LearningStyle.PRACTICAL: LegacyLearningStyle.KINESTHETIC,
    LearningStyle.LOGICAL: LegacyLearningStyle.MIXED,
    LearningStyle.SOCIAL: LegacyLearningStyle.MIXED,
    LearningStyle.REFLECTIVE: LegacyLearningStyle.MIXED,
}

_PATH_ALIASES = {
    "logic": LearningPathType.LOGIC_BASED,
    "logic_based": LearningPathType.LOGIC_BASED,
    "creativity": LearningPathType.CREATIVITY_BASED,
    "creativity_based": LearningPathType.CREATIVITY_BASED,
    "challenge": LearningPathType.CHALLENGE_BASED,
    "challenge_based": LearningPathType.CHALLENGE_BASED,
}


def parse_learning_style(label: Optional[str], default: LearningStyle = LearningStyle.VISUAL) -> LearningStyle:
    if not label:
        return default
    text = str(label).strip().lower()
    for style in LearningStyle:
        if style.value == text:
            return style
    for legacy in LegacyLearningStyle:
        if legacy.value == text:
            return LEGACY_TO_STYLE[legacy] or default
    return default


def parse_path_type(label: Optional[str], default: Optional[LearningPathType] = None) -> Optional[LearningPathType]:
    if label is None:
        return default
    if isinstance(label, LearningPathType):
        return label
    text = str(label).strip()
    for path_type in LearningPathType:
        if path_type.value == text or path_type.name.lower() == text.lower():
            return path_type
    return _PATH_ALIASES.get(text.lower(), default)


# ---------------------------------------------------------------------------
# Default catalogue tables
# ---------------------------------------------------------------------------

DEFAULT_CONCEPT_PREREQUISITES: Dict[str, Tuple[str, ...]] = {
    "sequences": (),
    "loops": ("sequences",),
    "conditionals": ("sequences",),
    "variables": ("sequences",),
    "functions": ("sequences", "variables"),
    "debugging": ("sequences", "loops", "conditionals"),
    "patterns": ("sequences", "loops"),
    "structure": ("functions", "variables"),
    "cultural": (),
    "storytelling": (),
    "basic patterns": (),
    "simple loops": ("sequences",),
    "nested loops": ("loops",),
    "complex patterns": ("loops", "conditionals"),
    "parameters": ("functions",),
    "recursion": ("functions",),
    "algorithms": ("loops", "conditionals", "functions"),
    "optimization": ("algorithms",),
    "advanced algorithms": ("algorithms", "recursion"),
    "problem decomposition": ("functions", "algorithms"),
    "abstraction": ("functions", "problem decomposition"),
}

# Insertion order is the tie-break order for challenge ranking.
DEFAULT_CONCEPT_CHALLENGE_TYPES: Dict[str, Tuple[str, ...]] = {
    "sequences": ("pattern", "sequence"),
    "loops": ("pattern", "loop"),
    "conditionals": ("pattern", "condition"),
    "variables": ("pattern", "variable"),
    "functions": ("pattern", "function"),
    "debugging": ("debug",),
    "patterns": ("pattern",),
    "structure": ("structure",),
    "cultural": ("cultural",),
    "storytelling": ("story",),
}

DEFAULT_PATH_FAVORED_TYPES: Dict[LearningPathType, Tuple[str, ...]] = {
    LearningPathType.LOGIC_BASED: ("sequence", "condition", "function", "debug"),
    LearningPathType.CREATIVITY_BASED: ("pattern", "cultural", "story", "variable"),
    LearningPathType.CHALLENGE_BASED: ("debug", "structure", "loop", "function"),
    LearningPathType.BALANCED: (),
}

DEFAULT_CONCEPTS_BY_LEVEL: Dict[int, Tuple[str, ...]] = {
    1: ("sequences", "basic patterns", "simple loops"),
    2: ("nested loops", "variables", "conditionals"),
    3: ("functions", "parameters", "complex patterns"),
    4: ("recursion", "algorithms", "optimization"),
    5: ("advanced algorithms", "problem decomposition", "abstraction"),
}


@dataclass(frozen=True)
class ConceptCatalog:
    """Immutable view over the concept tables used by the engines."""

    prerequisites: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CONCEPT_PREREQUISITES)
    )
    challenge_types: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CONCEPT_CHALLENGE_TYPES)
    )
    path_favored_types: Mapping[LearningPathType, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_PATH_FAVORED_TYPES)
    )
    concepts_by_level: Mapping[int, Tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CONCEPTS_BY_LEVEL)
    )

    # ------------------------------------------------------------------
    def prerequisites_for(self, concept_id: str) -> Tuple[str, ...]:
        return tuple(self.prerequisites.get(concept_id, ()))

    def related_types(self, concept_id: str) -> Tuple[str, ...]:
        return tuple(self.challenge_types.get(concept_id, ()))

    def favored_types(self, path_type: Optional[LearningPathType]) -> Tuple[str, ...]:
        if path_type is None:
            return ()
        return tuple(self.path_favored_types.get(path_type, ()))

    def challenge_type_order(self) -> List[str]:
        """Every challenge type in first-seen order of the concept table."""

        order: List[str] = []
        for types in self.challenge_types.values():
            for challenge_type in types:
                if challenge_type not in order:
                    order.append(challenge_type)
        return order

    def concepts_for_type(self, challenge_type: str) -> List[str]:
        return [
            concept
            for concept, types in self.challenge_types.items()
            if challenge_type in types
        ]

    def level_sequence(self) -> List[str]:
        """All catalogue concepts ordered by level, then declaration order."""

        ordered: List[str] = []
        for level in sorted(self.concepts_by_level):
            for concept in self.concepts_by_level[level]:
                if concept not in ordered:
                    ordered.append(concept)
        return ordered

    # ------------------------------------------------------------------
    @classmethod
    def from_file(cls, path: str | Path) -> "ConceptCatalog":
        """Load a catalogue from JSON and validate the structure."""

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Concept catalogue not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
        if not isinstance(raw, dict):
            raise ConceptCatalogError("Concept catalogue must contain a JSON object")

        prerequisites = _string_table(raw.get("prerequisites", {}), "prerequisites")
        challenge_types = _string_table(raw.get("challenge_types", {}), "challenge_types")

        favored_raw = _string_table(raw.get("path_favored_types", {}), "path_favored_types")
        favored: Dict[LearningPathType, Tuple[str, ...]] = {}
        for label, types in favored_raw.items():
            path_type = parse_path_type(label)
            if path_type is None:
                raise ConceptCatalogError(f"Unknown learning path type: {label}")
            favored[path_type] = types

        levels: Dict[int, Tuple[str, ...]] = {}
        for level, concepts in _string_table(raw.get("concepts_by_level", {}), "concepts_by_level").items():
            try:
                levels[int(level)] = concepts
            except ValueError as exc:
                raise ConceptCatalogError(f"Level keys must be integers: {level}") from exc

        for concept, required in prerequisites.items():
            if concept in required:
                raise ConceptCatalogError(f"Concept {concept} lists itself as prerequisite")

        return cls(
            prerequisites=prerequisites or dict(DEFAULT_CONCEPT_PREREQUISITES),
            challenge_types=challenge_types or dict(DEFAULT_CONCEPT_CHALLENGE_TYPES),
            path_favored_types=favored or dict(DEFAULT_PATH_FAVORED_TYPES),
            concepts_by_level=levels or dict(DEFAULT_CONCEPTS_BY_LEVEL),
        )


def _string_table(raw: object, name: str) -> Dict[str, Tuple[str, ...]]:
    if not isinstance(raw, dict):
        raise ConceptCatalogError(f"'{name}' must be a JSON object")
    table: Dict[str, Tuple[str, ...]] = {}
    for key, values in raw.items():
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise ConceptCatalogError(f"'{name}.{key}' must be a list of strings")
        table[str(key)] = tuple(values)
    return table


DEFAULT_CATALOG = ConceptCatalog()


def dedupe(values: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


__all__ = [
    "ConceptCatalog",
    "ConceptCatalogError",
    "DEFAULT_CATALOG",
    "LearningPathType",
    "LearningStyle",
    "LegacyLearningStyle",
    "MASTERY_THRESHOLD",
    "ProficiencyLevel",
    "SkillLevel",
    "dedupe",
    "parse_learning_style",
    "parse_path_type",
]
