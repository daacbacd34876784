"""Learning path templates, personalisation and path-type recommendation."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from engines.session import LearningSession
from learning_taxonomy import (
    DEFAULT_CATALOG,
    ConceptCatalog,
    LearningPathType,
    LearningStyle,
    SkillLevel,
)
from schemas import LearningPath, LearningPathItem, UserProgress


_LOGGER = logging.getLogger(__name__)


def _log_json(event: str, payload: Dict[str, Any]) -> None:
    """Emit structured JSON logs for downstream analytics."""

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


@dataclass(frozen=True)
class _ItemTemplate:
    concept: str
    title: str
    description: str
    skill_level: SkillLevel
    minutes: int
    prerequisites: Tuple[str, ...] = ()


_N, _B, _I, _A = SkillLevel.NOVICE, SkillLevel.BEGINNER, SkillLevel.INTERMEDIATE, SkillLevel.ADVANCED

# Each template: core items, one item per learning style, closing items.
_CORE_ITEMS: Dict[LearningPathType, Tuple[_ItemTemplate, ...]] = {
    LearningPathType.LOGIC_BASED: (
        _ItemTemplate("variables", "Variables and Data", "Learn how to store and manipulate data using variables.", _N, 20),
        _ItemTemplate("conditionals", "Making Decisions", "Learn how to make decisions in your code using conditional statements.", _N, 25, ("variables",)),
        _ItemTemplate("loops", "Repeating Actions", "Learn how to repeat actions using loops.", _B, 30, ("variables", "conditionals")),
        _ItemTemplate("functions", "Creating Functions", "Learn how to organize your code into reusable functions.", _B, 35, ("variables", "conditionals", "loops")),
        _ItemTemplate("arrays", "Working with Lists", "Learn how to store and manipulate collections of data.", _I, 40, ("variables", "loops")),
        _ItemTemplate("algorithms", "Basic Algorithms", "Learn how to solve problems using algorithms.", _I, 45, ("functions", "arrays")),
        _ItemTemplate("debugging", "Finding and Fixing Bugs", "Learn how to identify and fix errors in your code.", _I, 30, ("functions",)),
    ),
    LearningPathType.CREATIVITY_BASED: (
        _ItemTemplate("variables", "Creative Variables", "Learn how to use variables to create dynamic content.", _N, 20),
        _ItemTemplate("pattern_design", "Pattern Creation", "Learn how to create beautiful patterns using code.", _N, 30, ("variables",)),
        _ItemTemplate("loops", "Creative Repetition", "Learn how to use loops to create complex patterns and animations.", _B, 35, ("variables", "pattern_design")),
        _ItemTemplate("conditionals", "Dynamic Designs", "Learn how to create designs that change based on conditions.", _B, 30, ("variables", "pattern_design")),
        _ItemTemplate("functions", "Reusable Art Components", "Learn how to create reusable components for your designs.", _I, 40, ("loops", "conditionals")),
        _ItemTemplate("arrays", "Collections of Designs", "Learn how to work with collections of design elements.", _I, 45, ("functions",)),
    ),
    LearningPathType.CHALLENGE_BASED: (
        _ItemTemplate("variables", "Variable Challenge", "Master variables through increasingly difficult challenges.", _N, 25),
        _ItemTemplate("conditionals", "Conditional Logic Challenge", "Test your conditional logic skills with challenging problems.", _B, 30, ("variables",)),
        _ItemTemplate("loops", "Loop Mastery Challenge", "Solve complex problems using loops.", _B, 35, ("variables", "conditionals")),
        _ItemTemplate("debugging", "Debugging Challenge", "Find and fix bugs in increasingly complex code.", _I, 40, ("variables", "conditionals", "loops")),
        _ItemTemplate("functions", "Function Challenge", "Create efficient functions to solve complex problems.", _I, 45, ("loops", "conditionals")),
        _ItemTemplate("arrays", "Array Challenge", "Master arrays through challenging problems.", _I, 50, ("functions",)),
    ),
    LearningPathType.BALANCED: (
        _ItemTemplate("variables", "Variables and Data Types", "Learn about variables and data types in a balanced approach.", _B, 30),
        _ItemTemplate("ui_design", "UI Design Principles", "Explore UI design with a balance of logic and creativity.", _I, 45, ("variables",)),
        _ItemTemplate("algorithms", "Algorithm Challenges", "Solve algorithm challenges with a balanced approach.", _A, 60, ("variables", "ui_design")),
    ),
}

_STYLE_ITEMS: Dict[LearningPathType, Dict[LearningStyle, _ItemTemplate]] = {
    LearningPathType.LOGIC_BASED: {
        LearningStyle.VISUAL: _ItemTemplate("pattern_design", "Visual Pattern Design", "Learn how to create visual patterns using code.", _I, 40, ("loops", "functions")),
        LearningStyle.LOGICAL: _ItemTemplate("logic", "Advanced Logic", "Learn advanced logical operations and problem-solving techniques.", _I, 45, ("conditionals", "functions")),
        LearningStyle.PRACTICAL: _ItemTemplate("data_structures", "Practical Data Structures", "Learn how to use data structures to solve real-world problems.", _I, 50, ("arrays", "functions")),
        LearningStyle.VERBAL: _ItemTemplate("sequence", "Storytelling with Code", "Learn how to create interactive stories using code.", _I, 40, ("conditionals", "functions")),
        LearningStyle.SOCIAL: _ItemTemplate("objects", "Object Interactions", "Learn how objects can interact with each other in code.", _I, 45, ("functions", "arrays")),
        LearningStyle.REFLECTIVE: _ItemTemplate("recursion", "Recursive Thinking", "Learn how to solve problems using recursive techniques.", _A, 50, ("functions",)),
    },
    LearningPathType.CREATIVITY_BASED: {
        LearningStyle.VISUAL: _ItemTemplate("sequence", "Visual Storytelling", "Learn how to tell stories through visual sequences.", _I, 50, ("pattern_design", "functions")),
        LearningStyle.LOGICAL: _ItemTemplate("algorithms", "Algorithmic Art", "Learn how to create art using algorithms.", _A, 55, ("functions", "arrays")),
        LearningStyle.PRACTICAL: _ItemTemplate("objects", "Interactive Objects", "Learn how to create interactive objects in your designs.", _I, 45, ("functions", "conditionals")),
        LearningStyle.VERBAL: _ItemTemplate("sequence", "Narrative Design", "Learn how to incorporate narratives into your designs.", _I, 40, ("pattern_design", "conditionals")),
        LearningStyle.SOCIAL: _ItemTemplate("objects", "Collaborative Design", "Learn how to create designs that can be collaborated on.", _I, 50, ("functions", "arrays")),
        LearningStyle.REFLECTIVE: _ItemTemplate("recursion", "Recursive Patterns", "Learn how to create complex patterns using recursion.", _A, 60, ("functions", "pattern_design")),
    },
    LearningPathType.CHALLENGE_BASED: {
        LearningStyle.VISUAL: _ItemTemplate("pattern_design", "Pattern Challenge", "Create complex patterns to solve visual challenges.", _A, 55, ("loops", "functions")),
        LearningStyle.LOGICAL: _ItemTemplate("algorithms", "Algorithm Challenge", "Solve complex algorithmic problems.", _A, 60, ("functions", "arrays")),
        LearningStyle.PRACTICAL: _ItemTemplate("data_structures", "Data Structure Challenge", "Solve real-world problems using advanced data structures.", _A, 65, ("arrays", "functions")),
        LearningStyle.VERBAL: _ItemTemplate("sequence", "Storytelling Challenge", "Create complex interactive stories with branching narratives.", _A, 55, ("conditionals", "functions")),
        LearningStyle.SOCIAL: _ItemTemplate("objects", "Object Interaction Challenge", "Create complex systems of interacting objects.", _A, 60, ("functions", "arrays")),
        LearningStyle.REFLECTIVE: _ItemTemplate("recursion", "Recursion Challenge", "Solve complex problems using recursive techniques.", _A, 70, ("functions",)),
    },
}

_CLOSING_ITEMS: Dict[LearningPathType, Tuple[_ItemTemplate, ...]] = {
    LearningPathType.LOGIC_BASED: (
        _ItemTemplate("classes", "Object-Oriented Programming", "Learn how to organize your code using classes and objects.", _A, 60, ("functions", "arrays")),
    ),
    LearningPathType.CREATIVITY_BASED: (
        _ItemTemplate("classes", "Design Systems", "Learn how to create comprehensive design systems using object-oriented programming.", _A, 70, ("functions", "arrays")),
    ),
    LearningPathType.CHALLENGE_BASED: (
        _ItemTemplate("classes", "Object-Oriented Challenge", "Design and implement complex object-oriented systems.", _A, 75, ("functions", "arrays")),
        _ItemTemplate("inheritance", "Inheritance Challenge", "Master inheritance and polymorphism through challenging problems.", _A, 80, ("classes",)),
    ),
    LearningPathType.BALANCED: (),
}


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------

_KENTE_ELEMENTS: Dict[str, Dict[str, Any]] = {
    "variables": {
        "name": "Kente colours",
        "description": "Each thread colour carries its own meaning, like a value stored under a name.",
    },
    "pattern_design": {
        "name": "Nkyimkyim",
        "description": "A zigzag motif built from one repeated unit.",
    },
    "loops": {
        "name": "Warp repetition",
        "description": "Weavers repeat the same pass across the loom until a strip is complete.",
    },
    "conditionals": {
        "name": "Motif choice",
        "description": "A weaver changes the motif when the strip reaches a chosen length.",
    },
    "functions": {
        "name": "Named motifs",
        "description": "Well-known motifs are reused by name across many cloths.",
    },
    "arrays": {
        "name": "Strip assembly",
        "description": "Narrow strips are laid side by side to form the full cloth.",
    },
    "algorithms": {
        "name": "Weaving sequence",
        "description": "The ordered steps a weaver follows to produce a design.",
    },
    "debugging": {
        "name": "Thread correction",
        "description": "Spotting a misplaced thread and re-weaving that section.",
    },
    "sequence": {
        "name": "Cloth stories",
        "description": "Cloths tell a story when their motifs are read in order.",
    },
    "recursion": {
        "name": "Motifs within motifs",
        "description": "Larger shapes made from smaller copies of themselves.",
    },
    "objects": {
        "name": "Loom parts",
        "description": "Heddles, shuttle and beater each play their own role.",
    },
    "classes": {
        "name": "Cloth families",
        "description": "Related cloths share a structure but differ in detail.",
    },
}

NO_CULTURAL_CONNECTION = "No cultural connection information available."


class PathEnricher:
    """Attach supplementary content to generated path items."""

    def enrich(self, path: LearningPath) -> LearningPath:
        raise NotImplementedError


class CulturalPathEnricher(PathEnricher):
    """Deterministic enrichment with Kente weaving references."""

    def __init__(self, elements: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
        self.elements = dict(elements if elements is not None else _KENTE_ELEMENTS)

    def connection_for(self, concept: str) -> str:
        element = self.elements.get(concept)
        if element is None:
            return NO_CULTURAL_CONNECTION
        return f"{element['name']}: {element['description']}"

    def enrich(self, path: LearningPath) -> LearningPath:
        items = []
        for item in path.items:
            element = self.elements.get(item.concept)
            items.append(
                item.model_copy(
                    update={
                        "cultural_elements": [dict(element)] if element else [],
                        "cultural_connection": self.connection_for(item.concept),
                    }
                )
            )
        return path.model_copy(update={"items": items})


# ---------------------------------------------------------------------------
# Path type recommendation
# ---------------------------------------------------------------------------

_TIE_ORDER = (
    LearningPathType.LOGIC_BASED,
    LearningPathType.CREATIVITY_BASED,
    LearningPathType.CHALLENGE_BASED,
)


def path_type_scores(
    progress: UserProgress, session: Optional[LearningSession] = None
) -> Dict[LearningPathType, float]:
    """Additive scores used by :func:`recommend_learning_path_type`."""

    logic = creativity = challenge = 0.0

    values = list(progress.skill_proficiency.values())
    average = sum(values) / len(values) if values else 0.0
    if average < 0.3:
        creativity += 2
        logic += 1
    elif average < 0.7:
        logic += 2
        creativity += 1
        challenge += 1
    else:
        challenge += 2
        logic += 1

    if session is not None:
        if session.mastery_level > 0.7:
            challenge += 1
        if session.engagement_score < 0.4:
            creativity += 1
        if session.is_user_struggling:
            creativity += 2
            challenge -= 1
        if session.is_user_excelling:
            challenge += 2

    completed = len(progress.completed_challenges)
    if completed >= 10:
        challenge += 1
    elif completed >= 5:
        logic += 1

    mastered = len(progress.concepts_mastered)
    if mastered >= 5:
        challenge += 1
    elif mastered >= 2:
        logic += 1
    else:
        creativity += 1

    return {
        LearningPathType.LOGIC_BASED: logic,
        LearningPathType.CREATIVITY_BASED: creativity,
        LearningPathType.CHALLENGE_BASED: challenge,
    }


def recommend_learning_path_type(
    progress: UserProgress,
    preference: Optional[LearningPathType] = None,
    session: Optional[LearningSession] = None,
) -> LearningPathType:
    if preference is not None and not (session is not None and session.is_user_struggling):
        return preference
    scores = path_type_scores(progress, session)
    best = _TIE_ORDER[0]
    for path_type in _TIE_ORDER[1:]:
        if scores[path_type] > scores[best]:
            best = path_type
    return best


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class LearningPathBuilder:
    def __init__(
        self,
        catalog: ConceptCatalog = DEFAULT_CATALOG,
        enricher: Optional[PathEnricher] = None,
    ) -> None:
        self.catalog = catalog
        self.enricher = enricher

    def generate_template(
        self,
        path_type: LearningPathType,
        learning_style: LearningStyle = LearningStyle.VISUAL,
        user_id: str = "",
    ) -> LearningPath:
        templates: List[_ItemTemplate] = list(_CORE_ITEMS[path_type])
        style_item = _STYLE_ITEMS.get(path_type, {}).get(learning_style)
        if style_item is not None:
            templates.append(style_item)
        templates.extend(_CLOSING_ITEMS[path_type])
        return LearningPath(
            user_id=user_id,
            path_type=path_type,
            items=[self._to_item(template) for template in templates],
        )

    def _to_item(self, template: _ItemTemplate) -> LearningPathItem:
        return LearningPathItem(
            concept=template.concept,
            title=template.title,
            description=template.description,
            skill_level=template.skill_level,
            estimated_minutes=template.minutes,
            prerequisites=list(template.prerequisites),
            challenge_types=list(self.catalog.related_types(template.concept)),
        )

    @staticmethod
    def personalize(template: LearningPath, user_progress: Optional[UserProgress] = None) -> LearningPath:
        """Order items mastered first, then in progress, then by prerequisite count."""

        if user_progress is None:
            return template

        def sort_key(item: LearningPathItem) -> Tuple[int, int, int]:
            return (
                0 if user_progress.is_mastered(item.concept) else 1,
                0 if user_progress.is_in_progress(item.concept) else 1,
                len(item.prerequisites),
            )

        items = [
            item.model_copy(update={"is_completed": user_progress.is_mastered(item.concept)})
            for item in sorted(template.items, key=sort_key)
        ]
        return template.model_copy(update={"items": items, "user_id": user_progress.user_id})

    def build(
        self,
        user_id: str,
        path_type: LearningPathType,
        learning_style: LearningStyle,
        user_progress: Optional[UserProgress] = None,
    ) -> LearningPath:
        template = self.generate_template(path_type, learning_style, user_id=user_id)
        path = self.personalize(template, user_progress)
        if self.enricher is not None:
            path = self.enricher.enrich(path)
        _log_json(
            "learning_path_generated",
            {
                "user_id": user_id,
                "path_type": path_type.value,
                "learning_style": learning_style.value,
                "concepts": path.concepts,
            },
        )
        return path

