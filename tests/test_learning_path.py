import json
import logging

from engines.session import LearningSession
from learning_path import (
    NO_CULTURAL_CONNECTION,
    CulturalPathEnricher,
    LearningPathBuilder,
    path_type_scores,
    recommend_learning_path_type,
)
from learning_taxonomy import LearningPathType, LearningStyle
from schemas import UserProgress


def struggling_session():
    session = LearningSession.start("u")
    for _ in range(3):
        session = session.record_challenge_attempt(False)
    return session


def test_template_appends_style_item_and_closing_items():
    path = LearningPathBuilder().generate_template(LearningPathType.LOGIC_BASED, LearningStyle.VISUAL, "u")

    assert path.concepts == [
        "variables",
        "conditionals",
        "loops",
        "functions",
        "arrays",
        "algorithms",
        "debugging",
        "pattern_design",
        "classes",
    ]
    assert path.items[0].challenge_types == ["pattern", "variable"]
    assert path.items[-1].estimated_minutes == 60


def test_balanced_template_has_no_style_item():
    path = LearningPathBuilder().generate_template(LearningPathType.BALANCED, LearningStyle.SOCIAL)

    assert path.concepts == ["variables", "ui_design", "algorithms"]


def test_personalize_orders_mastered_then_in_progress():
    builder = LearningPathBuilder()
    template = builder.generate_template(LearningPathType.LOGIC_BASED, LearningStyle.VISUAL, "u")
    progress = UserProgress(user_id="u", concepts_mastered=["loops"], concepts_in_progress=["variables"])

    path = builder.personalize(template, progress)

    assert path.concepts[:4] == ["loops", "variables", "conditionals", "debugging"]
    assert path.concepts[-1] == "functions"
    assert path.items[0].is_completed
    assert not path.items[1].is_completed


def test_personalize_without_progress_is_identity():
    template = LearningPathBuilder().generate_template(LearningPathType.CHALLENGE_BASED, LearningStyle.LOGICAL)

    assert LearningPathBuilder.personalize(template, None) is template


def test_cultural_enricher_attaches_connections():
    enricher = CulturalPathEnricher()
    path = LearningPathBuilder(enricher=enricher).build(
        "u", LearningPathType.BALANCED, LearningStyle.VISUAL, UserProgress(user_id="u")
    )

    by_concept = {item.concept: item for item in path.items}
    assert by_concept["variables"].cultural_connection.startswith("Kente colours:")
    assert by_concept["variables"].cultural_elements[0]["name"] == "Kente colours"
    assert by_concept["ui_design"].cultural_connection == NO_CULTURAL_CONNECTION
    assert by_concept["ui_design"].cultural_elements == []


def test_build_logs_structured_event(caplog):
    caplog.set_level(logging.INFO, logger="learning_path")

    LearningPathBuilder().build("u", LearningPathType.BALANCED, LearningStyle.VISUAL)

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "learning_path"]
    assert events[-1]["event"] == "learning_path_generated"
    assert events[-1]["path_type"] == "balanced"


def test_new_learner_gets_creativity_path():
    assert recommend_learning_path_type(UserProgress(user_id="u")) == LearningPathType.CREATIVITY_BASED


def test_preference_wins_unless_struggling():
    progress = UserProgress(user_id="u")

    assert recommend_learning_path_type(progress, LearningPathType.CHALLENGE_BASED) == LearningPathType.CHALLENGE_BASED
    assert (
        recommend_learning_path_type(progress, LearningPathType.CHALLENGE_BASED, struggling_session())
        == LearningPathType.CREATIVITY_BASED
    )


def test_advanced_learner_gets_challenge_path():
    progress = UserProgress(
        user_id="u",
        skill_proficiency={"loops": 0.9, "variables": 0.8},
        completed_challenges=[f"c{i}" for i in range(10)],
        concepts_mastered=["a", "b", "c", "d", "e"],
    )

    scores = path_type_scores(progress)

    assert scores[LearningPathType.CHALLENGE_BASED] == 4
    assert recommend_learning_path_type(progress) == LearningPathType.CHALLENGE_BASED


def test_ties_prefer_logic_path():
    progress = UserProgress(user_id="u", skill_proficiency={"loops": 0.5})

    scores = path_type_scores(progress)

    assert scores[LearningPathType.LOGIC_BASED] == scores[LearningPathType.CREATIVITY_BASED] == 2
    assert recommend_learning_path_type(progress) == LearningPathType.LOGIC_BASED
