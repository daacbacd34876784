import json

import pytest
from pydantic import ValidationError

from learning_taxonomy import (
    DEFAULT_CATALOG,
    ConceptCatalog,
    ConceptCatalogError,
    LearningPathType,
    LearningStyle,
    ProficiencyLevel,
    dedupe,
    parse_learning_style,
    parse_path_type,
)
from schemas import (
    MAX_CHALLENGE_HISTORY,
    ActionMetadata,
    ChallengeAttemptRecord,
    ConceptRecommendationResponse,
    UserProgress,
    parse_json_safe,
)


def test_parse_json_safe_extracts_embedded_array():
    text = 'Sure! Here are the concepts: ["loops", "variables"] Let me know.'

    parsed = parse_json_safe(text, ConceptRecommendationResponse, allow_trailing=True)

    assert parsed.root == ["loops", "variables"]


def test_parse_json_safe_rejects_trailing_text_by_default():
    with pytest.raises((ValidationError, ValueError)):
        parse_json_safe('["loops"] trailing', ConceptRecommendationResponse)


def test_parse_json_safe_without_json_raises():
    with pytest.raises((ValidationError, ValueError)):
        parse_json_safe("no json here", ConceptRecommendationResponse, allow_trailing=True)


def test_action_metadata_accepts_camel_case_and_keeps_extras():
    meta = ActionMetadata.model_validate(
        {"challengeType": "loops", "difficulty": 2, "blockCount": 7, "theme": "kente"}
    )

    assert meta.challenge_type == "loops"
    assert meta.block_count == 7
    dumped = meta.model_dump(by_alias=True, exclude_none=True)
    assert dumped["theme"] == "kente"
    assert dumped["challengeType"] == "loops"


def test_action_metadata_rejects_negative_difficulty():
    with pytest.raises(ValidationError):
        ActionMetadata.model_validate({"difficulty": -1})


def test_user_progress_json_round_trip():
    progress = UserProgress(
        user_id="learner-1",
        skill_proficiency={"loops": 0.3},
        concepts_in_progress=["loops"],
        learning_style_points={"visual": 4},
    )

    restored = UserProgress.model_validate_json(progress.model_dump_json())

    assert restored == progress
    assert restored.proficiency("loops") == 0.3
    assert restored.proficiency("unknown") == 0.0
    assert restored.is_in_progress("loops")


def test_challenge_history_is_capped():
    progress = UserProgress(user_id="u")
    for index in range(MAX_CHALLENGE_HISTORY + 3):
        progress = progress.with_challenge_record(
            ChallengeAttemptRecord(challenge_id=f"c{index}", success=True)
        )

    assert len(progress.challenge_history) == MAX_CHALLENGE_HISTORY
    assert progress.challenge_history[0].challenge_id == "c3"


def test_proficiency_bands():
    assert ProficiencyLevel.from_value(0.0) == ProficiencyLevel.NOT_INTRODUCED
    assert ProficiencyLevel.from_value(0.1) == ProficiencyLevel.INTRODUCED
    assert ProficiencyLevel.from_value(0.5) == ProficiencyLevel.DEVELOPING
    assert ProficiencyLevel.from_value(0.9) == ProficiencyLevel.MASTERED
    assert ProficiencyLevel.PROFICIENT.percentage == 0.8


def test_label_parsing():
    assert parse_path_type("creativityBased") == LearningPathType.CREATIVITY_BASED
    assert parse_path_type("logic") == LearningPathType.LOGIC_BASED
    assert parse_path_type("unknown") is None
    assert parse_path_type(None, LearningPathType.BALANCED) == LearningPathType.BALANCED
    assert parse_learning_style("kinesthetic") == LearningStyle.PRACTICAL
    assert parse_learning_style("mixed") == LearningStyle.VISUAL
    assert parse_learning_style("Reflective") == LearningStyle.REFLECTIVE
    assert dedupe(["a", "b", "a"]) == ["a", "b"]


def test_catalog_tables():
    assert DEFAULT_CATALOG.challenge_type_order()[:3] == ["pattern", "sequence", "loop"]
    assert DEFAULT_CATALOG.concepts_for_type("debug") == ["debugging"]
    assert DEFAULT_CATALOG.favored_types(None) == ()
    assert DEFAULT_CATALOG.level_sequence()[0] == "sequences"


def test_catalog_from_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(
        json.dumps(
            {
                "prerequisites": {"a": [], "b": ["a"]},
                "challenge_types": {"a": ["alpha"], "b": ["alpha", "beta"]},
                "path_favored_types": {"logicBased": ["beta"]},
                "concepts_by_level": {"1": ["a"], "2": ["b"]},
            }
        ),
        encoding="utf-8",
    )

    catalog = ConceptCatalog.from_file(path)

    assert catalog.challenge_type_order() == ["alpha", "beta"]
    assert catalog.favored_types(LearningPathType.LOGIC_BASED) == ("beta",)
    assert catalog.level_sequence() == ["a", "b"]


def test_catalog_rejects_self_prerequisite(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"prerequisites": {"a": ["a"]}}), encoding="utf-8")

    with pytest.raises(ConceptCatalogError):
        ConceptCatalog.from_file(path)
