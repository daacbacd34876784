import pytest

from engines.proficiency import IN_PROGRESS, MASTERED, NOT_INTRODUCED, ProficiencyStore
from learning_taxonomy import ProficiencyLevel
from schemas import UserProgress


def make_progress(**proficiency):
    store = ProficiencyStore()
    progress = UserProgress(user_id="learner-1")
    for concept, value in proficiency.items():
        progress = store._apply(progress, concept, value)
    return progress


def test_successful_attempt_moves_new_concept_in_progress():
    store = ProficiencyStore()
    progress = UserProgress(user_id="learner-1")

    updated = store.update_proficiency(progress, "loops", True, 3.0)

    assert updated.proficiency("loops") == pytest.approx(0.3)
    assert store.classify(updated, "loops") == IN_PROGRESS
    assert "loops" in updated.concepts_in_progress
    assert "loops" not in updated.concepts_mastered
    # The input aggregate is left untouched.
    assert progress.skill_proficiency == {}


def test_perfect_quality_solve_reaches_mastery():
    store = ProficiencyStore()
    progress = make_progress(loops=0.75)
    assert "loops" in progress.concepts_in_progress

    updated, mastery = store.assess_concept_mastery(
        progress,
        "loops",
        "loops-3",
        success=True,
        difficulty=1.0,
        solution_quality=1.0,
        hints_used=0,
        errors_count=0,
    )

    assert updated.proficiency("loops") == pytest.approx(1.0)
    assert store.classify(updated, "loops") == MASTERED
    assert "loops" not in updated.concepts_in_progress
    assert mastery.level == ProficiencyLevel.MASTERED
    assert mastery.demonstrations == ["loops-3"]
    assert mastery.attempts == 1
    assert mastery.successful_attempts == 1


def test_struggle_penalty_applies_to_heavy_hint_usage():
    store = ProficiencyStore()
    progress = make_progress(loops=0.5)

    updated, _ = store.assess_concept_mastery(
        progress, "loops", "loops-4", success=True, difficulty=1.0, hints_used=3
    )

    assert updated.proficiency("loops") == pytest.approx(0.5 + 0.1 - 0.03)


def test_failure_never_drops_below_zero():
    store = ProficiencyStore()
    progress = UserProgress(user_id="learner-1")

    updated = store.update_proficiency(progress, "loops", False, 5.0)

    assert updated.proficiency("loops") == 0.0
    assert store.classify(updated, "loops") == NOT_INTRODUCED
    assert updated.concepts_in_progress == []


def test_large_difficulty_is_clamped_to_one():
    store = ProficiencyStore()
    updated = store.update_proficiency(UserProgress(user_id="u"), "loops", True, 50.0)

    assert updated.proficiency("loops") == 1.0
    assert updated.concepts_mastered == ["loops"]


def test_mastered_concept_is_never_demoted():
    store = ProficiencyStore()
    progress = make_progress(loops=0.85)
    assert progress.concepts_mastered == ["loops"]

    for _ in range(5):
        progress = store.update_proficiency(progress, "loops", False, 1.0)

    assert progress.proficiency("loops") == pytest.approx(0.6)
    assert progress.concepts_mastered == ["loops"]
    assert "loops" not in progress.concepts_in_progress


def test_mastered_and_in_progress_stay_disjoint():
    store = ProficiencyStore()
    progress = UserProgress(user_id="u")
    for success, difficulty in [(True, 2), (False, 1), (True, 3), (True, 3), (False, 1)]:
        progress = store.update_proficiency(progress, "variables", success, difficulty)
        assert not set(progress.concepts_mastered) & set(progress.concepts_in_progress)


def test_out_of_range_solution_quality_is_clamped():
    store = ProficiencyStore()
    progress = UserProgress(user_id="u")

    high, _ = store.assess_concept_mastery(progress, "loops", "c1", True, 1.0, solution_quality=1.5)
    low, _ = store.assess_concept_mastery(progress, "loops", "c1", True, 1.0, solution_quality=-0.5)

    assert high.proficiency("loops") == pytest.approx(0.25)
    assert low.proficiency("loops") == pytest.approx(0.15)


def test_mastery_record_for_unknown_concept():
    store = ProficiencyStore()
    record = store.mastery(UserProgress(user_id="u"), "recursion")

    assert record.concept_id == "recursion"
    assert record.proficiency == 0.0
    assert record.level == ProficiencyLevel.NOT_INTRODUCED


def test_constructor_validates_threshold():
    with pytest.raises(ValueError):
        ProficiencyStore(mastery_threshold=0)
