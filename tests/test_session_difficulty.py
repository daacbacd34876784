from datetime import datetime, timedelta, timezone

import pytest

from engines.difficulty_manager import DifficultyController
from engines.frustration import FrustrationDetector
from engines.session import MAX_SESSION_ACTIONS, LearningSession
from engines.validation import ErrorKind, PreconditionViolation
from learning_taxonomy import LearningPathType

START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_session(results=(), **kwargs):
    session = LearningSession.start("learner-1", LearningPathType.LOGIC_BASED, now=START)
    for successful in results:
        session = session.record_challenge_attempt(successful, **kwargs)
    return session


def test_successful_attempt_updates_counters():
    session = make_session()

    updated = session.record_challenge_attempt(True, difficulty_level=1, hints_used=1)

    assert session.challenges_attempted == 0
    assert updated.challenges_attempted == 1
    assert updated.challenges_completed == 1
    assert updated.hints_requested == 1
    assert updated.engagement_score == pytest.approx(0.6)
    assert updated.frustration_level == 0.0
    assert updated.mastery_level == pytest.approx(0.04)
    assert updated.performance_metrics["successRate"] == 1.0
    assert len(updated.action_history) == 1


def test_repeated_failures_mark_learner_as_struggling():
    session = make_session([False, False, False])

    assert session.frustration_level == pytest.approx(0.3)
    assert session.success_rate == 0.0
    assert session.is_user_struggling
    assert session.recommended_difficulty_adjustment == -1


def test_hint_and_error_raise_frustration():
    session = make_session().record_hint_request().record_error()

    assert session.hints_requested == 1
    assert session.errors_made == 1
    assert session.frustration_level == pytest.approx(0.15)


def test_action_history_is_capped():
    session = make_session()
    for _ in range(MAX_SESSION_ACTIONS + 5):
        session = session.record_error()

    assert len(session.action_history) == MAX_SESSION_ACTIONS


def test_end_records_elapsed_minutes_and_blocks_updates():
    session = make_session([True])

    ended = session.end(now=START + timedelta(minutes=25, seconds=40))

    assert not ended.is_active
    assert ended.time_spent_minutes == 25
    assert ended.to_dict()["learningPathType"] == "logicBased"
    with pytest.raises(PreconditionViolation) as excinfo:
        ended.record_hint_request()
    assert excinfo.value.kind == ErrorKind.SESSION_ENDED


def test_frustration_is_bounded():
    detector = FrustrationDetector()
    session = make_session([False, False, False], errors_count=10).with_frustration(0.9)

    level = detector.detect(session, recent_errors=50, time_on_challenge_seconds=10_000, hints_requested=50)

    assert level == 1.0
    assert detector.detect(make_session(), 0, 0, 0) == 0.0


def test_frustration_breakdown_lists_contributions():
    breakdown = FrustrationDetector().explain(make_session(), 6, 400, 0)

    assert breakdown.level == pytest.approx(0.8)
    assert [name for name, _ in breakdown.contributions] == ["recent_errors", "time_on_challenge"]


def test_difficulty_step_is_capped_at_one_level():
    controller = DifficultyController()

    adjustment = controller.evaluate(3, make_session(), time_spent_seconds=400, errors_count=6, hints_used=0)

    assert adjustment.raw == -3
    assert adjustment.frustration > 0.7
    assert adjustment.fired == ("slow_completion", "heavy_support", "high_frustration")
    assert adjustment.difficulty == 2
    assert adjustment.step == -1


def test_difficulty_increases_for_fast_confident_learner():
    controller = DifficultyController()
    session = make_session([True, True, True])

    assert controller.adjust(2, session, 30, 0, 0) == 3


def test_difficulty_stays_within_bounds():
    controller = DifficultyController()
    strong = make_session([True, True, True])
    weak = make_session()

    assert controller.adjust(5, strong, 30, 0, 0, concept_proficiency=0.95) == 5
    assert controller.adjust(1, weak, 400, 6, 4, concept_proficiency=0.1) == 1
