"""Milestones, experience points, levels and daily streaks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from schemas import Milestone, MilestoneRequirement, MilestoneReward, UserProgress

_LOGGER = logging.getLogger(__name__)

XP_PER_LEVEL = 100


def _milestone(
    milestone_id: str,
    title: str,
    description: str,
    requirement_type: str,
    value: int,
    xp: int,
    badge_id: str,
) -> Milestone:
    return Milestone(
        id=milestone_id,
        title=title,
        description=description,
        requirement=MilestoneRequirement(type=requirement_type, value=value),
        reward=MilestoneReward(xp=xp, badge_id=badge_id),
    )


DEFAULT_MILESTONES: Tuple[Milestone, ...] = (
    _milestone("first_story", "First Story", "Complete your first story", "story_count", 1, 50, "story_explorer"),
    _milestone("pattern_creator", "Pattern Creator", "Create your first pattern", "pattern_count", 1, 50, "pattern_creator"),
    _milestone("challenge_master", "Challenge Master", "Complete 5 challenges", "challenge_count", 5, 100, "challenge_master"),
    _milestone("concept_master", "Concept Master", "Master 3 coding concepts", "concept_mastery", 3, 150, "concept_master"),
    _milestone("streak_keeper", "Streak Keeper", "Maintain a 3-day streak", "streak", 3, 75, "streak_master"),
    _milestone("cultural_explorer", "Cultural Explorer", "Explore 5 cultural elements", "cultural_exploration", 5, 100, "cultural_explorer"),
    _milestone("advanced_weaver", "Advanced Weaver", "Reach level 5", "level", 5, 200, "advanced_weaver"),
)


def _preference_count(progress: UserProgress, key: str) -> int:
    value = progress.preferences.get(key, 0)
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


_REQUIREMENT_READERS: Dict[str, Callable[[UserProgress], int]] = {
    "story_count": lambda p: len(p.completed_stories),
    "pattern_count": lambda p: _preference_count(p, "patternCount"),
    "challenge_count": lambda p: len(p.completed_challenges),
    "concept_mastery": lambda p: len(p.concepts_mastered),
    "streak": lambda p: p.streak,
    "cultural_exploration": lambda p: _preference_count(p, "culturalExplorationCount"),
    "level": lambda p: p.level,
}


def xp_for_action(action_type: str, metadata: Optional[Mapping[str, Any]] = None) -> int:
    """Experience awarded for a successful action."""

    meta = metadata or {}
    if action_type == "challenge_completion":
        difficulty = meta.get("difficulty", 1)
        try:
            return int(10 * float(difficulty))
        except (TypeError, ValueError):
            return 10
    if action_type == "pattern_creation":
        blocks = meta.get("blockCount", 0)
        try:
            return 5 + 2 * int(blocks)
        except (TypeError, ValueError):
            return 5
    if action_type == "story_progress":
        return 15
    if action_type == "cultural_exploration":
        return 8
    if action_type == "block_connection":
        return 1
    return 5


def level_for_experience(experience_points: int, current_level: int = 1) -> int:
    level = max(1, current_level)
    while experience_points >= level * XP_PER_LEVEL:
        level += 1
    return level


def add_experience(progress: UserProgress, xp: int) -> UserProgress:
    if xp <= 0:
        return progress
    total = progress.experience_points + xp
    return progress.model_copy(
        update={
            "experience_points": total,
            "level": level_for_experience(total, progress.level),
        }
    )


def update_streak(progress: UserProgress, now: datetime) -> UserProgress:
    """Advance the daily streak relative to ``last_active_date``."""

    today: date = now.date()
    last: date = progress.last_active_date.date()
    gap = (today - last).days
    if gap == 0:
        streak = progress.streak
    elif gap == 1:
        streak = progress.streak + 1
    else:
        streak = 1
    return progress.model_copy(update={"streak": streak, "last_active_date": now})


@dataclass(frozen=True)
class MilestoneCheck:
    progress: UserProgress
    completed: Tuple[Milestone, ...]


class MilestoneTracker:
    def __init__(self, milestones: Optional[Sequence[Milestone]] = None) -> None:
        self.milestones: Tuple[Milestone, ...] = tuple(milestones or DEFAULT_MILESTONES)
        ids = [m.id for m in self.milestones]
        if len(ids) != len(set(ids)):
            raise ValueError("Milestone ids must be unique")

    def is_completed(self, progress: UserProgress, milestone: Milestone) -> bool:
        reader = _REQUIREMENT_READERS.get(milestone.requirement.type)
        if reader is None:
            return False
        return reader(progress) >= milestone.requirement.value

    def check(self, progress: UserProgress) -> MilestoneCheck:
        """Complete every satisfied milestone once and grant its reward."""

        completed_ids: List[str] = list(progress.completed_milestones)
        badges: List[str] = list(progress.earned_badges)
        newly: List[Milestone] = []
        updated = progress

        for milestone in self.milestones:
            if milestone.id in completed_ids:
                continue
            if not self.is_completed(updated, milestone):
                continue
            completed_ids.append(milestone.id)
            newly.append(milestone)
            updated = add_experience(updated, milestone.reward.xp)
            badge = milestone.reward.badge_id
            if badge and badge not in badges:
                badges.append(badge)
            _LOGGER.info("User %s completed milestone %s", progress.user_id, milestone.id)

        if not newly:
            return MilestoneCheck(progress=progress, completed=())
        updated = updated.model_copy(
            update={"completed_milestones": completed_ids, "earned_badges": badges}
        )
        return MilestoneCheck(progress=updated, completed=tuple(newly))
