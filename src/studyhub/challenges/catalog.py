"""Challenge templates and the deterministic selection rules.

Selection is a pure function of the cadence, the window start (used as
the rotation seed) and a snapshot of recent usage, so repeated triggers
for the same window always produce the same template list.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime

from studyhub.challenges.windows import DAILY, HOT, MONTHLY, WEEKLY


class ProgressRule(str, enum.Enum):
    """Tag stored on each challenge and switched on by progress updates."""

    ANY_ACTIVITY = "any_activity"
    QUIZ_COUNT = "quiz_count"
    FLASHCARD_COUNT = "flashcard_count"
    PERFECT_SCORE = "perfect_score"
    PERFECT_COUNT = "perfect_count"
    MIXED = "mixed"
    ACTIVE_DAYS = "active_days"
    QUIZ_PATH = "quiz_path"


class ActivityType(str, enum.Enum):
    QUIZ = "quiz"
    FLASHCARD = "flashcard"


DIFFICULTIES = ("easy", "medium", "hard")

# Mean medium-difficulty score (percent) thresholds for escalation.
ESCALATE_AT = 75.0
DEESCALATE_AT = 50.0


@dataclass(frozen=True)
class ChallengeTemplate:
    key: str
    title: str
    description: str
    cadence: str
    rule: ProgressRule
    target: int
    reward: int
    format: str = "standard"
    activity_type: ActivityType | None = None
    increment: int = 1
    topic: str | None = None
    difficulty: str | None = None

    @property
    def requires_quiz(self) -> bool:
        return self.rule is ProgressRule.QUIZ_PATH


@dataclass(frozen=True)
class UsageSnapshot:
    """Aggregate activity over the analysis window.

    ``popular_topics`` is ordered most-attempted first.
    ``difficulty_scores`` maps difficulty to mean score percentage.
    """

    popular_topics: tuple[str, ...] = ()
    difficulty_scores: dict[str, float] = field(default_factory=dict)

    @property
    def has_data(self) -> bool:
        return bool(self.popular_topics)


# --- Static templates ---

STREAK_BUILDER = ChallengeTemplate(
    key="daily_streak_builder",
    title="Streak Builder",
    description="Complete any quiz or flashcard set today to keep your streak alive",
    cadence=DAILY,
    rule=ProgressRule.ANY_ACTIVITY,
    target=1,
    reward=25,
)

DAILY_ROTATION: tuple[ChallengeTemplate, ...] = (
    ChallengeTemplate(
        key="daily_morning_learner",
        title="Morning Learner",
        description="Complete 1 quiz today",
        cadence=DAILY,
        rule=ProgressRule.QUIZ_COUNT,
        activity_type=ActivityType.QUIZ,
        target=1,
        reward=50,
    ),
    ChallengeTemplate(
        key="daily_quiz_sprint",
        title="Quiz Sprint",
        description="Complete 3 quizzes today",
        cadence=DAILY,
        rule=ProgressRule.QUIZ_COUNT,
        activity_type=ActivityType.QUIZ,
        target=3,
        reward=150,
    ),
    ChallengeTemplate(
        key="daily_perfect_score",
        title="Perfect Score",
        description="Get 100% on any quiz",
        cadence=DAILY,
        rule=ProgressRule.PERFECT_SCORE,
        activity_type=ActivityType.QUIZ,
        target=1,
        reward=200,
    ),
    ChallengeTemplate(
        key="daily_flash_focus",
        title="Flash Focus",
        description="Study 2 flashcard sets today",
        cadence=DAILY,
        rule=ProgressRule.FLASHCARD_COUNT,
        activity_type=ActivityType.FLASHCARD,
        target=2,
        reward=75,
    ),
    ChallengeTemplate(
        key="daily_mix",
        title="Mix It Up",
        description="Earn 100 mix points: every quiz or flashcard set is worth 25",
        cadence=DAILY,
        rule=ProgressRule.MIXED,
        target=100,
        increment=25,
        reward=100,
        format="mix",
    ),
)

WEEKLY_TEMPLATES: tuple[ChallengeTemplate, ...] = (
    ChallengeTemplate(
        key="weekly_warrior",
        title="Weekly Warrior",
        description="Complete 10 quizzes this week",
        cadence=WEEKLY,
        rule=ProgressRule.QUIZ_COUNT,
        activity_type=ActivityType.QUIZ,
        target=10,
        reward=500,
    ),
    ChallengeTemplate(
        key="weekly_dedicated_learner",
        title="Dedicated Learner",
        description="Study on 5 different days this week",
        cadence=WEEKLY,
        rule=ProgressRule.ACTIVE_DAYS,
        target=5,
        reward=400,
    ),
    ChallengeTemplate(
        key="weekly_flashcard_marathon",
        title="Flashcard Marathon",
        description="Study 10 flashcard sets this week",
        cadence=WEEKLY,
        rule=ProgressRule.FLASHCARD_COUNT,
        activity_type=ActivityType.FLASHCARD,
        target=10,
        reward=300,
    ),
)

MONTHLY_TEMPLATES: tuple[ChallengeTemplate, ...] = (
    ChallengeTemplate(
        key="monthly_marathon",
        title="Monthly Marathon",
        description="Complete 40 quizzes this month",
        cadence=MONTHLY,
        rule=ProgressRule.QUIZ_COUNT,
        activity_type=ActivityType.QUIZ,
        target=40,
        reward=2000,
    ),
    ChallengeTemplate(
        key="monthly_perfectionist",
        title="Perfectionist",
        description="Score 100% on 5 quizzes this month",
        cadence=MONTHLY,
        rule=ProgressRule.PERFECT_COUNT,
        activity_type=ActivityType.QUIZ,
        target=5,
        reward=1500,
    ),
    ChallengeTemplate(
        key="monthly_habit",
        title="Habit Former",
        description="Study on 20 different days this month",
        cadence=MONTHLY,
        rule=ProgressRule.ACTIVE_DAYS,
        target=20,
        reward=1800,
    ),
)

HOT_ROTATION: tuple[ChallengeTemplate, ...] = (
    ChallengeTemplate(
        key="hot_power_hour",
        title="Power Hour",
        description="Complete 3 quizzes before this challenge cools down",
        cadence=HOT,
        rule=ProgressRule.QUIZ_COUNT,
        activity_type=ActivityType.QUIZ,
        target=3,
        reward=250,
        format="timed",
    ),
    ChallengeTemplate(
        key="hot_flash_blitz",
        title="Flash Blitz",
        description="Study 2 flashcard sets in the next few hours",
        cadence=HOT,
        rule=ProgressRule.FLASHCARD_COUNT,
        activity_type=ActivityType.FLASHCARD,
        target=2,
        reward=150,
        format="timed",
    ),
    ChallengeTemplate(
        key="hot_flawless",
        title="Flawless Run",
        description="Ace a quiz with a perfect score while it's hot",
        cadence=HOT,
        rule=ProgressRule.PERFECT_SCORE,
        activity_type=ActivityType.QUIZ,
        target=1,
        reward=300,
        format="timed",
    ),
)


def choose_optimal_difficulty(difficulty_scores: dict[str, float]) -> str:
    """Pick the difficulty for generated content from medium-level performance.

    >= 75% mean on medium escalates to hard, <= 50% drops to easy.
    """
    medium = difficulty_scores.get("medium")
    if medium is None:
        return "medium"
    if medium >= ESCALATE_AT:
        return "hard"
    if medium <= DEESCALATE_AT:
        return "easy"
    return "medium"


def topic_master_template(topic: str, difficulty: str) -> ChallengeTemplate:
    """Dynamic daily template backed by a freshly generated quiz."""
    return ChallengeTemplate(
        key="daily_topic_master",
        title=f"{topic.strip().title()} Master",
        description=f"Complete today's {difficulty} quiz on {topic.strip()}",
        cadence=DAILY,
        rule=ProgressRule.QUIZ_PATH,
        activity_type=ActivityType.QUIZ,
        target=1,
        reward={"easy": 100, "medium": 150, "hard": 250}.get(difficulty, 150),
        format="path",
        topic=topic.strip(),
        difficulty=difficulty,
    )


def _seed(window_start: datetime) -> int:
    return window_start.toordinal() * 24 + window_start.hour


def select_templates(
    cadence: str,
    window_start: datetime,
    usage: UsageSnapshot | None = None,
) -> list[ChallengeTemplate]:
    """Ordered templates to instantiate for one window.

    Daily: one topic template (when usage data exists), one rotating
    static template and the streak builder. Weekly/monthly: every fixed
    template. Hot: one rotating template.
    """
    seed = _seed(window_start)

    if cadence == DAILY:
        selected: list[ChallengeTemplate] = []
        if usage is not None and usage.has_data:
            topic = usage.popular_topics[seed % len(usage.popular_topics)]
            difficulty = choose_optimal_difficulty(usage.difficulty_scores)
            selected.append(topic_master_template(topic, difficulty))
        selected.append(DAILY_ROTATION[seed % len(DAILY_ROTATION)])
        selected.append(STREAK_BUILDER)
        return selected
    if cadence == WEEKLY:
        return list(WEEKLY_TEMPLATES)
    if cadence == MONTHLY:
        return list(MONTHLY_TEMPLATES)
    if cadence == HOT:
        return [HOT_ROTATION[seed % len(HOT_ROTATION)]]
    raise ValueError(f"Unknown cadence: {cadence}")


def with_quiz_count(template: ChallengeTemplate, quiz_count: int) -> ChallengeTemplate:
    """Quiz paths target the number of attached quizzes."""
    return replace(template, target=max(1, quiz_count))


def next_progress(
    rule: str,
    *,
    current: int,
    target: int,
    increment: int,
    required_activity: str | None,
    activity: ActivityType,
    is_perfect_score: bool,
    last_activity_at: datetime | None,
    now: datetime,
) -> int | None:
    """Progress after one activity, or None when the activity does not count.

    Callers clamp the result to the challenge target. Quiz paths only
    advance through explicit quiz completion, never through activities.
    """
    rule = ProgressRule(rule)
    matches = required_activity is None or required_activity == activity.value

    if rule is ProgressRule.ANY_ACTIVITY:
        return current + 1
    if rule is ProgressRule.QUIZ_COUNT:
        return current + 1 if activity is ActivityType.QUIZ else None
    if rule is ProgressRule.FLASHCARD_COUNT:
        return current + 1 if activity is ActivityType.FLASHCARD else None
    if rule is ProgressRule.MIXED:
        return current + max(1, increment)
    if rule is ProgressRule.PERFECT_SCORE:
        return target if is_perfect_score and matches else None
    if rule is ProgressRule.PERFECT_COUNT:
        return current + 1 if is_perfect_score and matches else None
    if rule is ProgressRule.ACTIVE_DAYS:
        if last_activity_at is not None and last_activity_at.date() == now.date():
            return None
        return current + 1
    return None
