"""Challenge engine: generation, enrolment, progress, scoring and leaderboards.

Every public method is scoped to one database session and commits its
own work. Reads go through the per-user Redis cache; every state change
invalidates the affected user's entries after the commit.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import redis.asyncio as aioredis
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studyhub.activity.service import create_quiz, get_quiz
from studyhub.challenges import cache, store
from studyhub.challenges.catalog import (
    ActivityType,
    ChallengeTemplate,
    ProgressRule,
    next_progress,
    select_templates,
    with_quiz_count,
)
from studyhub.challenges.content_generator import ContentGenerator
from studyhub.challenges.errors import ChallengeNotFoundError, ChallengeStateError
from studyhub.challenges.ranking import compute_final_score, compute_percentile
from studyhub.challenges.schemas import (
    AdminChallengeItem,
    ChallengeCreateRequest,
    ChallengeLeaderboardResponse,
    ChallengeProgressResponse,
    ChallengeQuizResultResponse,
    ChallengeResponse,
    ChallengeStartResponse,
    LeaderboardEntry,
)
from studyhub.challenges.usage import analyze_recent_usage
from studyhub.challenges.windows import (
    CADENCES,
    DAILY,
    HOT,
    MONTHLY,
    WEEKLY,
    Window,
    day_window,
    ensure_utc,
    utcnow,
    window_for,
)
from studyhub.config import Settings, get_settings
from studyhub.db.models import Challenge, ChallengeCompletion
from studyhub.gamification.xp_service import challenge_idempotency_key, grant_xp
from studyhub.users.service import display_name_for, get_user_by_id

logger = logging.getLogger(__name__)

AwardFn = Callable[..., Awaitable[bool]]


@dataclass
class GenerationReport:
    """Outcome of one generation run, by challenge title."""

    cadence: str
    window_start: datetime
    window_end: datetime
    created: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["window_start"] = self.window_start.isoformat()
        data["window_end"] = self.window_end.isoformat()
        return data


def _opt_utc(dt: datetime | None) -> datetime | None:
    return ensure_utc(dt) if dt is not None else None


def challenge_view(
    challenge: Challenge,
    completion: ChallengeCompletion | None = None,
) -> ChallengeResponse:
    """Challenge enriched with one user's progress (defaults when not joined)."""
    view = ChallengeResponse(
        id=challenge.id,
        title=challenge.title,
        description=challenge.description,
        type=challenge.type,
        format=challenge.format,
        template_key=challenge.template_key,
        progress_rule=challenge.progress_rule,
        target=challenge.target,
        reward=challenge.reward,
        start_date=ensure_utc(challenge.start_date),
        end_date=ensure_utc(challenge.end_date),
        created_at=ensure_utc(challenge.created_at),
        quiz_ids=[cq.quiz_id for cq in challenge.quizzes],
    )
    if completion is not None:
        view.joined = True
        view.progress = completion.progress
        view.completed = completion.completed
        view.completed_at = _opt_utc(completion.completed_at)
        view.current_quiz_index = completion.current_quiz_index
        view.final_score = completion.final_score
        view.percentile = completion.percentile
    return view


class ChallengeEngine:
    """Orchestrates challenge workflows over one session and Redis client."""

    def __init__(
        self,
        db: AsyncSession,
        redis: aioredis.Redis | None,
        *,
        generator: ContentGenerator | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
        award_xp: AwardFn = grant_xp,
    ) -> None:
        self.db = db
        self.redis = redis
        self.generator = generator
        self.settings = settings or get_settings()
        self.clock = clock
        self.award_xp = award_xp

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_daily(self, window_start: datetime | None = None) -> GenerationReport:
        return await self.generate(DAILY, window_start)

    async def generate_weekly(self, window_start: datetime | None = None) -> GenerationReport:
        return await self.generate(WEEKLY, window_start)

    async def generate_monthly(self, window_start: datetime | None = None) -> GenerationReport:
        return await self.generate(MONTHLY, window_start)

    async def generate_hot(self, window_start: datetime | None = None) -> GenerationReport:
        return await self.generate(HOT, window_start)

    async def generate(self, cadence: str, window_start: datetime | None = None) -> GenerationReport:
        """Instantiate the catalog's templates for one cadence window.

        Templates whose title or template key already exists in the window
        are skipped, so a topic template generated earlier in the day is not
        joined by a second one when the popular topic shifts.

        New rows land in a single insert-or-skip batch; if that batch
        fails, nothing from this run is kept and the error propagates.
        """
        if cadence not in CADENCES:
            raise ChallengeStateError(f"Unknown cadence: {cadence}")

        now = self._now()
        window = window_for(cadence, ensure_utc(window_start) if window_start else now,
                            self.settings.challenge_hot_window_hours)
        report = GenerationReport(cadence=cadence, window_start=window.start, window_end=window.end)

        existing_titles, existing_templates = await store.existing_keys(self.db, cadence, window)

        usage = None
        if cadence == DAILY:
            usage = await analyze_recent_usage(
                self.db,
                now,
                days=self.settings.challenge_usage_window_days,
                top_n=self.settings.challenge_popular_topics_limit,
            )

        rows: list[dict[str, Any]] = []
        quiz_paths: dict[str, list[str]] = {}
        titles: dict[str, str] = {}

        for template in select_templates(cadence, window.start, usage):
            key = store.title_key(template.title)
            if key in existing_titles or key in titles or template.key in existing_templates:
                report.skipped.append(template.title)
                continue

            if template.requires_quiz:
                quiz_id = await self._materialize_quiz(template)
                if quiz_id is None:
                    report.failed.append(template.title)
                    continue
                template = with_quiz_count(template, 1)
                quiz_paths[key] = [quiz_id]

            rows.append(store.challenge_row(template, window, now))
            titles[key] = template.title

        if not rows:
            logger.info(
                "No new %s challenges for window %s (skipped=%d failed=%d)",
                cadence, window.start.isoformat(), len(report.skipped), len(report.failed),
            )
            return report

        try:
            inserted = await store.insert_challenges(self.db, rows, quiz_paths)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(
                "Failed to persist %s challenges for window %s; not created: %s",
                cadence, window.start.isoformat(), ", ".join(titles.values()),
            )
            raise

        for key, title in titles.items():
            # Rows that lost a race with a concurrent trigger were skipped by the insert.
            if key in inserted:
                report.created.append(title)
            else:
                report.skipped.append(title)

        logger.info(
            "Generated %s challenges for window %s: created=%s skipped=%s failed=%s",
            cadence, window.start.isoformat(), report.created, report.skipped, report.failed,
        )
        return report

    async def _materialize_quiz(self, template: ChallengeTemplate) -> str | None:
        """Generate and store the quiz backing a topic template, or None on failure."""
        if self.generator is None:
            logger.warning("No content generator configured, skipping '%s'", template.title)
            return None

        attempts = 1 + max(0, self.settings.challenge_generation_retries)
        for attempt in range(1, attempts + 1):
            try:
                payload = await self.generator.generate_quiz(
                    topic=template.topic or template.title,
                    difficulty=template.difficulty or "medium",
                    number_of_questions=self.settings.challenge_quiz_question_count,
                    quiz_type="standard",
                )
                return await create_quiz(
                    self.db,
                    title=payload["title"],
                    topic=payload["topic"],
                    difficulty=template.difficulty or "medium",
                    questions=payload["questions"],
                    is_challenge_quiz=True,
                )
            except Exception:
                logger.warning(
                    "Quiz generation for '%s' failed (attempt %d/%d)",
                    template.title, attempt, attempts, exc_info=True,
                )
        logger.error("Skipping '%s': quiz generation failed after %d attempts", template.title, attempts)
        return None

    async def clear_daily_challenges(self) -> int:
        """Delete today's daily challenges (and their completions)."""
        deleted = await store.delete_in_window(self.db, DAILY, day_window(self._now()))
        await self.db.commit()
        await cache.invalidate_everyone(self.redis)
        logger.info("Cleared %d daily challenges", deleted)
        return deleted

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def get_all_active(self, user_id: int) -> list[dict[str, Any]]:
        """Every challenge open right now with this user's progress."""
        key = cache.all_key(user_id)
        cached = await cache.read(self.redis, key)
        if cached is not None:
            return cached

        challenges = await store.list_active(self.db, self._now())
        completions = await store.completions_for_user(self.db, user_id, (c.id for c in challenges))
        data = [
            challenge_view(c, completions.get(c.id)).model_dump(mode="json")
            for c in challenges
        ]
        await cache.write(self.redis, key, data, self.settings.challenge_all_cache_ttl_seconds)
        return data

    async def get_today(self, user_id: int) -> list[dict[str, Any]]:
        """Today's daily challenges, auto-enrolling the user in each."""
        now = self._now()
        key = cache.today_key(user_id, now)
        cached = await cache.read(self.redis, key)
        if cached is not None:
            return cached

        challenges = await store.list_in_window(self.db, DAILY, day_window(now))
        ids = [c.id for c in challenges]
        completions = await store.completions_for_user(self.db, user_id, ids)
        missing = [cid for cid in ids if cid not in completions]
        if missing:
            created = await store.ensure_completions(self.db, user_id, missing, now)
            await self.db.commit()
            logger.info("Auto-enrolled user %d in %d daily challenges", user_id, len(created))
            completions = await store.completions_for_user(self.db, user_id, ids)

        data = [challenge_view(c, completions.get(c.id)).model_dump(mode="json") for c in challenges]
        await cache.write(self.redis, key, data, cache.today_ttl(now))
        return data

    # ------------------------------------------------------------------
    # Enrolment
    # ------------------------------------------------------------------

    async def _require_challenge(self, challenge_id: str) -> Challenge:
        challenge = await store.get_challenge(self.db, challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError("Challenge not found")
        return challenge

    @staticmethod
    def _ensure_open(challenge: Challenge, now: datetime) -> None:
        if now < ensure_utc(challenge.start_date):
            raise ChallengeStateError("Challenge has not started yet")
        if now >= ensure_utc(challenge.end_date):
            raise ChallengeStateError("Challenge has expired")

    async def join(self, challenge_id: str, user_id: int) -> dict[str, Any]:
        """Join an open challenge. Joining twice returns the existing record."""
        challenge = await self._require_challenge(challenge_id)
        now = self._now()
        self._ensure_open(challenge, now)

        completion, created = await store.get_or_create_completion(self.db, challenge_id, user_id, now)
        await self.db.commit()

        if created:
            logger.info("User %d joined challenge %s", user_id, challenge_id)
            await cache.invalidate_user(self.redis, user_id, now)
        return challenge_view(challenge, completion).model_dump(mode="json")

    async def leave(self, challenge_id: str, user_id: int) -> None:
        """Abandon an untouched join."""
        completion = await store.get_completion(self.db, challenge_id, user_id, for_update=True)
        if completion is None:
            raise ChallengeNotFoundError("You have not joined this challenge")
        if completion.completed:
            raise ChallengeStateError("Challenge already completed")
        if completion.progress > 0:
            raise ChallengeStateError("Cannot leave a challenge after making progress")

        await store.delete_completion(self.db, completion)
        await self.db.commit()
        logger.info("User %d left challenge %s", user_id, challenge_id)
        await cache.invalidate_user(self.redis, user_id, self._now())

    async def start_challenge(self, challenge_id: str, user_id: int) -> dict[str, Any]:
        """Begin (or resume) a quiz path challenge."""
        challenge = await self._require_challenge(challenge_id)
        quiz_ids = [cq.quiz_id for cq in challenge.quizzes]
        if not quiz_ids:
            raise ChallengeStateError("Challenge has no quizzes")

        now = self._now()
        self._ensure_open(challenge, now)
        completion, created = await store.get_or_create_completion(self.db, challenge_id, user_id, now)
        await self.db.commit()
        if created:
            await cache.invalidate_user(self.redis, user_id, now)

        index = completion.current_quiz_index
        return ChallengeStartResponse(
            challenge_id=challenge.id,
            quiz_ids=quiz_ids,
            current_quiz_index=index,
            total_quizzes=len(quiz_ids),
            next_quiz_id=quiz_ids[index] if index < len(quiz_ids) else None,
            completed=completion.completed,
        ).model_dump(mode="json")

    # ------------------------------------------------------------------
    # Progress & completion
    # ------------------------------------------------------------------

    async def _award(self, user_id: int, challenge: Challenge) -> None:
        """Grant the challenge reward. Failures are logged, never raised."""
        try:
            async with self.db.begin_nested():
                await self.award_xp(
                    self.db,
                    self.redis,
                    user_id,
                    challenge.reward,
                    "challenge",
                    challenge.id,
                    f"Completed challenge: {challenge.title}",
                    challenge_idempotency_key(challenge.id, user_id),
                )
        except Exception:
            logger.exception(
                "Failed to award %d XP to user %d for challenge %s",
                challenge.reward, user_id, challenge.id,
            )

    async def update_progress(
        self,
        user_id: int,
        activity_type: str,
        is_perfect_score: bool = False,
    ) -> list[str]:
        """Apply one quiz or flashcard activity to every open challenge.

        Returns the ids of challenges completed by this activity.
        """
        try:
            activity = ActivityType(activity_type)
        except ValueError:
            raise ChallengeStateError(f"Unknown activity type: {activity_type}") from None

        now = self._now()

        changed = False
        todays = await store.list_in_window(self.db, DAILY, day_window(now))
        if todays:
            enrolled = await store.ensure_completions(self.db, user_id, [c.id for c in todays], now)
            # New daily enrolments change the cached joined flags.
            changed = bool(enrolled)

        completed: list[Challenge] = []
        for completion, challenge in await store.open_completions(self.db, user_id, now):
            proposed = next_progress(
                challenge.progress_rule,
                current=completion.progress,
                target=challenge.target,
                increment=challenge.increment,
                required_activity=challenge.activity_type,
                activity=activity,
                is_perfect_score=is_perfect_score,
                last_activity_at=_opt_utc(completion.last_activity_at),
                now=now,
            )
            if proposed is None:
                continue

            new_progress = max(completion.progress, min(proposed, challenge.target))
            if new_progress == completion.progress and new_progress < challenge.target:
                continue

            completion.progress = new_progress
            completion.last_activity_at = now
            changed = True

            if new_progress >= challenge.target:
                completion.completed = True
                completion.completed_at = now
                completed.append(challenge)

        await self.db.flush()
        for challenge in completed:
            await self._award(user_id, challenge)
        await self.db.commit()

        if changed:
            logger.info(
                "Progress for user %d after %s: %d challenges completed",
                user_id, activity.value, len(completed),
            )
            await cache.invalidate_user(self.redis, user_id, now)
        return [c.id for c in completed]

    async def complete_quiz_in_challenge(
        self,
        challenge_id: str,
        quiz_id: str,
        user_id: int,
        *,
        score: int,
        total_questions: int,
        attempt_id: str | None = None,
    ) -> dict[str, Any]:
        """Record one quiz of a path and finish the challenge after the last one.

        The final score is recomputed from the whole attempt log.
        """
        if total_questions < 1 or score < 0 or score > total_questions:
            raise ChallengeStateError("Score must be between 0 and the number of questions")

        challenge = await self._require_challenge(challenge_id)
        completion = await store.get_completion(self.db, challenge_id, user_id, for_update=True)
        if completion is None:
            raise ChallengeNotFoundError("Start the challenge before completing its quizzes")
        if completion.completed:
            raise ChallengeStateError("Challenge already completed")

        quiz_ids = [cq.quiz_id for cq in challenge.quizzes]
        if quiz_id not in quiz_ids:
            raise ChallengeStateError("Quiz is not part of this challenge")
        if completion.current_quiz_index >= len(quiz_ids) or quiz_ids[completion.current_quiz_index] != quiz_id:
            raise ChallengeStateError("Complete the challenge quizzes in order")

        now = self._now()
        attempts = list(completion.quiz_attempts or [])
        attempts.append({
            "quiz_id": quiz_id,
            "score": score,
            "total_questions": total_questions,
            "attempt_id": attempt_id,
            "completed_at": now.isoformat(),
        })
        completion.quiz_attempts = attempts
        completion.current_quiz_index += 1
        completion.progress = max(completion.progress, min(completion.current_quiz_index, challenge.target))
        completion.last_activity_at = now

        total = len(quiz_ids)
        if completion.current_quiz_index >= total:
            final_score = compute_final_score(attempts)
            lower, others = await store.percentile_counts(self.db, challenge_id, user_id, final_score)
            completion.final_score = final_score
            completion.percentile = compute_percentile(lower, others)
            completion.progress = challenge.target
            completion.completed = True
            completion.completed_at = now
            await self.db.flush()
            await self._award(user_id, challenge)
            logger.info(
                "User %d finished challenge %s: score=%d percentile=%d",
                user_id, challenge_id, final_score, completion.percentile,
            )

        await self.db.commit()
        await cache.invalidate_user(self.redis, user_id, now)

        index = completion.current_quiz_index
        return ChallengeQuizResultResponse(
            challenge_id=challenge_id,
            current_quiz_index=index,
            total_quizzes=total,
            next_quiz_id=quiz_ids[index] if index < total else None,
            completed=completion.completed,
            final_score=completion.final_score,
            percentile=completion.percentile,
        ).model_dump(mode="json")

    async def complete_challenge(self, challenge_id: str, user_id: int) -> dict[str, Any]:
        """Claim completion of a progress-style challenge whose target is met."""
        challenge = await self._require_challenge(challenge_id)
        completion = await store.get_completion(self.db, challenge_id, user_id, for_update=True)
        if completion is None:
            raise ChallengeNotFoundError("You have not joined this challenge")
        if completion.completed:
            raise ChallengeStateError("Challenge already completed")
        if completion.progress < challenge.target:
            raise ChallengeStateError("Challenge requirements not met")

        now = self._now()
        completion.completed = True
        completion.completed_at = now
        await self.db.flush()
        await self._award(user_id, challenge)
        await self.db.commit()
        logger.info("User %d completed challenge %s", user_id, challenge_id)
        await cache.invalidate_user(self.redis, user_id, now)
        return challenge_view(challenge, completion).model_dump(mode="json")

    # ------------------------------------------------------------------
    # Leaderboard & progress
    # ------------------------------------------------------------------

    async def get_leaderboard(self, challenge_id: str, user_id: int) -> dict[str, Any]:
        """Top scored completions plus the caller's own true rank."""
        await self._require_challenge(challenge_id)

        rows = await store.leaderboard_rows(self.db, challenge_id, self.settings.challenge_leaderboard_size)
        entries = [
            LeaderboardEntry(
                rank=idx + 1,
                user_id=row["user_id"],
                display_name=display_name_for(row["user"]),
                final_score=row["final_score"],
                percentile=row["percentile"],
                completed_at=_opt_utc(row["completed_at"]),
            )
            for idx, row in enumerate(rows)
        ]

        user_entry = None
        mine = await store.get_completion(self.db, challenge_id, user_id)
        if mine is not None and mine.completed and mine.final_score is not None:
            me = await get_user_by_id(self.db, user_id)
            higher = await store.count_higher(self.db, challenge_id, mine.final_score)
            user_entry = LeaderboardEntry(
                rank=higher + 1,
                user_id=user_id,
                display_name=display_name_for(me) if me is not None else str(user_id),
                final_score=mine.final_score,
                percentile=mine.percentile,
                completed_at=_opt_utc(mine.completed_at),
            )

        return ChallengeLeaderboardResponse(
            challenge_id=challenge_id,
            entries=entries,
            total_participants=await store.count_scored(self.db, challenge_id),
            user_entry=user_entry,
        ).model_dump(mode="json")

    async def get_progress(self, challenge_id: str, user_id: int) -> dict[str, Any]:
        challenge = await self._require_challenge(challenge_id)
        completion = await store.get_completion(self.db, challenge_id, user_id)
        total = len(challenge.quizzes)
        if completion is None:
            return ChallengeProgressResponse(
                challenge_id=challenge_id,
                joined=False,
                progress=0,
                target=challenge.target,
                completed=False,
                current_quiz_index=0,
                total_quizzes=total,
            ).model_dump(mode="json")

        return ChallengeProgressResponse(
            challenge_id=challenge_id,
            joined=True,
            progress=completion.progress,
            target=challenge.target,
            completed=completion.completed,
            completed_at=_opt_utc(completion.completed_at),
            current_quiz_index=completion.current_quiz_index,
            total_quizzes=total,
            quiz_attempts=completion.quiz_attempts or [],
            final_score=completion.final_score,
            percentile=completion.percentile,
        ).model_dump(mode="json")

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    async def list_challenges(
        self,
        *,
        search: str | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> dict[str, Any]:
        rows, total = await store.search_challenges(self.db, search=search, page=page, per_page=per_page)
        data = [
            AdminChallengeItem(
                **challenge_view(challenge).model_dump(),
                completion_count=count,
            ).model_dump(mode="json")
            for challenge, count in rows
        ]
        return {
            "data": data,
            "meta": {
                "total": total,
                "page": page,
                "per_page": per_page,
                "total_pages": math.ceil(total / per_page) if per_page else 0,
            },
        }

    async def create_challenge(self, request: ChallengeCreateRequest) -> dict[str, Any]:
        """Create a challenge by hand, optionally as an ordered quiz path."""
        start, end = ensure_utc(request.start_date), ensure_utc(request.end_date)
        if start >= end:
            raise ChallengeStateError("Challenge must end after it starts")

        for quiz_id in request.quiz_ids:
            if await get_quiz(self.db, quiz_id) is None:
                raise ChallengeNotFoundError(f"Quiz {quiz_id} not found")

        if request.quiz_ids:
            rule = ProgressRule.QUIZ_PATH
            target = len(request.quiz_ids)
        else:
            try:
                rule = ProgressRule(request.progress_rule or ProgressRule.ANY_ACTIVITY.value)
            except ValueError:
                raise ChallengeStateError(f"Unknown progress rule: {request.progress_rule}") from None
            if rule is ProgressRule.QUIZ_PATH:
                raise ChallengeStateError("Challenge has no quizzes")
            target = request.target or 1

        template = ChallengeTemplate(
            key="custom",
            title=request.title.strip(),
            description=request.description,
            cadence=request.type,
            rule=rule,
            target=target,
            reward=request.reward,
            format=request.format,
        )
        row = store.challenge_row(template, Window(start, end), self._now())
        key = row["title_key"]

        try:
            inserted = await store.insert_challenges(self.db, [row], {key: list(request.quiz_ids)})
        except IntegrityError:
            await self.db.rollback()
            raise ChallengeStateError("Challenge could not be created") from None
        if not inserted:
            await self.db.rollback()
            raise ChallengeStateError("A challenge with this title already exists for that window")
        await self.db.commit()

        await cache.invalidate_everyone(self.redis)
        challenge = await self._require_challenge(inserted[key])
        logger.info("Admin created challenge %s (%s)", challenge.id, challenge.title)
        return challenge_view(challenge).model_dump(mode="json")

    async def delete_challenge(self, challenge_id: str) -> None:
        """Delete a challenge; completions and quiz links cascade."""
        if not await store.delete_challenge(self.db, challenge_id):
            raise ChallengeNotFoundError("Challenge not found")
        await self.db.commit()
        await cache.invalidate_everyone(self.redis)
        logger.info("Admin deleted challenge %s", challenge_id)


async def run_progress_update(
    session_factory: async_sessionmaker[AsyncSession],
    redis: aioredis.Redis | None,
    user_id: int,
    activity_type: str,
    is_perfect_score: bool,
) -> None:
    """Background entry point for progress updates after an activity.

    Runs in its own session after the triggering response is sent.
    Failures are logged and never reach the caller.
    """
    try:
        async with session_factory() as db:
            engine = ChallengeEngine(db, redis)
            await engine.update_progress(user_id, activity_type, is_perfect_score)
    except Exception:
        logger.exception(
            "Challenge progress update failed for user %d after %s activity", user_id, activity_type,
        )
