"""Challenges API: auth, discovery, enrolment, quiz paths and leaderboards."""

import pytest
from httpx import AsyncClient

from studyhub.auth.jwt import create_access_token
from studyhub.challenges.catalog import ProgressRule
from studyhub.db.models import User


class TestAuth:
    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient):
        response = await client.get("/api/v1/challenges")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_rejects_bad_token(self, client: AsyncClient):
        response = await client.get("/api/v1/challenges", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient):
        token = create_access_token(user_id=424242)
        response = await client.get("/api/v1/challenges", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["detail"] == "User not found"

    @pytest.mark.asyncio
    async def test_banned_user(self, client: AsyncClient, make_user, auth_headers, session_factory):
        user = await make_user()
        async with session_factory() as session:
            row = await session.get(User, user.id)
            row.is_banned = True
            await session.commit()

        response = await client.get("/api/v1/challenges", headers=auth_headers(user))
        assert response.status_code == 403


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_today_auto_enrols(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        await live_challenge("Quiz Sprint")
        await live_challenge("Tomorrow Sprint", days_offset=1)
        user = await make_user()

        response = await client.get("/api/v1/challenges/today", headers=auth_headers(user))

        assert response.status_code == 200
        data = response.json()
        assert [c["title"] for c in data] == ["Quiz Sprint"]
        assert data[0]["joined"] is True
        assert data[0]["progress"] == 0

    @pytest.mark.asyncio
    async def test_all_active(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        await live_challenge("Quiz Sprint")
        await live_challenge("Weekly Warrior", cadence="weekly")
        await live_challenge("Old Sprint", days_offset=-1)
        user = await make_user()

        response = await client.get("/api/v1/challenges", headers=auth_headers(user))

        assert response.status_code == 200
        assert {c["title"] for c in response.json()} == {"Quiz Sprint", "Weekly Warrior"}


class TestEnrolment:
    @pytest.mark.asyncio
    async def test_join_and_leave(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Weekly Warrior", cadence="weekly")
        user = await make_user()
        headers = auth_headers(user)

        joined = await client.post(f"/api/v1/challenges/{challenge.id}/join", headers=headers)
        assert joined.status_code == 200
        assert joined.json()["joined"] is True

        again = await client.post(f"/api/v1/challenges/{challenge.id}/join", headers=headers)
        assert again.status_code == 200

        left = await client.post(f"/api/v1/challenges/{challenge.id}/leave", headers=headers)
        assert left.status_code == 200
        assert left.json() == {"status": "left", "challenge_id": challenge.id}

    @pytest.mark.asyncio
    async def test_join_unknown(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post("/api/v1/challenges/nope/join", headers=auth_headers(user))
        assert response.status_code == 404
        assert response.json()["detail"] == "Challenge not found"

    @pytest.mark.asyncio
    async def test_join_future_and_expired_have_distinct_reasons(
        self, client: AsyncClient, make_user, auth_headers, live_challenge,
    ):
        future = await live_challenge("Future Sprint", days_offset=1)
        past = await live_challenge("Past Sprint", days_offset=-1)
        headers = auth_headers(await make_user())

        early = await client.post(f"/api/v1/challenges/{future.id}/join", headers=headers)
        late = await client.post(f"/api/v1/challenges/{past.id}/join", headers=headers)

        assert early.status_code == 400
        assert early.json()["detail"] == "Challenge has not started yet"
        assert late.status_code == 400
        assert late.json()["detail"] == "Challenge has expired"

    @pytest.mark.asyncio
    async def test_leave_without_join(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Weekly Warrior", cadence="weekly")
        response = await client.post(
            f"/api/v1/challenges/{challenge.id}/leave", headers=auth_headers(await make_user()),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_complete_before_target(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Weekly Warrior", cadence="weekly", target=3)
        headers = auth_headers(await make_user())
        await client.post(f"/api/v1/challenges/{challenge.id}/join", headers=headers)

        response = await client.post(f"/api/v1/challenges/{challenge.id}/complete", headers=headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Challenge requirements not met"


class TestQuizPath:
    @pytest.mark.asyncio
    async def test_full_path(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Geography Path", quiz_count=2, reward=200)
        quiz_ids = [link.quiz_id for link in challenge.quizzes]
        user = await make_user(display_name="Explorer")
        headers = auth_headers(user)

        started = await client.post(f"/api/v1/challenges/{challenge.id}/start", headers=headers)
        assert started.status_code == 200
        assert started.json()["next_quiz_id"] == quiz_ids[0]

        out_of_order = await client.post(
            f"/api/v1/challenges/{challenge.id}/quizzes/{quiz_ids[1]}/complete",
            json={"score": 5, "total_questions": 5},
            headers=headers,
        )
        assert out_of_order.status_code == 400

        first = await client.post(
            f"/api/v1/challenges/{challenge.id}/quizzes/{quiz_ids[0]}/complete",
            json={"score": 4, "total_questions": 5, "attempt_id": "a-1"},
            headers=headers,
        )
        assert first.json()["next_quiz_id"] == quiz_ids[1]

        last = await client.post(
            f"/api/v1/challenges/{challenge.id}/quizzes/{quiz_ids[1]}/complete",
            json={"score": 5, "total_questions": 5},
            headers=headers,
        )
        body = last.json()
        assert body["completed"] is True
        assert body["final_score"] == 90
        assert body["percentile"] == 100

        progress = (await client.get(f"/api/v1/challenges/{challenge.id}/progress", headers=headers)).json()
        assert progress["completed"] is True
        assert len(progress["quiz_attempts"]) == 2

        board = (await client.get(f"/api/v1/challenges/{challenge.id}/leaderboard", headers=headers)).json()
        assert board["entries"][0]["display_name"] == "Explorer"
        assert board["user_entry"]["rank"] == 1

        me = (await client.get("/api/v1/users/me", headers=headers)).json()
        assert me["total_xp"] == 200
        assert me["level"] == 2

    @pytest.mark.asyncio
    async def test_score_above_total_is_rejected(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Geography Path", quiz_count=1)
        headers = auth_headers(await make_user())
        await client.post(f"/api/v1/challenges/{challenge.id}/start", headers=headers)

        response = await client.post(
            f"/api/v1/challenges/{challenge.id}/quizzes/{challenge.quizzes[0].quiz_id}/complete",
            json={"score": 6, "total_questions": 5},
            headers=headers,
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"

    @pytest.mark.asyncio
    async def test_start_progress_challenge(self, client: AsyncClient, make_user, auth_headers, live_challenge):
        challenge = await live_challenge("Quiz Sprint", rule=ProgressRule.QUIZ_COUNT)
        response = await client.post(
            f"/api/v1/challenges/{challenge.id}/start", headers=auth_headers(await make_user()),
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Challenge has no quizzes"
