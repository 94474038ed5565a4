"""Initial schema: users, quizzes, challenges and the XP ledger.

Creates users, quizzes, quiz_attempts, challenges, challenge_quizzes,
challenge_completions, xp_ledger and user_gamification. The unique
constraints on challenges(type, title_key, start_date) and
challenge_completions(challenge_id, user_id) back the insert-or-skip
paths used by generation and enrolment.

Revision ID: 001_challenge_engine
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_challenge_engine"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id BIGSERIAL PRIMARY KEY,
            email VARCHAR(320) UNIQUE NOT NULL,
            display_name VARCHAR(64),
            role VARCHAR(16) NOT NULL DEFAULT 'user',
            is_banned BOOLEAN DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Quizzes ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS quizzes (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(256) NOT NULL,
            topic VARCHAR(128) NOT NULL,
            difficulty VARCHAR(16) NOT NULL DEFAULT 'medium',
            quiz_type VARCHAR(16) NOT NULL DEFAULT 'standard',
            questions JSONB NOT NULL DEFAULT '[]',
            is_challenge_quiz BOOLEAN DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS quiz_attempts (
            id VARCHAR(36) PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            quiz_id VARCHAR(36) REFERENCES quizzes(id) ON DELETE SET NULL,
            activity_type VARCHAR(16) NOT NULL DEFAULT 'quiz',
            score INTEGER NOT NULL DEFAULT 0,
            total_questions INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_quiz_attempts_created_at
        ON quiz_attempts(created_at)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user_id
        ON quiz_attempts(user_id)
    """)

    # --- Challenges ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS challenges (
            id VARCHAR(36) PRIMARY KEY,
            title VARCHAR(128) NOT NULL,
            title_key VARCHAR(128) NOT NULL,
            description TEXT NOT NULL,
            type VARCHAR(16) NOT NULL,
            format VARCHAR(16) NOT NULL DEFAULT 'standard',
            template_key VARCHAR(64) NOT NULL,
            progress_rule VARCHAR(32) NOT NULL,
            activity_type VARCHAR(16),
            target INTEGER NOT NULL,
            increment INTEGER NOT NULL DEFAULT 1,
            reward INTEGER NOT NULL,
            start_date TIMESTAMPTZ NOT NULL,
            end_date TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT challenges_type_title_key_start_date_key UNIQUE (type, title_key, start_date),
            CONSTRAINT ck_challenges_window_check CHECK (start_date < end_date)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenges_window
        ON challenges(start_date, end_date)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenges_type
        ON challenges(type)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS challenge_quizzes (
            id BIGSERIAL PRIMARY KEY,
            challenge_id VARCHAR(36) NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            quiz_id VARCHAR(36) NOT NULL REFERENCES quizzes(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            CONSTRAINT challenge_quizzes_challenge_id_position_key UNIQUE (challenge_id, position)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS challenge_completions (
            id VARCHAR(36) PRIMARY KEY,
            challenge_id VARCHAR(36) NOT NULL REFERENCES challenges(id) ON DELETE CASCADE,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            progress INTEGER NOT NULL DEFAULT 0,
            completed BOOLEAN NOT NULL DEFAULT false,
            completed_at TIMESTAMPTZ,
            current_quiz_index INTEGER NOT NULL DEFAULT 0,
            quiz_attempts JSONB NOT NULL DEFAULT '[]',
            final_score INTEGER,
            percentile INTEGER,
            last_activity_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT challenge_completions_challenge_id_user_id_key UNIQUE (challenge_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenge_completions_user_id
        ON challenge_completions(user_id)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenge_completions_completed
        ON challenge_completions(completed)
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_challenge_completions_leaderboard
        ON challenge_completions(challenge_id, final_score DESC, completed_at ASC)
        WHERE completed = true
    """)

    # --- XP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id BIGINT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            description VARCHAR(256),
            created_at TIMESTAMPTZ DEFAULT NOW(),
            idempotency_key VARCHAR(256) UNIQUE
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_xp_ledger_user
        ON xp_ledger(user_id)
    """)

    # --- User Gamification (denormalized) ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_gamification (
            user_id BIGINT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
            total_xp BIGINT NOT NULL DEFAULT 0,
            level INTEGER NOT NULL DEFAULT 1,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS user_gamification CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS challenge_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS challenge_quizzes CASCADE")
    op.execute("DROP TABLE IF EXISTS challenges CASCADE")
    op.execute("DROP TABLE IF EXISTS quiz_attempts CASCADE")
    op.execute("DROP TABLE IF EXISTS quizzes CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
