"""
Create users, user_roles, reports, notifications, internal_comments and messages

Revision ID: 001_participium_tables
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op

revision = "001_participium_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        username VARCHAR(255) NOT NULL UNIQUE,
        email VARCHAR(255),
        name VARCHAR(255),
        surname VARCHAR(255),
        user_type VARCHAR(32) NOT NULL DEFAULT 'citizen',
        password_hash VARCHAR(255),
        mail_notifications BOOLEAN NOT NULL DEFAULT true,
        created_at TIMESTAMPTZ DEFAULT now(),
        updated_at TIMESTAMPTZ,
        CONSTRAINT chk_users_user_type CHECK (user_type IN ('citizen', 'admin', 'municipality_user'))
    )
    """
    )

    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS user_roles (
        user_id INTEGER NOT NULL REFERENCES users(id),
        role VARCHAR(64) NOT NULL,
        created_at TIMESTAMPTZ DEFAULT now(),
        PRIMARY KEY (user_id, role)
    )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_roles_role ON user_roles (role)")

    # technical_office and rejection_reason are never both set
    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS reports (
        id SERIAL PRIMARY KEY,
        user_id INTEGER REFERENCES users(id),
        latitude DOUBLE PRECISION NOT NULL,
        longitude DOUBLE PRECISION NOT NULL,
        title VARCHAR NOT NULL,
        description TEXT NOT NULL,
        category VARCHAR(64) NOT NULL,
        photos JSON NOT NULL,
        status VARCHAR(16) NOT NULL DEFAULT 'pending',
        rejection_reason TEXT,
        technical_office VARCHAR(64),
        officer_id INTEGER REFERENCES users(id),
        external_maintainer_id INTEGER REFERENCES users(id),
        created_at TIMESTAMPTZ DEFAULT now(),
        updated_at TIMESTAMPTZ DEFAULT now(),
        CONSTRAINT chk_reports_latitude CHECK (latitude BETWEEN -90 AND 90),
        CONSTRAINT chk_reports_longitude CHECK (longitude BETWEEN -180 AND 180),
        CONSTRAINT chk_reports_status CHECK (status IN ('pending', 'assigned', 'rejected', 'progress', 'suspended', 'resolved')),
        CONSTRAINT chk_reports_reason_or_office CHECK (rejection_reason IS NULL OR technical_office IS NULL)
    )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_reports_user_id ON reports (user_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_reports_status ON reports (status)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_reports_officer_id ON reports (officer_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_reports_external_maintainer_id ON reports (external_maintainer_id)")

    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS notifications (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        report_id INTEGER REFERENCES reports(id),
        title VARCHAR NOT NULL,
        message TEXT NOT NULL,
        is_read BOOLEAN NOT NULL DEFAULT false,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_notifications_user_id ON notifications (user_id)")

    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS internal_comments (
        id SERIAL PRIMARY KEY,
        report_id INTEGER NOT NULL REFERENCES reports(id),
        author_id INTEGER NOT NULL REFERENCES users(id),
        text TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_internal_comments_report_id ON internal_comments (report_id)")

    op.execute(
        r"""
    CREATE TABLE IF NOT EXISTS messages (
        id SERIAL PRIMARY KEY,
        report_id INTEGER NOT NULL REFERENCES reports(id),
        sender_id INTEGER NOT NULL REFERENCES users(id),
        text TEXT NOT NULL,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    """
    )
    op.execute("CREATE INDEX IF NOT EXISTS ix_messages_report_id ON messages (report_id)")

    op.execute("COMMENT ON TABLE reports IS 'Citizen reports and their review/assignment workflow state'")


def downgrade():
    for table in ("messages", "internal_comments", "notifications", "reports", "user_roles", "users"):
        op.execute(f"DROP TABLE IF EXISTS {table}")
