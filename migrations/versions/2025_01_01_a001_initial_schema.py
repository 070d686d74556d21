"""Initial schema: SSO identities, login tokens and preferences

Revision ID: a001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === app_sso_providers ===
    op.create_table(
        "app_sso_providers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(64), nullable=False, comment="Provider key used in /sso/<provider> routes"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("client_id", sa.String(255), nullable=False),
        sa.Column("client_secret", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_app_sso_providers_provider", "app_sso_providers", ["provider"], unique=True)

    # === users ===
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("username", sa.String(255), nullable=False, comment="Set from the provider email at creation"),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("roles", postgresql.JSONB(), nullable=False, server_default='["user"]'),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("jsonb_array_length(roles) > 0", name="roles_not_empty"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # === sso_accounts ===
    op.create_table(
        "sso_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "provider_id",
            sa.Uuid(),
            sa.ForeignKey("app_sso_providers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider_user_id", sa.String(255), nullable=False, comment="Subject id issued by the provider"),
        sa.Column("user_info", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("provider_id", "provider_user_id", name="uq_sso_accounts_provider_user"),
    )
    op.create_index("ix_sso_accounts_user_id", "sso_accounts", ["user_id"])

    # === access_tokens ===
    op.create_table(
        "access_tokens",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "sso_account_id",
            sa.Uuid(),
            sa.ForeignKey("sso_accounts.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("access_token", sa.LargeBinary(), nullable=False, comment="Fernet-encrypted provider token"),
        sa.Column("refresh_token", sa.LargeBinary(), nullable=True, comment="Fernet-encrypted provider token"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("login_token", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_access_tokens_login_token", "access_tokens", ["login_token"], unique=True)

    # === preferences ===
    op.create_table(
        "preferences",
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("preferences", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("user_id"),
    )


def downgrade() -> None:
    op.drop_table("preferences")
    op.drop_table("access_tokens")
    op.drop_table("sso_accounts")
    op.drop_table("users")
    op.drop_table("app_sso_providers")
