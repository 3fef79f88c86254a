"""ORM model for user accounts."""

from sqlalchemy import JSON, Column, DateTime, Enum, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB

from accounts.models.base import Base
from accounts.schemas.user import Role


class User(Base):
    """
    User account row.

    username and email are each unique (unique indexes, enforced by the store).
    role: 'user' or 'admin', stored as text with a CHECK constraint.
    password_hash holds the bcrypt output only, never the plain password.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            create_constraint=True,
            length=32,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=Role.USER,
        server_default=Role.USER.value,
    )
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
