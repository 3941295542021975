"""Local record of connections announced by the integration platform."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from unified_sync.models.base import Base


class UserConnection(Base):
    __tablename__ = "user_connections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    end_user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    provider_config_key: Mapped[str] = mapped_column(String(100), nullable=False)
    connection_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    end_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (UniqueConstraint("end_user_id", "provider_config_key", name="uq_user_connections_user_provider"),)
