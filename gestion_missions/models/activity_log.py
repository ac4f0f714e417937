"""
Journal des activités utilisateurs
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from gestion_missions.database import Base


class ActivityLog(Base):
    """Journal des actions (connexions, transitions de missions, administration)"""
    __tablename__ = "activity_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Utilisateur
    user_id: Mapped[str] = mapped_column(String(50), index=True)

    # Action
    action_type: Mapped[str] = mapped_column(String(50), index=True)  # MISSION_CREATE, MISSION_STATUS, LOGIN...
    entity_type: Mapped[Optional[str]] = mapped_column(String(50))  # mission, vehicle, user
    entity_id: Mapped[Optional[str]] = mapped_column(String(50))

    # Détails
    details: Mapped[Optional[dict]] = mapped_column(JSON)
    before_state: Mapped[Optional[dict]] = mapped_column(JSON)
    after_state: Mapped[Optional[dict]] = mapped_column(JSON)

    # Contexte
    client_ip: Mapped[Optional[str]] = mapped_column(String(50))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    __table_args__ = (
        Index('ix_activity_user_date', 'user_id', 'created_at'),
        Index('ix_activity_type_date', 'action_type', 'created_at'),
    )

    def __repr__(self):
        return f"<ActivityLog(id={self.id}, user='{self.user_id}', action='{self.action_type}')>"
