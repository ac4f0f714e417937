"""
Routes d'administration: journal d'activité
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from gestion_missions.database import get_db
from gestion_missions.dependencies import require_role
from gestion_missions.exceptions import ValidationError
from gestion_missions.models import User, Role, ActivityLog

router = APIRouter(prefix="/admin", tags=["Administration"])


def _parse_day(value: str, label: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{label} invalide: {value}")


@router.get("/logs")
async def get_activity_logs(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: Optional[str] = None,
    action_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    date_start: Optional[str] = None,
    date_end: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Récupère les logs d'activité avec filtres"""
    filters = []
    if user_id:
        filters.append(ActivityLog.user_id == user_id)
    if action_type:
        filters.append(ActivityLog.action_type == action_type)
    if entity_id:
        filters.append(ActivityLog.entity_id == entity_id)
    if date_start:
        filters.append(ActivityLog.created_at >= _parse_day(date_start, "date_start"))
    if date_end:
        filters.append(ActivityLog.created_at <= _parse_day(date_end + "T23:59:59", "date_end"))

    # Total count
    total_result = await db.execute(
        select(func.count()).select_from(ActivityLog).where(*filters)
    )
    total = total_result.scalar()

    # Paginated results
    result = await db.execute(
        select(ActivityLog)
        .where(*filters)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
        .offset(offset)
        .limit(limit)
    )
    logs = result.scalars().all()

    return {
        "total": total,
        "logs": [
            {
                "id": log.id,
                "user_id": log.user_id,
                "action_type": log.action_type,
                "entity_type": log.entity_type,
                "entity_id": log.entity_id,
                "client_ip": log.client_ip,
                "details": log.details,
                "before_state": log.before_state,
                "after_state": log.after_state,
                "created_at": log.created_at.isoformat() if log.created_at else None
            }
            for log in logs
        ]
    }
