"""
Routes pour le suivi financier des remboursements
"""

from datetime import date
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gestion_missions.dependencies import get_mission_service, get_query_service, require_role
from gestion_missions.models import User, Role
from gestion_missions.services import MissionService, MissionQueryService

router = APIRouter(prefix="/finance", tags=["Finance"])


# ============== Schémas Pydantic ==============

class ReimbursementStatusUpdate(BaseModel):
    """Nouveau statut de remboursement"""
    statut_remb: Optional[str] = None  # En attente, Validée, Refusée, Payé


class ReimbursementLine(BaseModel):
    """Mission vue par la finance, avec totaux recalculés"""
    id: str
    employe: str
    departement: Optional[str] = None
    objet: str
    destination: str
    date_mission: date
    avance: float
    grand_total: float
    difference: float
    kilometrage: Optional[int] = None
    statut: str
    statut_remb: str
    detail_frais: Optional[List[Dict[str, Any]]] = None


# ============== Endpoints ==============

@router.get("/missions/en-attente", response_model=List[ReimbursementLine])
async def list_pending_reimbursements(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.FINANCIER, Role.ADMIN))
):
    """Retours de mission déclarés dont le remboursement est en attente"""
    return await queries.pending_reimbursements(current_user)


@router.get("/missions/historique", response_model=List[ReimbursementLine])
async def get_reimbursement_history(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.FINANCIER, Role.ADMIN))
):
    """
    Historique des remboursements traités.

    - **grand_total**: somme des montants du détail des frais
    - **difference**: grand_total moins l'avance (positif = complément dû à l'employé)
    """
    return await queries.reimbursement_history(current_user)


@router.put("/missions/{mission_id}/statut-remb")
async def update_reimbursement_status(
    mission_id: str,
    status_data: ReimbursementStatusUpdate,
    service: MissionService = Depends(get_mission_service),
    current_user: User = Depends(require_role(Role.FINANCIER))
):
    """Met à jour le statut de remboursement d'une mission"""
    mission = await service.set_reimbursement_status(current_user, mission_id, status_data.statut_remb)
    return {
        "success": True,
        "message": f"Statut de remboursement mis à jour: {mission.statut_remb}",
        "mission_id": mission.id,
        "statut_remb": mission.statut_remb,
    }
