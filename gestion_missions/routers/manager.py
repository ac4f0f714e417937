"""
Routes de validation des missions (espace manager)
"""

from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gestion_missions.dependencies import get_mission_service, get_query_service, require_role
from gestion_missions.models import User, Role
from gestion_missions.services import MissionService, MissionQueryService

router = APIRouter(prefix="/manager", tags=["Manager"])


# ============== Schémas Pydantic ==============

class MissionStatusUpdate(BaseModel):
    """Décision du manager"""
    statut: Optional[str] = None  # Validée ou Refusée


class PendingMission(BaseModel):
    """Mission en attente d'un collaborateur"""
    id: str
    user_id: str
    nom_et_prenom: str
    departement: Optional[str] = None
    vehicule_id: Optional[str] = None
    vehicule: str
    immatriculation: Optional[str] = None
    depart: str
    destination: str
    date_mission: date
    date_sortie: date
    date_retour: date
    objet: str
    frais_de_mission: float
    statut: str
    statut_remb: str


# ============== Endpoints ==============

@router.get("/missions/en-attente", response_model=List[PendingMission])
async def list_pending_missions(
    manager_id: Optional[str] = Query(None, description="Identifiant du manager"),
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.MANAGER, Role.ADMIN))
):
    """Missions 'En attente' des collaborateurs dont le manager est `manager_id`"""
    return await queries.pending_for_manager(current_user, manager_id)


@router.put("/missions/{mission_id}/statut")
async def update_mission_status(
    mission_id: str,
    status_data: MissionStatusUpdate,
    service: MissionService = Depends(get_mission_service),
    current_user: User = Depends(require_role(Role.MANAGER))
):
    """
    Valide ou refuse une mission.

    Pour une voiture de service: 'Validée' met le véhicule 'En mission',
    'Refusée' le rend 'Disponible'.
    """
    mission = await service.set_mission_status(current_user, mission_id, status_data.statut)
    return {"success": True, "mission_id": mission.id, "statut": mission.statut}
