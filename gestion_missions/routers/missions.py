"""
Routes pour les missions (espace employé)
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from gestion_missions.dependencies import get_current_user, get_mission_service, get_query_service
from gestion_missions.models import User
from gestion_missions.services import MissionService, MissionQueryService

router = APIRouter(prefix="/missions", tags=["Missions"])


# ============== Schémas Pydantic ==============

class MissionCreate(BaseModel):
    """
    Demande de mission. Les champs sont contrôlés par le service afin de
    renvoyer la liste complète des champs manquants.
    """
    user_id: Optional[str] = None
    date_mission: Optional[date] = None
    date_sortie: Optional[date] = None
    heure_sortie: Optional[str] = None
    date_retour: Optional[date] = None
    heure_retour: Optional[str] = None
    depart: Optional[str] = None
    destination: Optional[str] = None
    objet: Optional[str] = None
    frais_de_mission: Optional[float] = 0
    vehicule: Optional[str] = None  # moyen publique, voiture de service, voiture personnelle
    departement: Optional[str] = None
    vehicule_id: Optional[str] = None
    immatriculation: Optional[str] = None


class MissionReturn(BaseModel):
    """Déclaration de retour de mission"""
    user_id: Optional[str] = None
    date_mission: Optional[date] = None
    compteur_depart: Optional[int] = None
    compteur_arrivee: Optional[int] = None
    detail_frais: List[Dict[str, Any]] = []
    mission_id: Optional[str] = None  # Départage plusieurs missions validées le même jour


class MissionResponse(BaseModel):
    """Réponse avec les données complètes d'une mission"""
    id: str
    user_id: str
    departement: Optional[str] = None
    vehicule: str
    vehicule_id: Optional[str] = None
    immatriculation: Optional[str] = None
    date_mission: date
    date_sortie: date
    heure_sortie: str
    date_retour: date
    heure_retour: str
    depart: str
    destination: str
    objet: str
    frais_de_mission: float
    statut: str
    statut_remb: str
    compteur_depart: Optional[int] = None
    compteur_arrivee: Optional[int] = None
    detail_frais: Optional[List[Dict[str, Any]]] = None
    date_declaration_retour: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ============== Endpoints ==============

@router.post("/", status_code=status.HTTP_201_CREATED)
async def create_mission(
    mission_data: MissionCreate,
    service: MissionService = Depends(get_mission_service),
    current_user: User = Depends(get_current_user)
):
    """
    Crée une nouvelle mission au statut 'En attente'.

    Pour une voiture de service, `vehicule_id` et `immatriculation` sont
    obligatoires et le véhicule passe à 'En attente'.
    """
    mission = await service.create_mission(current_user, mission_data.model_dump())
    return {"success": True, "message": "Mission ajoutée avec succès", "id": mission.id}


@router.get("/mine", response_model=List[MissionResponse])
async def list_my_missions(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(get_current_user)
):
    """Missions de l'utilisateur courant, les plus récentes d'abord"""
    return await queries.missions_for_user(current_user, current_user.id)


@router.get("/dates")
async def get_validated_mission_dates(
    date_mission: date = Query(..., description="Date de la mission"),
    user_id: Optional[str] = Query(None, description="Titulaire (utilisateur courant par défaut)"),
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(get_current_user)
):
    """Horaires de la mission validée d'un utilisateur à une date"""
    return await queries.validated_mission_dates(current_user, user_id or current_user.id, date_mission)


@router.put("/retour")
async def record_mission_return(
    return_data: MissionReturn,
    service: MissionService = Depends(get_mission_service),
    current_user: User = Depends(get_current_user)
):
    """
    Déclare le retour d'une mission validée: compteurs kilométriques et
    détail des frais par jour. Le remboursement repasse 'En attente' et la
    voiture de service éventuelle redevient 'Disponible'.
    """
    mission = await service.record_mission_return(
        current_user,
        return_data.user_id or current_user.id,
        return_data.date_mission,
        return_data.compteur_depart,
        return_data.compteur_arrivee,
        return_data.detail_frais,
        mission_id=return_data.mission_id,
    )
    return {"success": True, "message": "Retour de mission enregistré", "mission_id": mission.id}


@router.get("/utilisateur/{user_id}", response_model=List[MissionResponse])
async def list_user_missions(
    user_id: str,
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(get_current_user)
):
    """Missions d'un utilisateur (lui-même, son manager ou un administrateur)"""
    return await queries.missions_for_user(current_user, user_id)


@router.get("/{mission_id}", response_model=MissionResponse)
async def get_mission(
    mission_id: str,
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(get_current_user)
):
    """Récupère une mission par son ID"""
    return await queries.get_mission(current_user, mission_id)
