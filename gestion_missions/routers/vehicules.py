"""
Routes pour le parc automobile
"""

import uuid
from datetime import datetime
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gestion_missions.database import get_db
from gestion_missions.dependencies import get_current_user, get_query_service, require_role
from gestion_missions.exceptions import ValidationError
from gestion_missions.models import Vehicle, StatutVehicule, User, Role, ActivityLog
from gestion_missions.services import MissionQueryService

router = APIRouter(prefix="/vehicules", tags=["Parc automobile"])


# ============== Schémas Pydantic ==============

class VehicleCreate(BaseModel):
    """Ajout d'un véhicule au parc"""
    id: Optional[str] = None
    immatriculation: Optional[str] = None
    marque: Optional[str] = None
    modele: Optional[str] = None
    puissance: Optional[int] = None


class VehicleResponse(BaseModel):
    """Réponse véhicule"""
    id: str
    immatriculation: str
    marque: str
    modele: str
    puissance: int
    statut: str
    created_at: datetime

    class Config:
        from_attributes = True


# ============== Endpoints ==============

@router.get("/", response_model=List[VehicleResponse])
async def list_vehicles(
    statut: Optional[str] = Query(None, description="Statut (Disponible, En attente, En mission...)"),
    marque: Optional[str] = Query(None, description="Marque exacte"),
    puissance_min: Optional[int] = Query(None, ge=0),
    puissance_max: Optional[int] = Query(None, ge=0),
    recherche: Optional[str] = Query(None, description="Recherche sur marque, modèle, immatriculation"),
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.ADMIN, Role.MANAGER))
):
    """Liste le parc avec filtres optionnels"""
    return await queries.list_vehicles(
        statut=statut,
        marque=marque,
        puissance_min=puissance_min,
        puissance_max=puissance_max,
        recherche=recherche,
    )


@router.get("/disponibles", response_model=List[VehicleResponse])
async def list_available_vehicles(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(get_current_user)
):
    """Véhicules au statut 'Disponible' (choix d'une voiture de service)"""
    return await queries.available_vehicles()


@router.get("/count")
async def count_vehicles(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Nombre de véhicules du parc"""
    return {"count": await queries.count_vehicles()}


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Ajoute un véhicule; il entre dans le parc au statut 'Disponible'"""
    immatriculation = (vehicle_data.immatriculation or "").strip()
    marque = (vehicle_data.marque or "").strip()
    modele = (vehicle_data.modele or "").strip()

    if not immatriculation or not marque or not modele or vehicle_data.puissance is None:
        raise ValidationError("Tous les champs du véhicule sont obligatoires.")
    if vehicle_data.puissance <= 0:
        raise ValidationError("La puissance doit être positive")

    # Vérifier que le véhicule n'existe pas
    existing = await db.execute(
        select(Vehicle).where(Vehicle.immatriculation == immatriculation)
    )
    if existing.scalar_one_or_none():
        raise ValidationError(f"Le véhicule '{immatriculation}' existe déjà")

    vehicle_id = (vehicle_data.id or "").strip() or f"VT{uuid.uuid4().hex[:6].upper()}"
    if await db.get(Vehicle, vehicle_id):
        raise ValidationError(f"L'identifiant '{vehicle_id}' est déjà utilisé")

    vehicle = Vehicle(
        id=vehicle_id,
        immatriculation=immatriculation,
        marque=marque,
        modele=modele,
        puissance=vehicle_data.puissance,
        statut=StatutVehicule.DISPONIBLE.value,
    )
    db.add(vehicle)

    # Logger l'action
    db.add(ActivityLog(
        user_id=current_user.id,
        action_type="VEHICLE_CREATE",
        entity_type="vehicle",
        entity_id=vehicle_id,
        after_state={"immatriculation": immatriculation, "marque": marque, "modele": modele}
    ))
    await db.commit()
    await db.refresh(vehicle)

    return vehicle
