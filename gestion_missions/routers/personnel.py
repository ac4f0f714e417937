"""
Routes de gestion du personnel (back-office)
"""

from datetime import date, datetime
from typing import Optional, List
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gestion_missions.dependencies import get_auth_service, get_query_service, require_role
from gestion_missions.exceptions import NotFoundError, ValidationError
from gestion_missions.models import User, Role, ActivityLog
from gestion_missions.services import AuthService, MissionQueryService
from gestion_missions.services.validation import parse_enum, require_fields

router = APIRouter(prefix="/personnel", tags=["Personnel"])

MIN_PASSWORD_LENGTH = 6


# ============== Schémas Pydantic ==============

class EmployeCreate(BaseModel):
    """Ajout d'un membre du personnel"""
    id: Optional[str] = None  # Matricule
    nom_et_prenom: Optional[str] = None
    departement: Optional[str] = None
    email: Optional[str] = None
    num_tel: Optional[str] = None
    cin: Optional[str] = None
    role: Optional[str] = None
    manager_id: Optional[str] = None
    date_embauche: Optional[date] = None
    mot_de_passe: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Modification du rôle et/ou du mot de passe"""
    role: Optional[str] = None
    nouveau_mot_de_passe: Optional[str] = None


class EmployeResponse(BaseModel):
    """Réponse personnel (sans mot de passe)"""
    id: str
    nom_et_prenom: str
    departement: Optional[str]
    email: Optional[str]
    num_tel: Optional[str]
    cin: Optional[str]
    role: str
    manager_id: Optional[str]
    date_embauche: Optional[date]
    last_login: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


# ============== Endpoints ==============

@router.get("/", response_model=List[EmployeResponse])
async def list_personnel(
    auth: AuthService = Depends(get_auth_service),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Liste tout le personnel"""
    result = await auth.db.execute(select(User).order_by(User.id))
    return result.scalars().all()


@router.get("/count")
async def count_personnel(
    queries: MissionQueryService = Depends(get_query_service),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Nombre de membres du personnel"""
    return {"count": await queries.count_personnel()}


@router.post("/", response_model=EmployeResponse, status_code=status.HTTP_201_CREATED)
async def create_employe(
    employe_data: EmployeCreate,
    auth: AuthService = Depends(get_auth_service),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """Ajoute un membre du personnel"""
    data = employe_data.model_dump()
    require_fields(
        data,
        ("id", "nom_et_prenom", "departement", "email", "num_tel", "cin", "role", "date_embauche"),
        "Tous les champs obligatoires doivent être remplis.",
    )
    role = parse_enum(Role, data["role"], "Rôle")

    # Vérifier que l'utilisateur n'existe pas
    if await auth.get_user(data["id"]):
        raise ValidationError(f"L'employé '{data['id'].strip()}' existe déjà")

    manager_id = (data["manager_id"] or "").strip() or None
    if manager_id and not await auth.get_user(manager_id):
        raise ValidationError(f"Manager '{manager_id}' introuvable")

    if data["mot_de_passe"] and len(data["mot_de_passe"]) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères"
        )

    auth.db.add(ActivityLog(
        user_id=current_user.id,
        action_type="USER_CREATE",
        entity_type="user",
        entity_id=data["id"].strip(),
        after_state={"role": role.value, "manager_id": manager_id}
    ))
    try:
        user = await auth.create_user(
            user_id=data["id"],
            nom_et_prenom=data["nom_et_prenom"].strip(),
            role=role,
            password=data["mot_de_passe"],
            departement=data["departement"].strip(),
            email=data["email"].strip(),
            num_tel=data["num_tel"].strip(),
            cin=data["cin"].strip(),
            manager_id=manager_id,
            date_embauche=data["date_embauche"],
        )
    except IntegrityError:
        # Création concurrente du même matricule
        await auth.db.rollback()
        raise ValidationError(f"L'employé '{data['id'].strip()}' existe déjà")
    await auth.db.refresh(user)

    return user


@router.put("/{user_id}/profil", response_model=EmployeResponse)
async def update_profile(
    user_id: str,
    profile_data: ProfileUpdate,
    auth: AuthService = Depends(get_auth_service),
    current_user: User = Depends(require_role(Role.ADMIN))
):
    """
    Modifie le rôle et/ou le mot de passe d'un membre du personnel.

    Un changement de rôle invalide les tokens déjà émis pour cet utilisateur.
    """
    user = await auth.get_user(user_id)
    if not user:
        raise NotFoundError(f"Utilisateur {user_id} non trouvé")

    if profile_data.role is None and not profile_data.nouveau_mot_de_passe:
        raise ValidationError("Rien à modifier: indiquez un rôle ou un nouveau mot de passe")

    before_state = {"role": user.role}
    changes = {}

    if profile_data.role is not None:
        user.role = parse_enum(Role, profile_data.role, "Rôle").value
        changes["role"] = user.role

    if profile_data.nouveau_mot_de_passe:
        if len(profile_data.nouveau_mot_de_passe) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères"
            )
        user.mot_de_passe = auth.hash_password(profile_data.nouveau_mot_de_passe)
        changes["mot_de_passe"] = "modifié"

    auth.db.add(ActivityLog(
        user_id=current_user.id,
        action_type="USER_UPDATE",
        entity_type="user",
        entity_id=user.id,
        before_state=before_state,
        after_state=changes
    ))
    await auth.db.commit()
    await auth.db.refresh(user)

    return user
