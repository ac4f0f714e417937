"""
Routes d'authentification
"""

from typing import Optional
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from gestion_missions.dependencies import get_auth_service, get_current_user
from gestion_missions.exceptions import AuthError
from gestion_missions.models import User, ActivityLog
from gestion_missions.services import AuthService

router = APIRouter(prefix="/auth", tags=["Authentification"])


# ============== Schémas ==============

class LoginRequest(BaseModel):
    """Requête de connexion"""
    identifiant: Optional[str] = None  # Matricule (ex: EMP001)
    mot_de_passe: Optional[str] = None


class LoginResponse(BaseModel):
    """Réponse de connexion"""
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    role: str
    user: dict


class CurrentUser(BaseModel):
    """Informations de l'utilisateur courant"""
    id: str
    nom_et_prenom: str
    departement: Optional[str]
    email: Optional[str]
    role: str
    manager_id: Optional[str]

    class Config:
        from_attributes = True


# ============== Endpoints ==============

@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    login_data: LoginRequest,
    auth: AuthService = Depends(get_auth_service)
):
    """
    Authentification avec identifiant et mot de passe.

    - **identifiant**: Matricule de l'utilisateur
    - **mot_de_passe**: Mot de passe

    Retourne un token JWT valide 1 heure portant l'identifiant et le rôle.
    """
    client_ip = request.client.host if request.client else None

    try:
        result = await auth.authenticate(login_data.identifiant, login_data.mot_de_passe)
    except AuthError as e:
        # Logger la tentative échouée
        auth.db.add(ActivityLog(
            user_id=(login_data.identifiant or "").strip()[:50],
            action_type="LOGIN_FAILED",
            details={"reason": e.message},
            client_ip=client_ip
        ))
        await auth.db.commit()
        raise

    auth.db.add(ActivityLog(
        user_id=result["user"]["id"],
        action_type="LOGIN",
        client_ip=client_ip
    ))
    await auth.db.commit()

    return result


@router.get("/me", response_model=CurrentUser)
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """Retourne les informations de l'utilisateur courant"""
    return current_user
