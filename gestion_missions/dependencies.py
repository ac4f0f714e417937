"""
Dépendances FastAPI partagées: services construits sur la session de la
requête, utilisateur courant et contrôle de rôle.
"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from gestion_missions.database import get_db
from gestion_missions.exceptions import AuthError, PermissionDeniedError
from gestion_missions.models import User, Role
from gestion_missions.services import AuthService, MissionService, MissionQueryService


def get_auth_service(request: Request, db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db, request.app.state.settings)


def get_mission_service(db: AsyncSession = Depends(get_db)) -> MissionService:
    return MissionService(db)


def get_query_service(db: AsyncSession = Depends(get_db)) -> MissionQueryService:
    return MissionQueryService(db)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    auth: AuthService = Depends(get_auth_service)
) -> User:
    """
    Dépendance pour récupérer l'utilisateur courant depuis le token.
    """
    if not authorization:
        raise AuthError("Token d'authentification manquant")

    if not authorization.startswith("Bearer "):
        raise AuthError("Format de token invalide")

    token = authorization[len("Bearer "):].strip()
    return await auth.validate_token(token)


def require_role(*roles: Role):
    """Dépendance vérifiant que l'utilisateur courant a l'un des rôles"""
    allowed = {role.value for role in roles}

    async def check_role(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise PermissionDeniedError(
                f"Rôle requis: {', '.join(sorted(allowed))}"
            )
        return current_user
    return check_role
