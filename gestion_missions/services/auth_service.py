"""
Service d'authentification
Vérifie les identifiants du personnel et émet un token JWT signé (identité + rôle)
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from gestion_missions.config import Settings
from gestion_missions.exceptions import AuthError, ValidationError
from gestion_missions.models import User, Role

logger = logging.getLogger("gestion_missions")


class AuthService:
    """Service d'authentification et émission des tokens"""

    ALGORITHM = "HS256"

    def __init__(self, db: AsyncSession, config: Settings):
        self.db = db
        self.config = config
        # bcrypt pour les nouveaux mots de passe; les valeurs en clair héritées
        # restent vérifiables et sont re-hachées à la première connexion
        self.pwd_context = CryptContext(
            schemes=["bcrypt", "plaintext"],
            deprecated=["plaintext"],
            bcrypt__rounds=config.bcrypt_rounds,
        )

    # ============== Gestion des mots de passe ==============

    def hash_password(self, password: str) -> str:
        """Hache un mot de passe avec bcrypt"""
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, stored: str) -> Tuple[bool, Optional[str]]:
        """
        Vérifie un mot de passe contre la valeur stockée.
        Retourne (is_valid, nouveau_hash) - nouveau_hash si la valeur doit être migrée
        """
        return self.pwd_context.verify_and_update(plain_password, stored)

    @staticmethod
    def generate_temp_password() -> str:
        """Génère un mot de passe temporaire (12 caractères)"""
        return secrets.token_urlsafe(9)

    # ============== Gestion des utilisateurs ==============

    async def get_user(self, user_id: str) -> Optional[User]:
        """Récupère un utilisateur par son identifiant"""
        result = await self.db.execute(
            select(User).where(User.id == user_id.strip())
        )
        return result.scalar_one_or_none()

    async def create_user(
        self,
        user_id: str,
        nom_et_prenom: str,
        role: Role,
        password: Optional[str] = None,
        **fields
    ) -> User:
        """Crée un utilisateur; le mot de passe est optionnel (compte à activer)"""
        user = User(
            id=user_id.strip(),
            nom_et_prenom=nom_et_prenom,
            role=role.value,
            mot_de_passe=self.hash_password(password) if password else None,
            **fields
        )
        self.db.add(user)
        await self.db.commit()
        return user

    # ============== Tokens ==============

    def create_access_token(self, user: User) -> Tuple[str, datetime]:
        """Token signé portant l'identifiant et le rôle, valide une heure par défaut"""
        expires_at = datetime.utcnow() + timedelta(minutes=self.config.access_token_expire_minutes)
        token_data = {
            "sub": user.id,
            "role": user.role,
            "exp": expires_at
        }
        token = jwt.encode(token_data, self.config.secret_key, algorithm=self.ALGORITHM)
        return token, expires_at

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Décode un token JWT ou lève AuthError"""
        try:
            payload = jwt.decode(token, self.config.secret_key, algorithms=[self.ALGORITHM])
        except ExpiredSignatureError:
            raise AuthError("Token expiré, veuillez vous reconnecter")
        except JWTError:
            raise AuthError("Token invalide")

        if not payload.get("sub") or not payload.get("role"):
            raise AuthError("Token invalide")
        return payload

    # ============== Authentification ==============

    async def authenticate(self, identifiant: str, mot_de_passe: str) -> Dict[str, Any]:
        """
        Authentifie un utilisateur avec identifiant + mot de passe.
        Retourne le token et le profil ou lève AuthError.
        """
        if not identifiant or not identifiant.strip() or not mot_de_passe:
            raise ValidationError("Identifiant et mot de passe sont requis.")

        user = await self.get_user(identifiant)
        if not user or not user.mot_de_passe:
            raise AuthError("Identifiant ou mot de passe invalide.")

        is_valid, new_hash = self.verify_password(mot_de_passe, user.mot_de_passe)
        if not is_valid:
            raise AuthError("Identifiant ou mot de passe invalide.")

        if new_hash:
            logger.info(f"Migration du mot de passe de {user.id} vers bcrypt")
            user.mot_de_passe = new_hash

        user.last_login = datetime.utcnow()
        await self.db.commit()

        token, expires_at = self.create_access_token(user)

        return {
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at.isoformat(),
            "role": user.role,
            "user": {
                "id": user.id,
                "nom_et_prenom": user.nom_et_prenom,
                "departement": user.departement,
                "role": user.role,
                "manager_id": user.manager_id,
            }
        }

    async def validate_token(self, token: str) -> User:
        """Valide un token JWT et retourne l'utilisateur courant"""
        payload = self.decode_token(token)

        user = await self.get_user(payload["sub"])
        if not user:
            raise AuthError("Utilisateur inconnu")

        # Un changement de rôle invalide les tokens déjà émis
        if user.role != payload["role"]:
            raise AuthError("Rôle modifié, veuillez vous reconnecter")

        # Terminer la transaction de lecture: les services ouvrent la leur
        await self.db.commit()

        return user
