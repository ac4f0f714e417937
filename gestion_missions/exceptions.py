"""
Erreurs métier remontées par les services

Chaque erreur porte le code HTTP sous lequel elle est renvoyée au client
(voir les gestionnaires d'exceptions de gestion_missions.main).
"""

from fastapi import status


class MissionError(Exception):
    """Erreur de base des services"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MissionError):
    """Donnée manquante ou invalide (faute de l'appelant)"""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(MissionError):
    """Entité absente ou dans un état incompatible avec la transition"""

    status_code = status.HTTP_404_NOT_FOUND


class AuthError(MissionError):
    """Token absent, invalide ou expiré, ou identifiants incorrects"""

    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(AuthError):
    """Token valide mais rôle ou périmètre insuffisant"""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(MissionError):
    """Mise à jour conditionnelle perdue (état modifié entre-temps)"""

    status_code = status.HTTP_409_CONFLICT


class PersistenceError(MissionError):
    """Échec de la base de données pendant une lecture ou une écriture"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Erreur interne du serveur, veuillez réessayer."):
        super().__init__(message)
