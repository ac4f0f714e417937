"""
Routers API pour la gestion des missions
"""

from gestion_missions.routers.auth import router as auth_router
from gestion_missions.routers.missions import router as missions_router
from gestion_missions.routers.manager import router as manager_router
from gestion_missions.routers.finance import router as finance_router
from gestion_missions.routers.vehicules import router as vehicules_router
from gestion_missions.routers.personnel import router as personnel_router
from gestion_missions.routers.admin import router as admin_router

__all__ = [
    "auth_router",
    "missions_router",
    "manager_router",
    "finance_router",
    "vehicules_router",
    "personnel_router",
    "admin_router",
]
