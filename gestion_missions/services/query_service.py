"""
Lectures par rôle (tableaux de bord employé, manager, finance, administration)

Aucune écriture. Chaque lecture vérifie que l'appelant a le droit de voir les
missions demandées: propriétaire, manager du propriétaire, finance ou
administrateur selon la vue.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from gestion_missions.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from gestion_missions.models import (
    Mission,
    Role,
    StatutMission,
    StatutRemboursement,
    StatutVehicule,
    User,
    Vehicle,
)
from gestion_missions.services import frais


def _has_role(user: User, *roles: Role) -> bool:
    return user.role in {role.value for role in roles}


def _annotated(mission: Mission, employe: str, departement: Optional[str]) -> Dict[str, Any]:
    """Mission vue par la finance, avec les totaux recalculés"""
    return {
        "id": mission.id,
        "employe": employe,
        "departement": departement or mission.departement,
        "objet": mission.objet,
        "destination": mission.destination,
        "date_mission": mission.date_mission,
        "avance": frais.to_number(mission.frais_de_mission),
        "grand_total": frais.grand_total(mission.detail_frais),
        "difference": frais.difference(mission.detail_frais, mission.frais_de_mission),
        "kilometrage": frais.kilometrage(mission.compteur_depart, mission.compteur_arrivee),
        "statut": mission.statut,
        "statut_remb": mission.statut_remb,
        "detail_frais": mission.detail_frais,
    }


class MissionQueryService:
    """Vues en lecture seule sur les missions, le personnel et le parc"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError(f"Utilisateur {user_id} non trouvé")
        return user

    async def _check_owner_scope(self, caller: User, owner: User, allow_finance: bool = False):
        if caller.id == owner.id or owner.manager_id == caller.id:
            return
        if _has_role(caller, Role.ADMIN):
            return
        if allow_finance and _has_role(caller, Role.FINANCIER):
            return
        raise PermissionDeniedError("Accès refusé aux missions de cet utilisateur")

    # ============== Employé ==============

    async def missions_for_user(self, caller: User, user_id: str) -> List[Mission]:
        """Missions d'un utilisateur, les plus récentes d'abord"""
        owner = await self._get_user(user_id)
        await self._check_owner_scope(caller, owner)

        result = await self.db.execute(
            select(Mission)
            .where(Mission.user_id == user_id)
            .order_by(Mission.date_mission.desc(), Mission.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_mission(self, caller: User, mission_id: str) -> Mission:
        mission = await self.db.get(Mission, mission_id)
        if not mission:
            raise NotFoundError(f"Mission {mission_id} non trouvée")
        owner = await self._get_user(mission.user_id)
        await self._check_owner_scope(caller, owner, allow_finance=True)
        return mission

    async def validated_mission_dates(self, caller: User, user_id: str, date_mission: date) -> Dict[str, Any]:
        """Horaires de la mission validée, pour pré-remplir le formulaire de retour"""
        if not user_id or date_mission is None:
            raise ValidationError("L'utilisateur et la date de mission sont requis")
        if caller.id != user_id and not _has_role(caller, Role.ADMIN):
            raise PermissionDeniedError("Accès refusé aux missions de cet utilisateur")

        result = await self.db.execute(
            select(Mission)
            .where(
                Mission.user_id == user_id,
                Mission.date_mission == date_mission,
                Mission.statut == StatutMission.VALIDEE.value,
            )
            .order_by(Mission.created_at.desc())
        )
        mission = result.scalars().first()
        if not mission:
            raise NotFoundError("Aucune mission validée trouvée pour cet utilisateur et cette date")

        return {
            "mission_id": mission.id,
            "date_sortie": mission.date_sortie,
            "heure_sortie": mission.heure_sortie,
            "date_retour": mission.date_retour,
            "heure_retour": mission.heure_retour,
            "vehicule": mission.vehicule,
            "immatriculation": mission.immatriculation,
        }

    # ============== Manager ==============

    async def pending_for_manager(self, caller: User, manager_id: Optional[str]) -> List[Dict[str, Any]]:
        """Missions en attente des collaborateurs directs d'un manager"""
        if not manager_id or not manager_id.strip():
            raise ValidationError("L'identifiant du manager est requis")
        if caller.id != manager_id and not _has_role(caller, Role.ADMIN):
            raise PermissionDeniedError("Un manager ne voit que les demandes de son équipe")

        result = await self.db.execute(
            select(Mission, User.nom_et_prenom, User.departement)
            .join(User, Mission.user_id == User.id)
            .where(
                Mission.statut == StatutMission.EN_ATTENTE.value,
                User.manager_id == manager_id,
            )
            .order_by(Mission.date_mission.desc())
        )

        return [
            {
                "id": mission.id,
                "user_id": mission.user_id,
                "nom_et_prenom": nom,
                "departement": departement,
                "vehicule_id": mission.vehicule_id,
                "vehicule": mission.vehicule,
                "immatriculation": mission.immatriculation,
                "depart": mission.depart,
                "destination": mission.destination,
                "date_mission": mission.date_mission,
                "date_sortie": mission.date_sortie,
                "date_retour": mission.date_retour,
                "objet": mission.objet,
                "frais_de_mission": mission.frais_de_mission,
                "statut": mission.statut,
                "statut_remb": mission.statut_remb,
            }
            for mission, nom, departement in result
        ]

    # ============== Finance ==============

    def _check_finance(self, caller: User):
        if not _has_role(caller, Role.FINANCIER, Role.ADMIN):
            raise PermissionDeniedError("Rôle financier requis")

    async def pending_reimbursements(self, caller: User) -> List[Dict[str, Any]]:
        """Missions validées dont le retour est déclaré et le remboursement en attente"""
        self._check_finance(caller)

        result = await self.db.execute(
            select(Mission, User.nom_et_prenom, User.departement)
            .join(User, Mission.user_id == User.id)
            .where(
                Mission.statut == StatutMission.VALIDEE.value,
                Mission.statut_remb == StatutRemboursement.EN_ATTENTE.value,
                Mission.date_declaration_retour.is_not(None),
            )
            .order_by(Mission.date_mission.desc())
        )
        return [_annotated(mission, nom, departement) for mission, nom, departement in result]

    async def reimbursement_history(self, caller: User) -> List[Dict[str, Any]]:
        """Historique des remboursements traités (validés, refusés, payés)"""
        self._check_finance(caller)

        traites = (
            StatutRemboursement.VALIDEE.value,
            StatutRemboursement.REFUSEE.value,
            StatutRemboursement.PAYE.value,
        )
        result = await self.db.execute(
            select(Mission, User.nom_et_prenom, User.departement)
            .join(User, Mission.user_id == User.id)
            .where(Mission.statut_remb.in_(traites))
            .order_by(Mission.date_mission.desc())
        )
        return [_annotated(mission, nom, departement) for mission, nom, departement in result]

    # ============== Parc automobile ==============

    async def available_vehicles(self) -> List[Vehicle]:
        result = await self.db.execute(
            select(Vehicle)
            .where(Vehicle.statut == StatutVehicule.DISPONIBLE.value)
            .order_by(Vehicle.id)
        )
        return list(result.scalars().all())

    async def list_vehicles(
        self,
        statut: Optional[str] = None,
        marque: Optional[str] = None,
        puissance_min: Optional[int] = None,
        puissance_max: Optional[int] = None,
        recherche: Optional[str] = None
    ) -> List[Vehicle]:
        """Liste du parc avec filtres optionnels"""
        query = select(Vehicle).order_by(Vehicle.id)

        if statut:
            query = query.where(func.lower(Vehicle.statut) == statut.strip().lower())
        if marque:
            query = query.where(func.lower(Vehicle.marque) == marque.strip().lower())
        if puissance_min is not None:
            query = query.where(Vehicle.puissance >= puissance_min)
        if puissance_max is not None:
            query = query.where(Vehicle.puissance <= puissance_max)
        if recherche:
            pattern = f"%{recherche.strip()}%"
            query = query.where(or_(
                Vehicle.marque.ilike(pattern),
                Vehicle.modele.ilike(pattern),
                Vehicle.immatriculation.ilike(pattern),
            ))

        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ============== Back-office ==============

    async def count_personnel(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(User)) or 0

    async def count_vehicles(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(Vehicle)) or 0
