"""
Cycle de vie des missions

Machine à états couplée entre le statut d'une mission et, pour une voiture
de service, le statut du véhicule:

    création            mission En attente   véhicule Disponible -> En attente
    validation manager  mission Validée      véhicule En attente -> En mission
    refus manager       mission Refusée      véhicule En attente -> Disponible
    retour de mission   (inchangé)           véhicule En mission -> Disponible

Chaque opération s'exécute dans une seule transaction. Les changements de
statut passent par des UPDATE conditionnels (WHERE statut = attendu): zéro
ligne modifiée signifie que l'état a changé entre-temps et annule tout.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gestion_missions.database import transaction
from gestion_missions.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from gestion_missions.models import (
    ActivityLog,
    Mission,
    MoyenTransport,
    Role,
    StatutMission,
    StatutRemboursement,
    StatutVehicule,
    User,
    Vehicle,
)
from gestion_missions.services.validation import parse_enum, require_fields

logger = logging.getLogger("gestion_missions")


def new_mission_id() -> str:
    return f"MS{uuid.uuid4().hex[:8].upper()}"


def parse_heure(value: str, label: str) -> str:
    """Normalise une heure au format HH:MM"""
    try:
        return datetime.strptime(value.strip()[:5], "%H:%M").strftime("%H:%M")
    except (AttributeError, ValueError):
        raise ValidationError(f"{label} invalide: '{value}' (format attendu HH:MM)")


class MissionService:
    """Transitions de statut des missions et des véhicules associés"""

    CHAMPS_OBLIGATOIRES = (
        "date_mission", "date_sortie", "heure_sortie", "date_retour", "heure_retour",
        "depart", "destination", "objet", "vehicule", "departement",
    )

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============== Utilitaires ==============

    async def _swap_vehicle_status(
        self,
        vehicle_id: str,
        expected: StatutVehicule,
        new: StatutVehicule
    ) -> bool:
        """UPDATE conditionnel du statut véhicule; False si le statut n'était pas celui attendu"""
        result = await self.db.execute(
            update(Vehicle)
            .where(Vehicle.id == vehicle_id, Vehicle.statut == expected.value)
            .values(statut=new.value, updated_at=datetime.utcnow())
        )
        return result.rowcount == 1

    def _log(
        self,
        caller: User,
        action_type: str,
        mission_id: str,
        details: Optional[dict] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ):
        self.db.add(ActivityLog(
            user_id=caller.id,
            action_type=action_type,
            entity_type="mission",
            entity_id=mission_id,
            details=details,
            before_state=before_state,
            after_state=after_state,
        ))

    # ============== Création ==============

    async def create_mission(self, caller: User, data: Dict[str, Any]) -> Mission:
        """
        Crée une mission au statut 'En attente'.

        Pour une voiture de service, le véhicule (identifiant + immatriculation)
        est réservé dans la même transaction: il doit être 'Disponible' au
        moment de l'écriture et passe à 'En attente'.
        """
        if caller.role not in (Role.EMPLOYE.value, Role.MANAGER.value):
            raise PermissionDeniedError("Seuls les employés et managers peuvent créer une mission")

        owner_id = data.get("user_id") or caller.id
        if owner_id != caller.id:
            raise PermissionDeniedError("Une mission ne peut être créée que pour soi-même")

        require_fields(data, self.CHAMPS_OBLIGATOIRES, "Tous les champs de mission sont obligatoires.")
        moyen = parse_enum(MoyenTransport, data["vehicule"], "Moyen de transport")

        if data["date_retour"] < data["date_sortie"]:
            raise ValidationError("La date de retour doit être postérieure à la date de sortie")

        avance = data.get("frais_de_mission") or 0
        if avance < 0:
            raise ValidationError("Les frais de mission ne peuvent pas être négatifs")

        vehicle_id = None
        immatriculation = None
        if moyen == MoyenTransport.VOITURE_DE_SERVICE:
            vehicle_id = (data.get("vehicule_id") or "").strip()
            immatriculation = (data.get("immatriculation") or "").strip()
            if not vehicle_id or not immatriculation:
                raise ValidationError(
                    "Une voiture de service exige l'identifiant et l'immatriculation du véhicule"
                )

        mission = Mission(
            id=new_mission_id(),
            user_id=owner_id,
            departement=data["departement"].strip(),
            vehicule=moyen.value,
            vehicule_id=vehicle_id,
            immatriculation=immatriculation,
            date_mission=data["date_mission"],
            date_sortie=data["date_sortie"],
            heure_sortie=parse_heure(data["heure_sortie"], "Heure de sortie"),
            date_retour=data["date_retour"],
            heure_retour=parse_heure(data["heure_retour"], "Heure de retour"),
            depart=data["depart"].strip(),
            destination=data["destination"].strip(),
            objet=data["objet"].strip(),
            frais_de_mission=avance,
            statut=StatutMission.EN_ATTENTE.value,
            statut_remb=StatutRemboursement.EN_ATTENTE.value,
            created_by=caller.id,
        )

        async with transaction(self.db):
            if vehicle_id:
                vehicle = await self.db.get(Vehicle, vehicle_id)
                if not vehicle:
                    raise NotFoundError(f"Véhicule {vehicle_id} non trouvé")
                if vehicle.immatriculation != immatriculation:
                    raise ValidationError(
                        f"L'immatriculation '{immatriculation}' ne correspond pas au véhicule {vehicle_id}"
                    )
                reserved = await self._swap_vehicle_status(
                    vehicle_id, StatutVehicule.DISPONIBLE, StatutVehicule.EN_ATTENTE
                )
                if not reserved:
                    raise ConflictError(f"Le véhicule {immatriculation} n'est plus disponible")

            self.db.add(mission)
            self._log(
                caller, "MISSION_CREATE", mission.id,
                after_state={
                    "statut": mission.statut,
                    "vehicule": mission.vehicule,
                    "vehicule_id": vehicle_id,
                    "date_mission": str(mission.date_mission),
                },
            )

        logger.info(f"Mission {mission.id} créée par {caller.id} ({moyen.value})")
        return mission

    # ============== Décision du manager ==============

    async def set_mission_status(self, caller: User, mission_id: str, statut: Any) -> Mission:
        """Valide ou refuse une mission en attente; le véhicule suit la décision"""
        nouveau = parse_enum(StatutMission, statut, "Statut de mission")
        if nouveau == StatutMission.EN_ATTENTE:
            raise ValidationError("Le statut doit être 'Validée' ou 'Refusée'")

        async with transaction(self.db):
            row = (await self.db.execute(
                select(Mission, User.manager_id)
                .join(User, Mission.user_id == User.id)
                .where(Mission.id == mission_id)
            )).one_or_none()

            if row is None:
                raise NotFoundError(f"Mission {mission_id} non trouvée")

            mission, manager_id = row
            if caller.role != Role.MANAGER.value or manager_id != caller.id:
                raise PermissionDeniedError("Seul le manager du demandeur peut statuer sur cette mission")

            ancien = mission.statut
            result = await self.db.execute(
                update(Mission)
                .where(Mission.id == mission_id, Mission.statut == StatutMission.EN_ATTENTE.value)
                .values(statut=nouveau.value, updated_at=datetime.utcnow())
            )
            if result.rowcount != 1:
                raise NotFoundError(f"La mission {mission_id} n'est plus en attente (statut: {ancien})")

            vehicle_id = mission.service_vehicle_id
            vehicle_statut = None
            if vehicle_id:
                if nouveau == StatutMission.VALIDEE:
                    vehicle_statut = StatutVehicule.EN_MISSION
                else:
                    vehicle_statut = StatutVehicule.DISPONIBLE
                swapped = await self._swap_vehicle_status(
                    vehicle_id, StatutVehicule.EN_ATTENTE, vehicle_statut
                )
                if not swapped:
                    raise ConflictError(
                        f"Le véhicule {vehicle_id} n'est pas réservé pour cette mission"
                    )

            self._log(
                caller, "MISSION_STATUS", mission_id,
                details={"vehicule_id": vehicle_id,
                         "vehicule_statut": vehicle_statut.value if vehicle_statut else None},
                before_state={"statut": ancien},
                after_state={"statut": nouveau.value},
            )

        logger.info(f"Mission {mission_id}: {ancien} -> {nouveau.value} (manager {caller.id})")
        return mission

    # ============== Retour de mission ==============

    async def record_mission_return(
        self,
        caller: User,
        user_id: str,
        date_mission: date,
        compteur_depart: Optional[int],
        compteur_arrivee: Optional[int],
        detail_frais: List[Dict[str, Any]],
        mission_id: Optional[str] = None
    ) -> Mission:
        """
        Enregistre compteurs et détail des frais sur la mission validée du
        propriétaire à cette date, et remet le véhicule à disposition lors de
        la première déclaration.

        Sans mission_id, la mission validée la plus récente de la date est
        retenue.
        """
        if not user_id or date_mission is None:
            raise ValidationError("L'utilisateur et la date de mission sont requis")
        if caller.id != user_id:
            raise PermissionDeniedError("Seul le titulaire de la mission peut déclarer son retour")

        for label, value in (("Compteur de départ", compteur_depart), ("Compteur d'arrivée", compteur_arrivee)):
            if value is not None and value < 0:
                raise ValidationError(f"{label} invalide: {value}")
        if compteur_depart is not None and compteur_arrivee is not None and compteur_arrivee < compteur_depart:
            raise ValidationError("Le compteur d'arrivée doit être supérieur ou égal au compteur de départ")

        if not detail_frais:
            raise ValidationError("Au moins un détail de frais est requis")
        if not all(isinstance(item, dict) for item in detail_frais):
            raise ValidationError("Chaque détail de frais doit être un objet")

        async with transaction(self.db):
            query = select(Mission).where(
                Mission.user_id == user_id,
                Mission.date_mission == date_mission,
                Mission.statut == StatutMission.VALIDEE.value,
            )
            if mission_id:
                query = query.where(Mission.id == mission_id)
            result = await self.db.execute(query.order_by(Mission.created_at.desc()))
            mission = result.scalars().first()

            if not mission:
                raise NotFoundError("Aucune mission validée trouvée pour cet utilisateur et cette date")

            if mission.statut_remb != StatutRemboursement.EN_ATTENTE.value:
                raise ConflictError(
                    f"Le remboursement de la mission {mission.id} est déjà traité ({mission.statut_remb})"
                )

            mission.compteur_depart = compteur_depart
            mission.compteur_arrivee = compteur_arrivee
            mission.detail_frais = list(detail_frais)
            mission.statut_remb = StatutRemboursement.EN_ATTENTE.value
            # Une nouvelle déclaration ne touche plus au véhicule, déjà rendu
            first_declaration = mission.date_declaration_retour is None
            mission.date_declaration_retour = datetime.utcnow()

            vehicle_id = mission.service_vehicle_id
            released = False
            if vehicle_id and first_declaration:
                released = await self._swap_vehicle_status(
                    vehicle_id, StatutVehicule.EN_MISSION, StatutVehicule.DISPONIBLE
                )
                if not released:
                    current = await self.db.scalar(
                        select(Vehicle.statut).where(Vehicle.id == vehicle_id)
                    )
                    logger.warning(
                        f"Véhicule {vehicle_id} au statut '{current}', non remis à 'Disponible'"
                    )

            self._log(
                caller, "MISSION_RETURN", mission.id,
                details={
                    "compteur_depart": compteur_depart,
                    "compteur_arrivee": compteur_arrivee,
                    "jours": len(detail_frais),
                    "vehicule_libere": released,
                },
            )

        logger.info(f"Retour de mission {mission.id} enregistré par {caller.id}")
        return mission

    # ============== Remboursement ==============

    async def set_reimbursement_status(self, caller: User, mission_id: str, statut_remb: Any) -> Mission:
        """
        Fait avancer le remboursement (rôle financier).

        Reprendre le statut courant est un no-op réussi. Tout statut autre que
        'En attente' exige une mission validée dont le retour est déclaré;
        'Payé' exige un remboursement validé et est définitif.
        """
        if caller.role != Role.FINANCIER.value:
            raise PermissionDeniedError("Rôle financier requis")

        nouveau = parse_enum(StatutRemboursement, statut_remb, "Statut de remboursement")

        async with transaction(self.db):
            mission = await self.db.get(Mission, mission_id)
            if not mission:
                raise NotFoundError(f"Mission {mission_id} non trouvée")

            ancien = mission.statut_remb
            if ancien == nouveau.value:
                return mission

            if ancien == StatutRemboursement.PAYE.value:
                raise ConflictError(f"La mission {mission_id} est déjà payée")
            if nouveau != StatutRemboursement.EN_ATTENTE and mission.statut != StatutMission.VALIDEE.value:
                raise ConflictError(
                    f"La mission {mission_id} n'est pas validée (statut: {mission.statut})"
                )
            if nouveau != StatutRemboursement.EN_ATTENTE and mission.date_declaration_retour is None:
                raise ConflictError(f"Le retour de la mission {mission_id} n'a pas été déclaré")
            if nouveau == StatutRemboursement.PAYE and ancien != StatutRemboursement.VALIDEE.value:
                raise ConflictError("Seul un remboursement validé peut être payé")

            mission.statut_remb = nouveau.value
            self._log(
                caller, "REMB_STATUS", mission_id,
                before_state={"statut_remb": ancien},
                after_state={"statut_remb": nouveau.value},
            )

        logger.info(f"Remboursement mission {mission_id}: {ancien} -> {nouveau.value} ({caller.id})")
        return mission
