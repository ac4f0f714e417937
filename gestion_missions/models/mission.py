"""
Modèle Mission (ordre de mission / déplacement professionnel)
"""

import enum
from datetime import datetime, date
from typing import Optional
from sqlalchemy import String, DateTime, Date, Float, Integer, Text, ForeignKey, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from gestion_missions.database import Base


class StatutMission(str, enum.Enum):
    """Décision du manager"""
    EN_ATTENTE = "En attente"
    VALIDEE = "Validée"
    REFUSEE = "Refusée"


class StatutRemboursement(str, enum.Enum):
    """Suivi du remboursement par la finance"""
    EN_ATTENTE = "En attente"
    VALIDEE = "Validée"
    REFUSEE = "Refusée"
    PAYE = "Payé"


class MoyenTransport(str, enum.Enum):
    """Mode de transport déclaré pour la mission"""
    MOYEN_PUBLIQUE = "moyen publique"
    VOITURE_DE_SERVICE = "voiture de service"
    VOITURE_PERSONNELLE = "voiture personnelle"


class Mission(Base):
    """Missions des employés"""
    __tablename__ = "mission"

    id: Mapped[str] = mapped_column(String(20), primary_key=True)

    # Propriétaire
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    departement: Mapped[Optional[str]] = mapped_column(String(100))  # Copie au moment de la demande

    # Véhicule (uniquement pour une voiture de service)
    vehicule: Mapped[str] = mapped_column(String(30))  # Moyen de transport
    vehicule_id: Mapped[Optional[str]] = mapped_column(ForeignKey("vehicle.id"), index=True)
    immatriculation: Mapped[Optional[str]] = mapped_column(String(30))

    # Planning
    date_mission: Mapped[date] = mapped_column(Date, index=True)
    date_sortie: Mapped[date] = mapped_column(Date)
    heure_sortie: Mapped[str] = mapped_column(String(5))  # Format HH:MM
    date_retour: Mapped[date] = mapped_column(Date)
    heure_retour: Mapped[str] = mapped_column(String(5))
    depart: Mapped[str] = mapped_column(String(255))
    destination: Mapped[str] = mapped_column(String(255))
    objet: Mapped[str] = mapped_column(Text)

    # Avance sur frais
    frais_de_mission: Mapped[float] = mapped_column(Float, default=0)

    # Statuts
    statut: Mapped[str] = mapped_column(String(20), default=StatutMission.EN_ATTENTE.value, index=True)
    statut_remb: Mapped[str] = mapped_column(String(20), default=StatutRemboursement.EN_ATTENTE.value, index=True)

    # Retour de mission
    compteur_depart: Mapped[Optional[int]] = mapped_column(Integer)
    compteur_arrivee: Mapped[Optional[int]] = mapped_column(Integer)
    detail_frais: Mapped[Optional[list]] = mapped_column(JSON)  # Une entrée par jour
    date_declaration_retour: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Métadonnées
    created_by: Mapped[Optional[str]] = mapped_column(String(50))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('ix_mission_user_date', 'user_id', 'date_mission'),
    )

    @property
    def service_vehicle_id(self) -> Optional[str]:
        """Véhicule couplé au cycle de vie, s'il y en a un"""
        if self.vehicule == MoyenTransport.VOITURE_DE_SERVICE.value:
            return self.vehicule_id
        return None

    def __repr__(self):
        return f"<Mission(id='{self.id}', date={self.date_mission}, statut='{self.statut}')>"
