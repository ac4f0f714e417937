"""
Modèle Véhicule (parc automobile)
"""

import enum
from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from gestion_missions.database import Base


class StatutVehicule(str, enum.Enum):
    """Statuts d'un véhicule de service"""
    DISPONIBLE = "Disponible"
    EN_ATTENTE = "En attente"
    EN_MISSION = "En mission"
    MAINTENANCE = "Maintenance"


class Vehicle(Base):
    """Véhicules de service"""
    __tablename__ = "vehicle"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    immatriculation: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    marque: Mapped[str] = mapped_column(String(100), index=True)
    modele: Mapped[str] = mapped_column(String(100))
    puissance: Mapped[int] = mapped_column(Integer)  # Chevaux fiscaux

    # Modifié uniquement par le cycle de vie des missions
    statut: Mapped[str] = mapped_column(String(20), default=StatutVehicule.DISPONIBLE.value, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Vehicle(id='{self.id}', immatriculation='{self.immatriculation}', statut='{self.statut}')>"
