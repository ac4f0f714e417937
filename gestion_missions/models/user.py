"""
Modèle utilisateur (personnel)
"""

import enum
from datetime import datetime, date
from typing import Optional
from sqlalchemy import String, DateTime, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from gestion_missions.database import Base


class Role(str, enum.Enum):
    """Rôles disponibles dans le système"""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYE = "employe"
    FINANCIER = "financier"


class User(Base):
    """Personnel de l'entreprise"""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)  # Matricule (ex: EMP001)
    nom_et_prenom: Mapped[str] = mapped_column(String(255), index=True)
    departement: Mapped[Optional[str]] = mapped_column(String(100))

    # Contact
    email: Mapped[Optional[str]] = mapped_column(String(255))
    num_tel: Mapped[Optional[str]] = mapped_column(String(30))
    cin: Mapped[Optional[str]] = mapped_column(String(30))  # Numéro de carte d'identité

    # Rôle et hiérarchie
    role: Mapped[str] = mapped_column(String(20), default=Role.EMPLOYE.value, index=True)
    manager_id: Mapped[Optional[str]] = mapped_column(ForeignKey("users.id"), index=True)

    date_embauche: Mapped[Optional[date]] = mapped_column(Date)

    # Mot de passe (hash bcrypt, ou valeur en clair héritée de l'ancien système)
    mot_de_passe: Mapped[Optional[str]] = mapped_column(String(255))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    def __repr__(self):
        return f"<User(id='{self.id}', role='{self.role}')>"
