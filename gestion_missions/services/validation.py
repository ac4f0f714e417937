"""
Validation des valeurs énumérées reçues des clients
"""

import enum
from typing import Any, Type, TypeVar

from gestion_missions.exceptions import ValidationError

E = TypeVar("E", bound=enum.Enum)


def parse_enum(enum_cls: Type[E], value: Any, label: str) -> E:
    """Convertit une chaîne en membre d'énumération ou lève ValidationError"""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
        raise ValidationError(f"{label} invalide: '{value}' (valeurs possibles: {allowed})")


def require_fields(data: dict, fields: tuple, message: str):
    """Lève ValidationError si l'un des champs est absent ou vide"""
    missing = [
        name for name in fields
        if data.get(name) is None or (isinstance(data.get(name), str) and not data[name].strip())
    ]
    if missing:
        raise ValidationError(f"{message} Champs manquants: {', '.join(missing)}")
