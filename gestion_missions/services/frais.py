"""
Calculs dérivés sur le détail des frais d'une mission

Le détail des frais est une liste ordonnée d'entrées journalières telle que
saisie au retour de mission, par exemple:

    {"date": "2024-03-04", "dep": "Tunis", "arr": "Sfax", "dest": "Sfax",
     "Km": "270", "montantKm": "20", "P_D": "", "repas": "18", "diner": "",
     "logement": "", "detali": "", "montantdet": ""}

Seuls les six montants ci-dessous entrent dans le total; une valeur absente
ou non numérique compte pour 0.
"""

import json
import logging
import math
from typing import Any, Iterable, Optional, Union

logger = logging.getLogger("gestion_missions")

# Indemnité kilométrique, per diem, repas, dîner, logement, divers
# Montants en dinars: arrondis au millime
CHAMPS_MONTANTS = ("montantKm", "P_D", "repas", "diner", "logement", "montantdet")


def to_number(value: Any) -> float:
    """Convertit un montant saisi en nombre (0 si vide ou invalide)"""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def load_detail(detail: Union[str, Iterable[dict], None]) -> list:
    """Accepte le document décodé ou sa forme JSON texte"""
    if not detail:
        return []
    if isinstance(detail, str):
        try:
            detail = json.loads(detail)
        except ValueError:
            logger.warning("Détail des frais illisible, ignoré")
            return []
    if not isinstance(detail, list):
        return []
    return [item for item in detail if isinstance(item, dict)]


def total_jour(item: dict) -> float:
    return sum(to_number(item.get(champ)) for champ in CHAMPS_MONTANTS)


def grand_total(detail: Union[str, Iterable[dict], None]) -> float:
    """Somme des six montants sur toutes les journées"""
    return round(sum(total_jour(item) for item in load_detail(detail)), 3)


def difference(detail: Union[str, Iterable[dict], None], avance: Optional[float]) -> float:
    """
    Total réel moins l'avance versée.

    Positif: l'employé doit recevoir un complément.
    Nul ou négatif: l'avance a couvert (ou dépassé) le coût réel.
    """
    return round(grand_total(detail) - to_number(avance), 3)


def kilometrage(compteur_depart: Optional[int], compteur_arrivee: Optional[int]) -> Optional[int]:
    """Distance parcourue d'après les compteurs, si les deux sont connus"""
    if compteur_depart is None or compteur_arrivee is None:
        return None
    return compteur_arrivee - compteur_depart
