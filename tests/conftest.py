"""
Fixtures pytest partagées pour les tests Gestion Missions.

Ce module fournit :
- Une application neuve par test, sur un fichier SQLite temporaire
- Un administrateur d'amorçage au mot de passe connu
- Du personnel et des véhicules créés via l'API (comme en production)

Organisation du personnel de test :
- M001 manager de E001 et E002
- M002 manager de E003
- F001 financier
"""

import os
import tempfile

# Avant l'import de l'application: pas de fichier de logs, base hors du dépôt
os.environ.setdefault("GESTION_MISSIONS_LOG_FILE", "")
os.environ.setdefault(
    "GESTION_MISSIONS_DATABASE_PATH",
    os.path.join(tempfile.gettempdir(), "gestion_missions_import.db"),
)

import sqlite3
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from gestion_missions.config import Settings
from gestion_missions.main import create_app

ADMIN_PASSWORD = "admin-secret"
PASSWORD = "password123"

VEHICLE_ID = "VT0001"
PLATE = "123 TU 4567"


# =============================================================================
# APPLICATION
# =============================================================================

@pytest.fixture
def settings(tmp_path) -> Settings:
    """Configuration isolée: base temporaire, bcrypt rapide, pas de fichier de logs."""
    return Settings(
        database_path=str(tmp_path / "missions.db"),
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        default_admin_enabled=True,
        default_admin_id="ADMIN",
        default_admin_password=ADMIN_PASSWORD,
        log_file="",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    """Client de test exécuté dans le cycle de vie de l'application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_connection(settings):
    """Connexion SQLite directe pour inspecter ou préparer des données."""
    connection = sqlite3.connect(settings.database_path)
    yield connection
    connection.close()


# =============================================================================
# AUTHENTIFICATION
# =============================================================================

@pytest.fixture
def login(client) -> Callable[[str, str], Dict[str, str]]:
    """Retourne une fonction qui connecte un utilisateur et renvoie ses headers."""
    def _login(identifiant: str, mot_de_passe: str = PASSWORD) -> Dict[str, str]:
        response = client.post(
            "/auth/login",
            json={"identifiant": identifiant, "mot_de_passe": mot_de_passe},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}
    return _login


@pytest.fixture
def admin_headers(login) -> Dict[str, str]:
    return login("ADMIN", ADMIN_PASSWORD)


# =============================================================================
# DONNÉES DE TEST
# =============================================================================

@pytest.fixture
def create_personnel(client, admin_headers) -> Callable[..., dict]:
    def _create(user_id: str, role: str, manager_id=None, departement="Informatique", **extra) -> dict:
        payload = {
            "id": user_id,
            "nom_et_prenom": f"Nom {user_id}",
            "departement": departement,
            "email": f"{user_id.lower()}@example.com",
            "num_tel": "20000000",
            "cin": "01234567",
            "role": role,
            "manager_id": manager_id,
            "date_embauche": "2020-01-15",
            "mot_de_passe": PASSWORD,
        }
        payload.update(extra)
        response = client.post("/personnel/", headers=admin_headers, json=payload)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def staff(create_personnel, login) -> Dict[str, Dict[str, str]]:
    """Personnel de référence, avec les headers d'authentification de chacun."""
    create_personnel("M001", "manager")
    create_personnel("M002", "manager")
    create_personnel("E001", "employe", manager_id="M001")
    create_personnel("E002", "employe", manager_id="M001")
    create_personnel("E003", "employe", manager_id="M002", departement="Finance")
    create_personnel("F001", "financier", departement="Finance")

    return {user_id: login(user_id) for user_id in ("M001", "M002", "E001", "E002", "E003", "F001")}


@pytest.fixture
def vehicle(client, admin_headers) -> dict:
    response = client.post(
        "/vehicules/",
        headers=admin_headers,
        json={
            "id": VEHICLE_ID,
            "immatriculation": PLATE,
            "marque": "Peugeot",
            "modele": "301",
            "puissance": 6,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def vehicle_status(client, admin_headers) -> Callable[[str], str]:
    """Retourne une fonction lisant le statut courant d'un véhicule."""
    def _status(vehicle_id: str = VEHICLE_ID) -> str:
        response = client.get("/vehicules/", headers=admin_headers)
        assert response.status_code == 200
        for item in response.json():
            if item["id"] == vehicle_id:
                return item["statut"]
        raise AssertionError(f"Véhicule {vehicle_id} absent du parc")
    return _status


def build_mission_payload(**overrides) -> dict:
    payload = {
        "date_mission": "2024-05-02",
        "date_sortie": "2024-05-02",
        "heure_sortie": "08:00",
        "date_retour": "2024-05-03",
        "heure_retour": "18:00",
        "depart": "Tunis",
        "destination": "Sfax",
        "objet": "Audit de l'agence régionale",
        "frais_de_mission": 100,
        "vehicule": "voiture de service",
        "departement": "Informatique",
        "vehicule_id": VEHICLE_ID,
        "immatriculation": PLATE,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def mission_payload() -> Callable[..., dict]:
    return build_mission_payload


@pytest.fixture
def create_mission(client) -> Callable[..., str]:
    """Crée une mission et retourne son identifiant."""
    def _create(headers: Dict[str, str], **overrides) -> str:
        response = client.post("/missions/", headers=headers, json=build_mission_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()["id"]
    return _create


@pytest.fixture
def decide(client, staff) -> Callable[[str, str], dict]:
    """Décision du manager M001 sur une mission."""
    def _decide(mission_id: str, statut: str, headers=None) -> dict:
        response = client.put(
            f"/manager/missions/{mission_id}/statut",
            headers=headers or staff["M001"],
            json={"statut": statut},
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _decide


@pytest.fixture
def expense_detail() -> list:
    """Une journée: 20 d'indemnité kilométrique et 18 de repas (total 38)."""
    return [
        {
            "date": "2024-05-02",
            "dep": "Tunis",
            "arr": "Sfax",
            "dest": "Sfax",
            "Km": "270",
            "montantKm": "20",
            "P_D": "",
            "repas": "18",
            "diner": "",
            "logement": "",
            "detali": "",
            "montantdet": "",
        }
    ]


@pytest.fixture
def record_return(client, staff, expense_detail) -> Callable[..., dict]:
    """Déclaration de retour par E001 (compteurs 1000 -> 1200 par défaut)."""
    def _record(date_mission="2024-05-02", headers=None, detail=None, compteur_depart=1000, compteur_arrivee=1200):
        response = client.put(
            "/missions/retour",
            headers=headers or staff["E001"],
            json={
                "date_mission": date_mission,
                "compteur_depart": compteur_depart,
                "compteur_arrivee": compteur_arrivee,
                "detail_frais": detail if detail is not None else expense_detail,
            },
        )
        assert response.status_code == 200, response.text
        return response.json()
    return _record
