"""
Tests du client Python, branché sur l'application via le TestClient.
"""
from datetime import date

import pytest

from gestion_missions_client import ApiError, GestionMissionsClient

from conftest import ADMIN_PASSWORD, PASSWORD, PLATE, VEHICLE_ID


@pytest.fixture
def make_client(client):
    def _make(identifiant=None, mot_de_passe=PASSWORD):
        api = GestionMissionsClient("http://testserver", session=client)
        if identifiant:
            assert api.login(identifiant, mot_de_passe)
        return api
    return _make


@pytest.fixture
def admin_api(make_client):
    return make_client("ADMIN", ADMIN_PASSWORD)


@pytest.fixture
def team(admin_api):
    """Manager, employé et financier créés via le client."""
    for user_id, role, manager_id in (("M001", "manager", None), ("E001", "employe", "M001"),
                                      ("F001", "financier", None)):
        admin_api.create_employe({
            "id": user_id,
            "nom_et_prenom": f"Nom {user_id}",
            "departement": "Informatique",
            "email": f"{user_id.lower()}@example.com",
            "num_tel": "20000000",
            "cin": "01234567",
            "role": role,
            "manager_id": manager_id,
            "date_embauche": date(2021, 3, 1),
            "mot_de_passe": PASSWORD,
        })
    admin_api.create_vehicle({
        "id": VEHICLE_ID, "immatriculation": PLATE, "marque": "Peugeot", "modele": "301", "puissance": 6,
    })


class TestClientLifecycle:

    def test_full_cycle(self, make_client, admin_api, team, expense_detail):
        employe = make_client("E001")
        manager = make_client("M001")
        financier = make_client("F001")
        assert employe.role == "employe"

        assert [v["id"] for v in employe.get_available_vehicles()] == [VEHICLE_ID]

        created = employe.create_mission({
            "date_mission": date(2024, 5, 2),
            "date_sortie": date(2024, 5, 2),
            "heure_sortie": "08:00",
            "date_retour": date(2024, 5, 3),
            "heure_retour": "18:00",
            "depart": "Tunis",
            "destination": "Sfax",
            "objet": "Audit",
            "frais_de_mission": 100,
            "vehicule": "voiture de service",
            "departement": "Informatique",
            "vehicule_id": VEHICLE_ID,
            "immatriculation": PLATE,
        })
        mission_id = created["id"]
        assert employe.get_available_vehicles() == []

        pending = manager.get_pending_missions()
        assert [m["id"] for m in pending] == [mission_id]
        assert manager.set_mission_status(mission_id, "Validée")["statut"] == "Validée"

        dates = employe.get_validated_mission_dates(date(2024, 5, 2))
        assert dates["mission_id"] == mission_id

        employe.record_mission_return(date(2024, 5, 2), 1000, 1200, expense_detail)
        assert [v["statut"] for v in admin_api.get_vehicles()] == ["Disponible"]

        assert [m["id"] for m in financier.get_pending_reimbursements()] == [mission_id]
        financier.set_reimbursement_status(mission_id, "Validée")
        result = financier.set_reimbursement_status(mission_id, "Payé")
        assert result["statut_remb"] == "Payé"

        history = financier.get_reimbursement_history()
        assert history[0]["grand_total"] == 38
        assert history[0]["detail_frais"] == expense_detail

        assert employe.get_my_missions()[0]["statut_remb"] == "Payé"
        assert admin_api.count_vehicles() == 1
        assert admin_api.count_personnel() == 4
        assert admin_api.get_activity_logs(action_type="REMB_STATUS")["total"] == 2


class TestClientErrors:

    def test_bad_credentials(self, make_client, team):
        api = make_client()
        with pytest.raises(PermissionError):
            api.login("E001", "mauvais")
        assert not api.is_authenticated()

    def test_unauthorized_drops_token(self, make_client, team):
        api = make_client("E001")
        api.token = "token-invalide"
        with pytest.raises(PermissionError):
            api.get_my_missions()
        assert api.token is None

    def test_forbidden(self, make_client, team):
        api = make_client("E001")
        with pytest.raises(PermissionError):
            api.get_personnel()
        assert api.is_authenticated()

    def test_not_found_returns_none(self, make_client, team):
        api = make_client("E001")
        assert api.get_mission("MS00000000") is None

    def test_validation_error(self, make_client, team):
        api = make_client("E001")
        with pytest.raises(ApiError) as excinfo:
            api.create_mission({"destination": "Sfax"})
        assert excinfo.value.status_code == 400
        assert "objet" in excinfo.value.detail

    def test_current_user(self, make_client, team):
        api = make_client("E001")
        assert api.get_current_user()["id"] == "E001"
        api.logout()
        assert api.role is None


class TestClientServer:

    def test_check_server(self, make_client):
        assert make_client().check_server()["status"] == "healthy"

    def test_server_info(self, make_client):
        assert make_client().get_server_info()["status"] == "running"
