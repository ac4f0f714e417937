"""
Tests du suivi des remboursements (rôle financier).
"""
from fastapi import status


def set_remb(client, headers, mission_id, statut_remb):
    return client.put(
        f"/finance/missions/{mission_id}/statut-remb",
        headers=headers,
        json={"statut_remb": statut_remb},
    )


class TestSetReimbursementStatus:
    """Tests de PUT /finance/missions/{id}/statut-remb."""

    def test_validate_then_pay(self, client, staff, create_mission, decide, record_return):
        """Scénario E: 'Validée' puis 'Payé', visible dans l'historique."""
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()

        response = set_remb(client, staff["F001"], mission_id, "Validée")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["statut_remb"] == "Validée"

        response = set_remb(client, staff["F001"], mission_id, "Payé")
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["success"] is True
        assert data["mission_id"] == mission_id
        assert data["statut_remb"] == "Payé"

        history = client.get("/finance/missions/historique", headers=staff["F001"]).json()
        assert [(m["id"], m["statut_remb"]) for m in history] == [(mission_id, "Payé")]

    def test_same_status_twice_is_idempotent(self, client, staff, admin_headers, create_mission, decide, record_return):
        """Deux appels identiques réussissent; le second n'écrit rien."""
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()

        first = set_remb(client, staff["F001"], mission_id, "Validée")
        second = set_remb(client, staff["F001"], mission_id, "Validée")
        assert first.status_code == second.status_code == status.HTTP_200_OK
        assert first.json()["statut_remb"] == second.json()["statut_remb"] == "Validée"

        logs = client.get("/admin/logs", headers=admin_headers, params={"action_type": "REMB_STATUS"}).json()
        assert logs["total"] == 1

    def test_invalid_status(self, client, staff, create_mission, decide):
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        response = set_remb(client, staff["F001"], mission_id, "Remboursée")
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "Statut de remboursement" in response.json()["detail"]

    def test_unknown_mission(self, client, staff):
        response = set_remb(client, staff["F001"], "MS00000000", "Validée")
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_requires_validated_mission(self, client, staff, create_mission):
        """Mission encore en attente chez le manager: 409."""
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        response = set_remb(client, staff["F001"], mission_id, "Payé")
        assert response.status_code == status.HTTP_409_CONFLICT

        mission = client.get(f"/missions/{mission_id}", headers=staff["E001"]).json()
        assert mission["statut_remb"] == "En attente"

    def test_requires_declared_return(self, client, staff, create_mission, decide):
        """Mission validée sans retour déclaré: ni validation ni paiement."""
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")

        assert set_remb(client, staff["F001"], mission_id, "Validée").status_code == status.HTTP_409_CONFLICT
        assert set_remb(client, staff["F001"], mission_id, "Refusée").status_code == status.HTTP_409_CONFLICT

        mission = client.get(f"/missions/{mission_id}", headers=staff["E001"]).json()
        assert mission["statut_remb"] == "En attente"
        assert client.get("/finance/missions/historique", headers=staff["F001"]).json() == []

    def test_pay_requires_validated_reimbursement(self, client, staff, create_mission, decide, record_return):
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()
        response = set_remb(client, staff["F001"], mission_id, "Payé")
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_paid_is_final(self, client, staff, create_mission, decide, record_return):
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()
        set_remb(client, staff["F001"], mission_id, "Validée")
        set_remb(client, staff["F001"], mission_id, "Payé")

        response = set_remb(client, staff["F001"], mission_id, "En attente")
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_refusal(self, client, staff, create_mission, decide, record_return):
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()
        response = set_remb(client, staff["F001"], mission_id, "Refusée")
        assert response.status_code == status.HTTP_200_OK

    def test_only_financier(self, client, staff, admin_headers, create_mission, decide):
        """Ni l'employé ni l'administrateur ne fixent le remboursement."""
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        assert set_remb(client, staff["E001"], mission_id, "Validée").status_code == status.HTTP_403_FORBIDDEN
        assert set_remb(client, admin_headers, mission_id, "Validée").status_code == status.HTTP_403_FORBIDDEN


class TestReimbursementViews:
    """Tests des listes de la finance."""

    def test_pending_lists_declared_returns(self, client, staff, create_mission, decide, record_return):
        """Seules les missions validées dont le retour est déclaré."""
        declared = create_mission(staff["E001"], vehicule="moyen publique")
        decide(declared, "Validée")
        record_return()

        not_declared = create_mission(
            staff["E002"], vehicule="moyen publique",
            date_mission="2024-05-09", date_sortie="2024-05-09", date_retour="2024-05-09",
        )
        decide(not_declared, "Validée")

        response = client.get("/finance/missions/en-attente", headers=staff["F001"])
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [m["id"] for m in data] == [declared]
        assert data[0]["employe"] == "Nom E001"
        assert data[0]["grand_total"] == 38
        assert data[0]["difference"] == -62
        assert data[0]["kilometrage"] == 200

    def test_history_round_trip(self, client, staff, create_mission, decide, record_return):
        """Le détail des frais relu dans l'historique est identique à celui déclaré."""
        detail = [
            {"date": "2024-05-02", "dep": "Tunis", "arr": "Sfax", "Km": "270",
             "montantKm": "54.5", "P_D": "30", "repas": "18", "diner": "12",
             "logement": "80", "detali": "Parking", "montantdet": "5"},
            {"date": "2024-05-03", "dep": "Sfax", "arr": "Tunis", "Km": "270",
             "montantKm": 54.5, "P_D": None, "repas": "abc", "diner": "",
             "logement": 0, "detali": "", "montantdet": ""},
        ]
        mission_id = create_mission(staff["E001"], vehicule="moyen publique", frais_de_mission=300)
        decide(mission_id, "Validée")
        record_return(detail=detail)
        set_remb(client, staff["F001"], mission_id, "Validée")

        history = client.get("/finance/missions/historique", headers=staff["F001"]).json()
        assert len(history) == 1
        line = history[0]
        assert line["detail_frais"] == detail
        assert line["grand_total"] == 254
        assert line["avance"] == 300
        assert line["difference"] == -46
        assert line["statut_remb"] == "Validée"

    def test_history_excludes_pending(self, client, staff, create_mission, decide, record_return):
        mission_id = create_mission(staff["E001"], vehicule="moyen publique")
        decide(mission_id, "Validée")
        record_return()
        assert client.get("/finance/missions/historique", headers=staff["F001"]).json() == []

    def test_admin_can_read_history(self, client, staff, admin_headers):
        response = client.get("/finance/missions/historique", headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK

    def test_manager_cannot_read_history(self, client, staff):
        response = client.get("/finance/missions/historique", headers=staff["M001"])
        assert response.status_code == status.HTTP_403_FORBIDDEN
