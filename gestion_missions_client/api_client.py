"""
Gestion Missions API Client
Module client pour communiquer avec le serveur Gestion Missions.

IMPORTANT: Pour un serveur exposé sur Internet, utilisez HTTPS obligatoirement.

Usage:
    from gestion_missions_client import GestionMissionsClient

    client = GestionMissionsClient("https://serveur.example.com")
    client.login("EMP001", "mot_de_passe")

    # Demande de mission avec une voiture de service
    client.create_mission({
        "date_mission": "2024-05-02",
        "date_sortie": "2024-05-02",
        "heure_sortie": "08:00",
        "date_retour": "2024-05-03",
        "heure_retour": "18:00",
        "depart": "Tunis",
        "destination": "Sfax",
        "objet": "Audit",
        "vehicule": "voiture de service",
        "vehicule_id": "VT0001",
        "immatriculation": "123 TU 4567",
    })
"""

import getpass
from datetime import date, datetime
from typing import Optional, Dict, Any, List, Union

import requests
import urllib3

DateLike = Union[date, str]


class ApiError(Exception):
    """Erreur renvoyée par l'API (code HTTP >= 400 hors 401/403/404)"""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(f"Erreur API ({status_code}): {detail}")
        self.status_code = status_code
        self.detail = detail


def _iso(value: Optional[DateLike]) -> Optional[str]:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _serialize(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convertit les dates en chaînes ISO pour l'envoi JSON"""
    if data is None:
        return None
    return {key: _iso(value) for key, value in data.items()}


class GestionMissionsClient:
    """Client pour l'API Gestion Missions"""

    def __init__(
        self,
        server_url: str,
        timeout: int = 30,
        verify_ssl: bool = True,
        session=None
    ):
        """
        Initialise le client API.

        Args:
            server_url: URL du serveur (ex: "https://serveur.example.com")
            timeout: Timeout des requêtes en secondes
            verify_ssl: Vérifier le certificat SSL (False pour certificats auto-signés)
            session: Session HTTP à utiliser (requests.Session par défaut)
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.token: Optional[str] = None
        self.user_info: Optional[Dict] = None

        if session is None:
            session = requests.Session()
            session.verify = verify_ssl
            if not verify_ssl:
                # Certificat auto-signé: avertissements inutiles
                urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        self._session = session

    def _headers(self) -> Dict[str, str]:
        """Retourne les headers avec le token d'authentification"""
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        params: Optional[Dict] = None
    ) -> Any:
        """
        Effectue une requête HTTP vers l'API.

        Args:
            method: Méthode HTTP (GET, POST, PUT)
            endpoint: Chemin de l'endpoint (ex: "/missions/")
            data: Données à envoyer (pour POST/PUT)
            params: Paramètres de requête (les valeurs None sont ignorées)

        Returns:
            Réponse JSON de l'API, None si la ressource est introuvable

        Raises:
            ConnectionError: Si le serveur est inaccessible
            PermissionError: Si l'authentification échoue ou l'accès est refusé
            ApiError: Pour les autres erreurs
        """
        url = f"{self.server_url}{endpoint}"
        if params:
            params = {key: _iso(value) for key, value in params.items() if value is not None}

        try:
            response = self._session.request(
                method=method,
                url=url,
                headers=self._headers(),
                json=_serialize(data),
                params=params or None,
                timeout=self.timeout,
            )
        except requests.exceptions.ConnectionError:
            raise ConnectionError(f"Impossible de se connecter au serveur {self.server_url}")
        except requests.exceptions.Timeout:
            raise TimeoutError(f"Le serveur ne répond pas (timeout: {self.timeout}s)")

        if response.status_code == 401:
            # Token expiré ou invalide
            self.token = None
            raise PermissionError(f"Session expirée, reconnexion nécessaire: {self._detail(response)}")

        if response.status_code == 403:
            raise PermissionError(f"Accès refusé: {self._detail(response)}")

        if response.status_code == 404:
            return None

        if response.status_code >= 400:
            raise ApiError(response.status_code, self._detail(response))

        if response.content:
            return response.json()
        return {"success": True}

    @staticmethod
    def _detail(response) -> Any:
        try:
            return response.json().get("detail", "Erreur inconnue")
        except ValueError:
            return response.text or "Erreur inconnue"

    # ============== Authentification ==============

    def login(self, identifiant: str, mot_de_passe: Optional[str] = None) -> bool:
        """
        Authentifie l'utilisateur auprès du serveur.

        Args:
            identifiant: Matricule de l'utilisateur
            mot_de_passe: Mot de passe (demandé interactivement si non fourni)

        Returns:
            True si l'authentification réussit

        Raises:
            PermissionError: Si les identifiants sont refusés
        """
        if mot_de_passe is None:
            mot_de_passe = getpass.getpass(f"Mot de passe pour {identifiant}: ")

        response = self._request("POST", "/auth/login", {
            "identifiant": identifiant,
            "mot_de_passe": mot_de_passe,
        })

        if response and "access_token" in response:
            self.token = response["access_token"]
            self.user_info = response.get("user", {})
            return True

        return False

    def logout(self):
        """Oublie le token (il expire de lui-même côté serveur)"""
        self.token = None
        self.user_info = None

    def is_authenticated(self) -> bool:
        """Vérifie si l'utilisateur est authentifié"""
        return self.token is not None

    def get_current_user(self) -> Optional[Dict]:
        """Profil de l'utilisateur courant, relu sur le serveur"""
        return self._request("GET", "/auth/me")

    @property
    def role(self) -> Optional[str]:
        if not self.user_info:
            return None
        return self.user_info.get("role")

    # ============== Missions (employé) ==============

    def create_mission(self, mission_data: Dict) -> Dict:
        """
        Crée une nouvelle mission au statut 'En attente'.

        Returns:
            {"success": True, "message": ..., "id": identifiant de la mission}
        """
        return self._request("POST", "/missions/", mission_data)

    def get_my_missions(self) -> List[Dict]:
        """Missions de l'utilisateur connecté"""
        return self._request("GET", "/missions/mine") or []

    def get_user_missions(self, user_id: str) -> List[Dict]:
        """Missions d'un utilisateur (soi-même, un collaborateur ou tout le monde pour l'admin)"""
        return self._request("GET", f"/missions/utilisateur/{user_id}") or []

    def get_mission(self, mission_id: str) -> Optional[Dict]:
        """Récupère une mission par son ID"""
        return self._request("GET", f"/missions/{mission_id}")

    def get_validated_mission_dates(
        self,
        date_mission: DateLike,
        user_id: Optional[str] = None
    ) -> Optional[Dict]:
        """Horaires de sortie et de retour de la mission validée à cette date"""
        params = {"date_mission": date_mission, "user_id": user_id}
        return self._request("GET", "/missions/dates", params=params)

    def record_mission_return(
        self,
        date_mission: DateLike,
        compteur_depart: Optional[int],
        compteur_arrivee: Optional[int],
        detail_frais: List[Dict],
        user_id: Optional[str] = None,
        mission_id: Optional[str] = None
    ) -> Dict:
        """
        Déclare le retour d'une mission validée.

        Args:
            date_mission: Date de la mission
            compteur_depart: Kilométrage au départ
            compteur_arrivee: Kilométrage au retour
            detail_frais: Une ligne par jour (date, montantKm, P_D, repas, diner, logement, montantdet...)
            user_id: Titulaire de la mission (utilisateur connecté par défaut)
            mission_id: Mission visée si plusieurs sont validées à cette date
        """
        return self._request("PUT", "/missions/retour", {
            "user_id": user_id,
            "date_mission": date_mission,
            "compteur_depart": compteur_depart,
            "compteur_arrivee": compteur_arrivee,
            "detail_frais": detail_frais,
            "mission_id": mission_id,
        })

    # ============== Manager ==============

    def get_pending_missions(self, manager_id: Optional[str] = None) -> List[Dict]:
        """Missions en attente des collaborateurs du manager"""
        if manager_id is None and self.user_info:
            manager_id = self.user_info.get("id")
        params = {"manager_id": manager_id}
        return self._request("GET", "/manager/missions/en-attente", params=params) or []

    def set_mission_status(self, mission_id: str, statut: str) -> Optional[Dict]:
        """Valide ou refuse une mission ('Validée' ou 'Refusée')"""
        return self._request("PUT", f"/manager/missions/{mission_id}/statut", {"statut": statut})

    # ============== Finance ==============

    def get_pending_reimbursements(self) -> List[Dict]:
        """Retours déclarés en attente de remboursement"""
        return self._request("GET", "/finance/missions/en-attente") or []

    def get_reimbursement_history(self) -> List[Dict]:
        """Historique des remboursements avec totaux recalculés"""
        return self._request("GET", "/finance/missions/historique") or []

    def set_reimbursement_status(self, mission_id: str, statut_remb: str) -> Optional[Dict]:
        """Met à jour le statut de remboursement (En attente, Validée, Refusée, Payé)"""
        return self._request(
            "PUT",
            f"/finance/missions/{mission_id}/statut-remb",
            {"statut_remb": statut_remb}
        )

    # ============== Parc automobile ==============

    def get_vehicles(
        self,
        statut: Optional[str] = None,
        marque: Optional[str] = None,
        puissance_min: Optional[int] = None,
        puissance_max: Optional[int] = None,
        recherche: Optional[str] = None
    ) -> List[Dict]:
        """Liste le parc avec filtres optionnels"""
        params = {
            "statut": statut,
            "marque": marque,
            "puissance_min": puissance_min,
            "puissance_max": puissance_max,
            "recherche": recherche,
        }
        return self._request("GET", "/vehicules/", params=params) or []

    def get_available_vehicles(self) -> List[Dict]:
        """Véhicules au statut 'Disponible'"""
        return self._request("GET", "/vehicules/disponibles") or []

    def count_vehicles(self) -> int:
        result = self._request("GET", "/vehicules/count")
        return result["count"] if result else 0

    def create_vehicle(self, vehicle_data: Dict) -> Dict:
        """Ajoute un véhicule au parc"""
        return self._request("POST", "/vehicules/", vehicle_data)

    # ============== Personnel ==============

    def get_personnel(self) -> List[Dict]:
        return self._request("GET", "/personnel/") or []

    def count_personnel(self) -> int:
        result = self._request("GET", "/personnel/count")
        return result["count"] if result else 0

    def create_employe(self, employe_data: Dict) -> Dict:
        """Ajoute un membre du personnel"""
        return self._request("POST", "/personnel/", employe_data)

    def update_profile(
        self,
        user_id: str,
        role: Optional[str] = None,
        nouveau_mot_de_passe: Optional[str] = None
    ) -> Optional[Dict]:
        """Modifie le rôle et/ou le mot de passe d'un membre du personnel"""
        return self._request("PUT", f"/personnel/{user_id}/profil", {
            "role": role,
            "nouveau_mot_de_passe": nouveau_mot_de_passe,
        })

    # ============== Administration ==============

    def get_activity_logs(
        self,
        user_id: Optional[str] = None,
        action_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict:
        """Journal d'activité: {"total": ..., "logs": [...]}"""
        params = {
            "user_id": user_id,
            "action_type": action_type,
            "limit": limit,
            "offset": offset,
        }
        return self._request("GET", "/admin/logs", params=params) or {"total": 0, "logs": []}

    # ============== Utilitaires ==============

    def check_server(self) -> Dict:
        """
        Vérifie l'état du serveur.

        Returns:
            Informations sur le serveur
        """
        try:
            # Pas besoin d'authentification pour /health
            response = self._session.get(f"{self.server_url}/health", timeout=5)
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            return {"status": "error", "message": str(e)}

    def get_server_info(self) -> Dict:
        """Récupère les informations du serveur"""
        try:
            response = self._session.get(f"{self.server_url}/server-info", timeout=5)
            return response.json()
        except (requests.exceptions.RequestException, ValueError):
            return {}


# ============== Exemple d'utilisation ==============

if __name__ == "__main__":
    SERVER_URL = "http://localhost:8010"

    client = GestionMissionsClient(SERVER_URL)

    print("Vérification du serveur...")
    status = client.check_server()
    print(f"  Status: {status.get('status')}")
    print(f"  Uptime: {status.get('uptime_formatted')}")

    print("\nConnexion...")
    try:
        identifiant = input("Matricule: ")
        if client.login(identifiant):
            print(f"  Utilisateur: {client.user_info.get('nom_et_prenom')}")
            print(f"  Rôle: {client.role}")

            missions = client.get_my_missions()
            print(f"  Missions: {len(missions)}")

            client.logout()
            print("\nDéconnecté.")

    except ConnectionError as e:
        print(f"  Erreur de connexion: {e}")
    except PermissionError as e:
        print(f"  Accès refusé: {e}")
    except ApiError as e:
        print(f"  Erreur: {e}")
