"""
Gestion Missions - serveur API des ordres de mission
"""

__version__ = "1.0.0"
