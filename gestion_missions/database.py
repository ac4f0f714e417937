"""
Configuration de la base de données SQLite
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from gestion_missions.exceptions import PersistenceError

logger = logging.getLogger("gestion_missions")


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy"""
    pass


class Database:
    """Moteur et fabrique de sessions, un par application"""

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.engine = create_async_engine(url, echo=echo, future=True)
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init(self):
        """Initialiser la base de données (créer les tables)"""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self):
        """Fermer proprement la connexion à la base de données"""
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Dépendance FastAPI pour obtenir une session de base de données"""
    database: Database = request.app.state.database
    async with database.session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Transaction bornée: commit à la sortie normale, rollback sur toute
    exception. Les erreurs SQLAlchemy sont converties en PersistenceError
    une fois le rollback effectué.
    """
    try:
        async with session.begin():
            yield session
    except SQLAlchemyError as e:
        logger.exception(f"Erreur base de données, transaction annulée: {e}")
        raise PersistenceError() from e
