"""FastAPI dependencies: database session and clone service."""
from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.clone_service import PolicyCloneService
from ..persistence.db import get_session_factory


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """Yield a session committed when the request succeeds."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_clone_service(session: AsyncSession = Depends(get_db_session)) -> PolicyCloneService:
    return PolicyCloneService(session)


__all__ = ["get_db_session", "get_clone_service"]
