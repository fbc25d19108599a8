from typing import Any, Dict, Type

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.errors import DuplicateEntryError


async def add_and_flush(session: AsyncSession, entity: SQLModel) -> SQLModel:
    """Insert an entity, translating unique-index collisions"""
    session.add(entity)
    try:
        await session.flush()
    except IntegrityError as exc:
        raise DuplicateEntryError(str(exc.orig)) from exc
    await session.refresh(entity)
    return entity


async def versioned_update(
    session: AsyncSession,
    model: Type[SQLModel],
    entity_id: Any,
    expected_version: int,
    values: Dict[str, Any],
) -> bool:
    """UPDATE ... SET version = version + 1 WHERE id = :id AND version = :expected"""
    stmt = (
        update(model)
        .where(model.id == entity_id, model.version == expected_version)
        .values(**values, version=model.version + 1)
        .execution_options(synchronize_session=False)
    )
    try:
        result = await session.execute(stmt)
    except IntegrityError as exc:
        raise DuplicateEntryError(str(exc.orig)) from exc
    return result.rowcount == 1


async def version_guard(
    session: AsyncSession, model: Type[SQLModel], entity_id: Any, expected_version: int
) -> bool:
    """
    UPDATE ... SET version = version WHERE id = :id AND version = :expected

    Takes the row's write lock without changing it, so a row that was only
    read stays as read until the transaction ends.
    """
    stmt = (
        update(model)
        .where(model.id == entity_id, model.version == expected_version)
        .values(version=model.version)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1
