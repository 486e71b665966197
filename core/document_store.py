"""
Generic document store gateway over the async SQLAlchemy session.

Purpose:
- create / create_unique / find / find_one / update_one / delete_one for any
  ORM document kind (AccountModel today)
- A scoped transaction that commits on success and rolls back on any raised
  exception
- push / pull patch primitives applied to one document under a row lock

Every operation takes an optional `session`. Without one it opens its own
session and commits (one logical round trip); with one it joins the caller's
transaction and only flushes.

All SQLAlchemy failures are re-raised as StorageError. Nothing is retried.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Mapping, Optional, Type, TypeVar, Union
import logging

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import Database
from core.exceptions import Conflict, NotFound, StorageError

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT")
Patch = Union[Mapping[str, Any], Callable[[Any], None]]


def push(field: str, value: Any) -> Callable[[Any], None]:
    """Patch appending `value` to the list stored in `field`."""
    def apply(document):
        items = getattr(document, field)
        if items is None:
            setattr(document, field, [value])
        else:
            items.append(value)
    return apply


def pull(field: str, value: Any = None, where: Optional[Callable[[Any], bool]] = None) -> Callable[[Any], None]:
    """Patch removing every element of `field` equal to `value` (or matching `where`)."""
    matches = where if where is not None else (lambda item: item == value)

    def apply(document):
        items = getattr(document, field) or []
        setattr(document, field, [item for item in items if not matches(item)])
    return apply


class DocumentStore:
    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Begin, yield the session, commit on success / roll back on error, always close."""
        session = self.database.session()
        try:
            async with session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error("Transaction aborted by store failure: %s", e)
            raise StorageError(f"Transaction aborted: {e}") from e
        except Exception as e:
            logger.info("Transaction rolled back: %s", e)
            raise
        finally:
            await session.close()

    @asynccontextmanager
    async def _scope(self, session: Optional[AsyncSession]) -> AsyncIterator[AsyncSession]:
        if session is None:
            async with self.transaction() as own:
                yield own
            return
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error("Store operation failed: %s", e)
            raise StorageError(str(e)) from e

    async def _insert(self, session: AsyncSession, model: Type[DocumentT], data: Mapping[str, Any]) -> DocumentT:
        document = model(**data)
        session.add(document)
        await session.flush()
        return await self._reload(session, model, document)

    async def _reload(self, session: AsyncSession, model: Type[DocumentT], document: DocumentT) -> DocumentT:
        # populate_existing re-runs the eager loaders so the document is fully loaded once detached
        return await session.get(model, inspect(document).identity, populate_existing=True)

    async def create(self, model: Type[DocumentT], data: Mapping[str, Any],
                     session: Optional[AsyncSession] = None) -> DocumentT:
        async with self._scope(session) as s:
            document = await self._insert(s, model, data)
        logger.debug("Created %s", model.__name__)
        return document

    async def create_unique(self, model: Type[DocumentT], data: Mapping[str, Any], unique_filter,
                            session: Optional[AsyncSession] = None) -> DocumentT:
        """Insert unless a document already matches `unique_filter` (409 Conflict)."""
        async with self._scope(session) as s:
            result = await s.execute(select(model).where(unique_filter).limit(1))
            if result.scalars().first() is not None:
                logger.info("Duplicate %s rejected", model.__name__)
                raise Conflict("Document already exists")
            document = await self._insert(s, model, data)
        return document

    async def find(self, model: Type[DocumentT], filter=None,
                   session: Optional[AsyncSession] = None) -> List[DocumentT]:
        stmt = select(model)
        if filter is not None:
            stmt = stmt.where(filter)
        async with self._scope(session) as s:
            result = await s.execute(stmt)
            return list(result.scalars().all())

    async def find_one(self, model: Type[DocumentT], filter,
                       session: Optional[AsyncSession] = None) -> Optional[DocumentT]:
        async with self._scope(session) as s:
            result = await s.execute(select(model).where(filter).limit(1))
            return result.scalars().first()

    async def update_one(self, model: Type[DocumentT], filter, patch: Patch, new: bool = True,
                         session: Optional[AsyncSession] = None) -> Optional[DocumentT]:
        """
        Apply `patch` to the first document matching `filter`.

        `patch` is either a mapping of field -> value or a callable that mutates
        the document in place (see push / pull). Raises NotFound when nothing
        matches. Returns the post-update document when `new` is true.
        """
        async with self._scope(session) as s:
            stmt = select(model).where(filter).limit(1).with_for_update()
            document = (await s.execute(stmt)).scalars().first()
            if document is None:
                raise NotFound("Document not found")
            if callable(patch):
                patch(document)
            else:
                for key, value in patch.items():
                    setattr(document, key, value)
            await s.flush()
            if new:
                document = await self._reload(s, model, document)
        return document if new else None

    async def delete_one(self, model: Type[DocumentT], filter,
                         session: Optional[AsyncSession] = None) -> Optional[DocumentT]:
        """Delete the first document matching `filter`; returns it, or None if nothing matched."""
        async with self._scope(session) as s:
            result = await s.execute(select(model).where(filter).limit(1))
            document = result.scalars().first()
            if document is None:
                return None
            await s.delete(document)
            await s.flush()
        logger.debug("Deleted %s", model.__name__)
        return document
