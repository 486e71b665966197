"""
Async database engine and session management.

Purpose:
- Own the SQLAlchemy async engine for the process (MySQL via aiomysql in
  production, SQLite via aiosqlite in tests)
- Provide an async session factory for the document store
- Provide Base declarative class for ORM models

The engine is created lazily on first use and disposed explicitly on shutdown;
nothing here is created at import time.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
import logging
from typing import Optional

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
	def __init__(self, url: str, echo: bool = False):
		self.url = url
		self.echo = echo
		self.engine: Optional[AsyncEngine] = None
		self.session_maker: Optional[async_sessionmaker[AsyncSession]] = None

	def connect(self) -> AsyncEngine:
		"""Create the engine and session factory once; later calls reuse them."""
		if self.engine is None:
			self.engine = create_async_engine(self.url, echo=self.echo, future=True)
			self.session_maker = async_sessionmaker(
				self.engine, expire_on_commit=False, class_=AsyncSession
			)
			logger.info("Async DB engine created: %s", self.engine.url.render_as_string(hide_password=True))
		return self.engine

	def session(self) -> AsyncSession:
		self.connect()
		return self.session_maker()

	async def create_all(self) -> None:
		"""Create tables for every registered model (development convenience)."""
		from models import db_models  # noqa: F401 ensure models are imported so tables are registered

		engine = self.connect()
		async with engine.begin() as conn:
			await conn.run_sync(Base.metadata.create_all)
		logger.info("Database schema created/updated")

	async def dispose(self) -> None:
		if self.engine is not None:
			await self.engine.dispose()
			logger.info("Async DB engine disposed")
		self.engine = None
		self.session_maker = None
