"""
Database layer using SQLAlchemy 2.0 with async support.

Provides:
- SQLAlchemy ORM models for relation edges and legacy UID mappings
- Async engine and session management
- Relation / mapping operations via DatabaseService

Relation uniqueness is enforced by a unique constraint on
(source_uid, target_uid, relation_type); inserts use ON CONFLICT DO
NOTHING so concurrent duplicate inserts collapse to one row.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    or_,
    select,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.config import get_settings
from src.models.mapping import UidMapping
from src.models.relation import Relation

logger = logging.getLogger(__name__)

# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")

RELATION_KEY_COLUMNS = ("source_uid", "target_uid", "relation_type")


# Base class for all ORM models
class Base(DeclarativeBase):
    """Base class for SQLAlchemy ORM models."""
    pass


# -----------------------------------------------------------------------------
# ORM Models
# -----------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class BusinessRelationDB(Base):
    """Relation edges table (append-only)."""

    __tablename__ = "business_relations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    target_uid: Mapped[str] = mapped_column(String(128), nullable=False)
    relation_type: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_json: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        UniqueConstraint(*RELATION_KEY_COLUMNS, name="uq_business_relation"),
        Index("idx_relation_source", "source_uid"),
        Index("idx_relation_target", "target_uid"),
    )

    def to_model(self) -> Relation:
        return Relation(
            source_uid=self.source_uid,
            target_uid=self.target_uid,
            relation_type=self.relation_type,
            created_at=_as_utc(self.created_at),
            metadata=self.metadata_json,
        )


class BusinessUidMappingDB(Base):
    """Legacy record id -> UID mappings."""

    __tablename__ = "business_uid_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    old_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    uid: Mapped[str] = mapped_column(String(128), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, default="OTHER")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        Index("idx_uid_mapping_uid", "uid"),
        Index("idx_uid_mapping_type", "entity_type"),
    )

    def to_model(self) -> UidMapping:
        return UidMapping(
            old_id=self.old_id,
            uid=self.uid,
            entity_type=self.entity_type,
            created_at=_as_utc(self.created_at),
        )


# -----------------------------------------------------------------------------
# Database Engine & Session
# -----------------------------------------------------------------------------

_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Get or create the async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        kwargs: dict[str, Any] = {"echo": settings.debug}
        if not settings.database_url.startswith("sqlite"):
            kwargs["pool_size"] = settings.db_pool_size
            kwargs["max_overflow"] = settings.db_max_overflow
        _engine = create_async_engine(settings.database_url, **kwargs)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_db_session(
    factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session; commits on success, rolls back on error."""
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Initialize database - create all tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# -----------------------------------------------------------------------------
# Database Service
# -----------------------------------------------------------------------------

class DatabaseService:
    """Service class for relation and UID-mapping persistence."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    # ----- Relations -----

    async def get_relation_by_key(
        self, source_uid: str, target_uid: str, relation_type: str
    ) -> Optional[BusinessRelationDB]:
        """Get relation by its uniqueness triple."""
        result = await self.session.execute(
            select(BusinessRelationDB).where(
                BusinessRelationDB.source_uid == source_uid,
                BusinessRelationDB.target_uid == target_uid,
                BusinessRelationDB.relation_type == relation_type,
            )
        )
        return result.scalar_one_or_none()

    async def insert_relation(self, relation: Relation) -> tuple[BusinessRelationDB, bool]:
        """
        Insert a relation unless its triple already exists.

        Returns:
            (stored row, created) - the existing row and False on duplicate
        """
        values = {
            "source_uid": relation.source_uid,
            "target_uid": relation.target_uid,
            "relation_type": relation.relation_type,
            "metadata_json": relation.metadata,
            "created_at": relation.created_at,
        }

        dialect = self.dialect_name
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = (
                insert(BusinessRelationDB.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=list(RELATION_KEY_COLUMNS))
            )
            result = await self.session.execute(stmt)
            created = result.rowcount == 1
        else:
            created = True
            try:
                async with self.session.begin_nested():
                    self.session.add(BusinessRelationDB(**values))
                    await self.session.flush()
            except IntegrityError:
                created = False

        if not created:
            logger.debug("Relation already stored: %s", relation.key)
        row = await self.get_relation_by_key(*relation.key)
        return row, created

    async def get_relations_for_uid(self, uid: str) -> list[BusinessRelationDB]:
        """Get all relations where uid is the source or the target."""
        result = await self.session.execute(
            select(BusinessRelationDB)
            .where(
                or_(
                    BusinessRelationDB.source_uid == uid,
                    BusinessRelationDB.target_uid == uid,
                )
            )
            .order_by(BusinessRelationDB.id)
        )
        return list(result.scalars().all())

    async def get_relations(
        self,
        source_uid: Optional[str] = None,
        target_uid: Optional[str] = None,
    ) -> list[BusinessRelationDB]:
        """List relations, optionally filtered by either endpoint."""
        stmt = select(BusinessRelationDB)
        if source_uid:
            stmt = stmt.where(BusinessRelationDB.source_uid == source_uid)
        if target_uid:
            stmt = stmt.where(BusinessRelationDB.target_uid == target_uid)
        result = await self.session.execute(stmt.order_by(BusinessRelationDB.id))
        return list(result.scalars().all())

    async def count_relations(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(BusinessRelationDB)
        )
        return int(result.scalar_one())

    # ----- UID Mappings -----

    async def get_uid_mapping(self, old_id: str) -> Optional[BusinessUidMappingDB]:
        """Get mapping by legacy id."""
        result = await self.session.execute(
            select(BusinessUidMappingDB).where(BusinessUidMappingDB.old_id == old_id)
        )
        return result.scalar_one_or_none()

    async def upsert_uid_mapping(
        self,
        old_id: str,
        uid: str,
        entity_type: Optional[str] = None,
    ) -> BusinessUidMappingDB:
        """Create a mapping, or re-point an existing old_id at a new UID."""
        entity_type = (entity_type or "").strip() or None
        row = await self.get_uid_mapping(old_id)
        if row:
            row.uid = uid
            if entity_type:
                row.entity_type = entity_type
        else:
            row = BusinessUidMappingDB(
                old_id=old_id,
                uid=uid,
                entity_type=entity_type or "OTHER",
            )
            self.session.add(row)
        await self.session.flush()
        return row

    async def list_uid_mappings(
        self,
        entity_type: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> list[BusinessUidMappingDB]:
        """List mappings, newest first."""
        stmt = select(BusinessUidMappingDB)
        if entity_type:
            stmt = stmt.where(BusinessUidMappingDB.entity_type == entity_type)
        if uid:
            stmt = stmt.where(BusinessUidMappingDB.uid == uid)
        result = await self.session.execute(
            stmt.order_by(BusinessUidMappingDB.created_at.desc(), BusinessUidMappingDB.id.desc())
        )
        return list(result.scalars().all())
