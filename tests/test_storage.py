"""
Tests for the storage layer

Tests cover:
- SQLAlchemy model definitions
- DatabaseService relation and UID-mapping operations (SQLite in memory)
- SQL-backed relation and mapping stores

Note: PostgreSQL integration is not exercised here; the same statements
run against an in-memory SQLite database through aiosqlite.
"""

import asyncio

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.identity.legacy import SqlUidMappingStore
from src.lineage.relation_store import SqlRelationStore
from src.models.relation import Relation
from src.storage.database import (
    Base,
    BusinessRelationDB,
    BusinessUidMappingDB,
    DatabaseService,
    get_db_session,
    init_db,
)


async def _memory_db():
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(engine)
    return engine, async_sessionmaker(engine, expire_on_commit=False)


def _relation(source="CASH_FLOW-1-AAA", target="ORDER-1-BBB", relation_type="PAYMENT", **kw):
    return Relation(source_uid=source, target_uid=target, relation_type=relation_type, **kw)


class TestSQLAlchemyModels:
    """Test SQLAlchemy ORM model definitions."""

    def test_relation_db_columns(self):
        """BusinessRelationDB should have all required columns."""
        columns = {c.name for c in BusinessRelationDB.__table__.columns}
        required = {
            "id", "source_uid", "target_uid", "relation_type",
            "metadata_json", "created_at",
        }
        assert required.issubset(columns)

    def test_relation_unique_constraint(self):
        """The relation triple is unique at the table level."""
        constraints = [
            c for c in BusinessRelationDB.__table__.constraints
            if c.name == "uq_business_relation"
        ]
        assert len(constraints) == 1
        assert [col.name for col in constraints[0].columns] == [
            "source_uid", "target_uid", "relation_type",
        ]

    def test_uid_mapping_db_columns(self):
        """BusinessUidMappingDB should have all required columns."""
        columns = {c.name for c in BusinessUidMappingDB.__table__.columns}
        assert {"old_id", "uid", "entity_type", "created_at"}.issubset(columns)
        assert BusinessUidMappingDB.__table__.c.old_id.unique

    def test_base_metadata_tables(self):
        """All tables should be registered in Base metadata."""
        assert set(Base.metadata.tables) == {"business_relations", "business_uid_mappings"}


class TestDatabaseService:
    """Test DatabaseService against SQLite."""

    @pytest.mark.asyncio
    async def test_insert_relation_then_duplicate(self):
        """Second insert of the same triple returns the first row."""
        engine, factory = await _memory_db()
        try:
            async with get_db_session(factory) as session:
                db = DatabaseService(session)
                first, created = await db.insert_relation(_relation(metadata={"amount": "9.50"}))
                assert created
                second, created_again = await db.insert_relation(_relation())
                assert not created_again
                assert second.id == first.id
                assert second.metadata_json == {"amount": "9.50"}
                assert await db.count_relations() == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_relations_for_uid_either_end(self):
        """Lookup matches the UID as source or target, in insertion order."""
        engine, factory = await _memory_db()
        try:
            async with get_db_session(factory) as session:
                db = DatabaseService(session)
                await db.insert_relation(_relation("A-1-X", "B-1-Y"))
                await db.insert_relation(_relation("C-1-Z", "A-1-X", "REVERSAL"))
                await db.insert_relation(_relation("C-1-Z", "B-1-Y"))

                rows = await db.get_relations_for_uid("A-1-X")
                assert [(r.source_uid, r.target_uid) for r in rows] == [
                    ("A-1-X", "B-1-Y"), ("C-1-Z", "A-1-X"),
                ]
                by_target = await db.get_relations(target_uid="B-1-Y")
                assert len(by_target) == 2
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_upsert_uid_mapping(self):
        """Upsert creates, then re-points without losing the type."""
        engine, factory = await _memory_db()
        try:
            async with get_db_session(factory) as session:
                db = DatabaseService(session)
                created = await db.upsert_uid_mapping("po-1", "ORDER-1-AAA", "ORDER")
                updated = await db.upsert_uid_mapping("po-1", "ORDER-2-BBB")
                assert updated.id == created.id
                assert updated.uid == "ORDER-2-BBB"
                assert updated.entity_type == "ORDER"
                assert len(await db.list_uid_mappings(entity_type="ORDER")) == 1
        finally:
            await engine.dispose()


class TestSqlStores:
    """Test the SQL-backed store implementations."""

    @pytest.mark.asyncio
    async def test_sql_relation_store_idempotent(self):
        """add() is idempotent and reports whether it created a row."""
        engine, factory = await _memory_db()
        try:
            store = SqlRelationStore(factory)
            stored, created = await store.add(_relation())
            again, created_again = await store.add(_relation())

            assert created and not created_again
            assert again.key == stored.key
            assert again.created_at == stored.created_at
            assert await store.count() == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_sql_relation_store_lookups(self):
        engine, factory = await _memory_db()
        try:
            store = SqlRelationStore(factory)
            await store.add(_relation("A-1-X", "B-1-Y"))
            await store.add(_relation("B-1-Y", "C-1-Z", "SETTLEMENT"))

            assert len(await store.by_uid("B-1-Y")) == 2
            assert [r.target_uid for r in await store.by_source("B-1-Y")] == ["C-1-Z"]
            assert [r.source_uid for r in await store.by_target("B-1-Y")] == ["A-1-X"]
            assert await store.by_uid("D-1-W") == []
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_sql_uid_mapping_store(self):
        engine, factory = await _memory_db()
        try:
            store = SqlUidMappingStore(factory)
            mapping = await store.upsert("bill-7", "BILL-1-AAA", "  ")
            assert mapping.entity_type == "OTHER"
            assert await store.find_uid("bill-7") == "BILL-1-AAA"
            assert await store.find_uid("bill-8") is None
            assert (await store.get("bill-7")).uid == "BILL-1-AAA"
            assert [m.old_id for m in await store.list_mappings()] == ["bill-7"]
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_sql_relation_store_concurrent_duplicates(self, tmp_path):
        """Racing adds of one triple, each on its own connection, store one row."""
        engine = create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / 'lineage.db'}",
            connect_args={"timeout": 30},
        )
        try:
            await init_db(engine)
            store = SqlRelationStore(async_sessionmaker(engine, expire_on_commit=False))

            outcomes = await asyncio.gather(*(store.add(_relation()) for _ in range(8)))

            assert [created for _, created in outcomes].count(True) == 1
            assert {stored.key for stored, _ in outcomes} == {_relation().key}
            assert await store.count() == 1
        finally:
            await engine.dispose()
