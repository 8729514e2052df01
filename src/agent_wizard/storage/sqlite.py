"""SQLite persistence for wizard sessions, committed agents and the audit log."""

from __future__ import annotations

import asyncio
import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

_SCHEMA = """
-- Wizard sessions (one JSON document per session, keyed step1..step6)
CREATE TABLE IF NOT EXISTS wizard_sessions (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    session_name TEXT NOT NULL,
    source_type TEXT NOT NULL DEFAULT 'text',
    current_stage INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'draft',
    stage_data JSON NOT NULL DEFAULT '{}',
    error_message TEXT,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL,
    applied_at TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_wizard_sessions_tenant ON wizard_sessions(tenant_id, created_at);

-- Committed agents (permanent, tenant-scoped, never linked back to a session)
CREATE TABLE IF NOT EXISTS agents (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    description TEXT,
    config JSON NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'draft',
    element_type TEXT NOT NULL DEFAULT 'Agent',
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_agents_tenant ON agents(tenant_id);

CREATE TABLE IF NOT EXISTS agent_skills (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    display_name TEXT,
    description TEXT,
    input_schema JSON,
    output_schema JSON,
    tags JSON NOT NULL DEFAULT '[]',
    examples JSON NOT NULL DEFAULT '[]',
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_agent_skills_agent ON agent_skills(agent_id);

CREATE TABLE IF NOT EXISTS agent_relationships (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    source_agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
    target_agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
    relationship_type TEXT NOT NULL,
    message_type TEXT NOT NULL,
    description TEXT,
    config JSON NOT NULL DEFAULT '{}',
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_agent_relationships_source ON agent_relationships(source_agent_id);
CREATE INDEX IF NOT EXISTS idx_agent_relationships_target ON agent_relationships(target_agent_id);

CREATE TABLE IF NOT EXISTS agent_integrations (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    agent_id TEXT NOT NULL REFERENCES agents(id) ON DELETE CASCADE,
    integration_name TEXT NOT NULL,
    integration_type TEXT NOT NULL,
    config JSON NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_agent_integrations_agent ON agent_integrations(agent_id);

-- Audit log (append-only)
CREATE TABLE IF NOT EXISTS audit_log (
    id TEXT PRIMARY KEY,
    tenant_id TEXT NOT NULL,
    action TEXT NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id TEXT,
    old_values JSON,
    new_values JSON,
    created_at TIMESTAMP NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_audit_log_tenant ON audit_log(tenant_id, created_at);
"""


def _now() -> str:
    return datetime.now(UTC).isoformat()


class StorageEngine:
    """Async SQLite storage for the agent wizard.

    The connection runs in autocommit mode. Every write goes through
    ``transaction()``, which serializes writers on one lock and wraps them in
    ``BEGIN IMMEDIATE`` / ``COMMIT``; statements from concurrent tasks therefore
    never interleave inside one transaction. Reads from other tasks wait for an
    open transaction to finish, so uncommitted rows are only visible to the task
    that wrote them.

    Methods documented as "requires an open transaction" do not commit and must be
    called inside ``async with storage.transaction()``. The others open their own.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()
        self._tx_owner: asyncio.Task | None = None

    async def initialize(self) -> None:
        """Open connection and create schema."""
        self._db = await aiosqlite.connect(str(self.db_path), isolation_level=None)
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA foreign_keys = ON")
        await self._db.executescript(_SCHEMA)

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("StorageEngine not initialized; call initialize() first")
        return self._db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run the enclosed statements as one atomic write; roll back on any exception."""
        async with self._write_lock:
            await self.db.execute("BEGIN IMMEDIATE")
            self._tx_owner = asyncio.current_task()
            try:
                yield self.db
            except BaseException:
                await self.db.execute("ROLLBACK")
                raise
            else:
                await self.db.execute("COMMIT")
            finally:
                self._tx_owner = None

    @asynccontextmanager
    async def _reading(self) -> AsyncIterator[aiosqlite.Connection]:
        """Hold off reads from other tasks while a transaction is open on the connection.

        The task that owns the open transaction reads its own uncommitted rows.
        """
        if self._tx_owner is not None and self._tx_owner is asyncio.current_task():
            yield self.db
            return
        async with self._write_lock:
            yield self.db

    async def _fetchone(self, query: str, params: tuple | list = ()) -> dict | None:
        async with self._reading() as db:
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
        return dict(row) if row else None

    async def _fetchall(self, query: str, params: tuple | list = ()) -> list[dict]:
        async with self._reading() as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # ----- Sessions -----

    async def create_session(
        self,
        *,
        tenant_id: str,
        session_name: str,
        source_type: str = "text",
        session_id: str | None = None,
    ) -> str:
        session_id = session_id or str(uuid.uuid4())
        now = _now()
        async with self.transaction():
            await self.db.execute(
                """INSERT INTO wizard_sessions
                   (id, tenant_id, session_name, source_type, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (session_id, tenant_id, session_name, source_type, now, now),
            )
        return session_id

    async def get_session(self, session_id: str, tenant_id: str) -> dict | None:
        return await self._fetchone(
            "SELECT * FROM wizard_sessions WHERE id = ? AND tenant_id = ?",
            (session_id, tenant_id),
        )

    async def list_sessions(self, tenant_id: str, *, limit: int = 50) -> list[dict]:
        return await self._fetchall(
            """SELECT id, tenant_id, session_name, source_type, current_stage, status,
                      error_message, created_at, updated_at, applied_at
               FROM wizard_sessions
               WHERE tenant_id = ?
               ORDER BY created_at DESC, rowid DESC
               LIMIT ?""",
            (tenant_id, limit),
        )

    async def delete_session(self, session_id: str, tenant_id: str) -> bool:
        async with self.transaction():
            cursor = await self.db.execute(
                "DELETE FROM wizard_sessions WHERE id = ? AND tenant_id = ?",
                (session_id, tenant_id),
            )
        return cursor.rowcount > 0

    async def save_stage_data(
        self,
        session_id: str,
        *,
        stage_data: dict,
        current_stage: int,
        status: str,
    ) -> None:
        """Requires an open transaction."""
        await self.db.execute(
            """UPDATE wizard_sessions
               SET stage_data = ?, current_stage = ?, status = ?, updated_at = ?
               WHERE id = ?""",
            (json.dumps(stage_data), current_stage, status, _now(), session_id),
        )

    async def mark_session_applied(self, session_id: str) -> None:
        """Requires an open transaction."""
        now = _now()
        await self.db.execute(
            """UPDATE wizard_sessions
               SET status = 'applied', applied_at = ?, error_message = NULL, updated_at = ?
               WHERE id = ?""",
            (now, now, session_id),
        )

    async def mark_session_failed(self, session_id: str, error_message: str) -> None:
        async with self.transaction():
            await self.db.execute(
                """UPDATE wizard_sessions
                   SET status = 'failed', error_message = ?, updated_at = ?
                   WHERE id = ?""",
                (error_message, _now(), session_id),
            )

    # ----- Agents -----

    async def insert_agent(
        self,
        *,
        agent_id: str,
        tenant_id: str,
        name: str,
        agent_type: str,
        description: str | None,
        config: dict,
    ) -> None:
        """Requires an open transaction."""
        await self.db.execute(
            """INSERT INTO agents (id, tenant_id, name, type, description, config, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (agent_id, tenant_id, name, agent_type, description, json.dumps(config), _now()),
        )

    async def insert_skill(
        self,
        *,
        tenant_id: str,
        agent_id: str,
        name: str,
        display_name: str | None,
        description: str | None,
        input_schema: dict | None,
        output_schema: dict | None,
        tags: list[str],
        examples: list[dict],
    ) -> str:
        """Requires an open transaction."""
        skill_id = str(uuid.uuid4())
        await self.db.execute(
            """INSERT INTO agent_skills
               (id, tenant_id, agent_id, name, display_name, description,
                input_schema, output_schema, tags, examples, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                skill_id,
                tenant_id,
                agent_id,
                name,
                display_name,
                description,
                json.dumps(input_schema) if input_schema is not None else None,
                json.dumps(output_schema) if output_schema is not None else None,
                json.dumps(tags),
                json.dumps(examples),
                _now(),
            ),
        )
        return skill_id

    async def insert_relationship(
        self,
        *,
        tenant_id: str,
        source_agent_id: str,
        target_agent_id: str,
        relationship_type: str,
        message_type: str,
        description: str | None,
        config: dict,
    ) -> str:
        """Requires an open transaction."""
        relationship_id = str(uuid.uuid4())
        await self.db.execute(
            """INSERT INTO agent_relationships
               (id, tenant_id, source_agent_id, target_agent_id, relationship_type,
                message_type, description, config, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                relationship_id,
                tenant_id,
                source_agent_id,
                target_agent_id,
                relationship_type,
                message_type,
                description,
                json.dumps(config),
                _now(),
            ),
        )
        return relationship_id

    async def insert_integration(
        self,
        *,
        tenant_id: str,
        agent_id: str,
        integration_name: str,
        integration_type: str,
        config: dict,
    ) -> str:
        """Requires an open transaction."""
        integration_id = str(uuid.uuid4())
        await self.db.execute(
            """INSERT INTO agent_integrations
               (id, tenant_id, agent_id, integration_name, integration_type, config, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                integration_id,
                tenant_id,
                agent_id,
                integration_name,
                integration_type,
                json.dumps(config),
                _now(),
            ),
        )
        return integration_id

    async def get_agent(self, agent_id: str) -> dict | None:
        return await self._fetchone("SELECT * FROM agents WHERE id = ?", (agent_id,))

    async def list_agents(self, tenant_id: str) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM agents WHERE tenant_id = ? ORDER BY created_at", (tenant_id,)
        )

    async def list_skills(self, agent_id: str) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM agent_skills WHERE agent_id = ? ORDER BY created_at", (agent_id,)
        )

    async def list_relationships(self, tenant_id: str) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM agent_relationships WHERE tenant_id = ? ORDER BY created_at",
            (tenant_id,),
        )

    async def list_integrations(self, tenant_id: str) -> list[dict]:
        return await self._fetchall(
            "SELECT * FROM agent_integrations WHERE tenant_id = ? ORDER BY created_at",
            (tenant_id,),
        )

    # ----- Audit log -----

    async def append_audit(
        self,
        *,
        tenant_id: str,
        action: str,
        entity_type: str,
        entity_id: str | None,
        old_values: dict | None = None,
        new_values: dict | None = None,
    ) -> None:
        """Requires an open transaction."""
        await self.db.execute(
            """INSERT INTO audit_log
               (id, tenant_id, action, entity_type, entity_id, old_values, new_values, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                str(uuid.uuid4()),
                tenant_id,
                action,
                entity_type,
                entity_id,
                json.dumps(old_values) if old_values is not None else None,
                json.dumps(new_values) if new_values is not None else None,
                _now(),
            ),
        )

    async def list_audit(self, tenant_id: str, *, action: str | None = None) -> list[dict]:
        query = "SELECT * FROM audit_log WHERE tenant_id = ?"
        params: list = [tenant_id]
        if action:
            query += " AND action = ?"
            params.append(action)
        query += " ORDER BY created_at"
        return await self._fetchall(query, params)
