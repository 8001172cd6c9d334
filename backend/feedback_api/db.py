import aiosqlite
import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

MEETINGS_COLLECTION = "meetings"
FEEDBACK_COLLECTION = "feedback"
QUESTIONS_COLLECTION = "questions"
USERS_COLLECTION = "users"
AI_INSIGHTS_COLLECTION = "ai_insights"


@dataclass
class InsertResult:
    inserted_id: str
    acknowledged: bool = True

    def to_dict(self):
        return {"acknowledged": self.acknowledged, "insertedId": self.inserted_id}


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None
    acknowledged: bool = True

    def to_dict(self):
        return {
            "acknowledged": self.acknowledged,
            "matchedCount": self.matched_count,
            "modifiedCount": self.modified_count,
            "upsertedCount": 1 if self.upserted_id else 0,
            "upsertedId": self.upserted_id,
        }


@dataclass
class DeleteResult:
    deleted_count: int
    acknowledged: bool = True

    def to_dict(self):
        return {"acknowledged": self.acknowledged, "deletedCount": self.deleted_count}


class DocumentStore:
    """JSON document collections on top of a single SQLite connection.

    Every document gets a generated ``_id``. Queries are equality matches on
    top-level fields. Operations are serialized with a lock, so each call
    (upserts included) runs as one atomic unit.
    """

    def __init__(self, db_path: str = "meeting_feedback.db"):
        self.db_path = db_path
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self):
        """Open the connection and create the documents table"""
        if self._conn is not None:
            return
        logger.info(f"Opening document store at {self.db_path}")
        self._conn = await aiosqlite.connect(self.db_path)
        await self._conn.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                body TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (collection, doc_id)
            )
        """)
        await self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents (collection)"
        )
        await self._conn.commit()

    async def close(self):
        if self._conn is None:
            return
        logger.info("Closing document store")
        try:
            await self._conn.close()
        finally:
            self._conn = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    @asynccontextmanager
    async def _session(self, write: bool = False):
        if self._conn is None:
            raise RuntimeError("Document store is not connected")
        async with self._lock:
            if not write:
                yield self._conn
                return
            try:
                yield self._conn
                await self._conn.commit()
            except Exception:
                await self._conn.rollback()
                raise

    @staticmethod
    def _where(collection: str, query: Optional[Document]) -> Tuple[str, List[Any]]:
        clauses = ["collection = ?"]
        params: List[Any] = [collection]
        for key, value in (query or {}).items():
            if value is None:
                clauses.append("json_extract(body, ?) IS NULL")
                params.append(f'$."{key}"')
            else:
                clauses.append("json_extract(body, ?) = ?")
                params.extend([f'$."{key}"', value])
        return " AND ".join(clauses), params

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    @staticmethod
    def _dumps(document: Document) -> str:
        return json.dumps(document, default=str)

    async def _first(self, conn, collection: str, query: Optional[Document]):
        where, params = self._where(collection, query)
        async with conn.execute(
            f"SELECT seq, body FROM documents WHERE {where} ORDER BY seq LIMIT 1", params
        ) as cursor:
            row = await cursor.fetchone()
        if not row:
            return None
        return row[0], json.loads(row[1])

    async def insert_one(self, collection: str, document: Document) -> InsertResult:
        """Insert a copy of ``document``, assigning ``_id`` when it has none"""
        doc = dict(document)
        doc_id = str(doc.get("_id") or uuid.uuid4().hex)
        doc["_id"] = doc_id
        now = self._now()
        async with self._session(write=True) as conn:
            await conn.execute(
                "INSERT INTO documents (collection, doc_id, body, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (collection, doc_id, self._dumps(doc), now, now)
            )
        logger.debug(f"Inserted {doc_id} into {collection}")
        return InsertResult(inserted_id=doc_id)

    async def find(self, collection: str, query: Optional[Document] = None) -> List[Document]:
        """All documents matching ``query``, in insertion order"""
        where, params = self._where(collection, query)
        async with self._session() as conn:
            async with conn.execute(
                f"SELECT body FROM documents WHERE {where} ORDER BY seq", params
            ) as cursor:
                rows = await cursor.fetchall()
        return [json.loads(row[0]) for row in rows]

    async def find_one(self, collection: str, query: Document) -> Optional[Document]:
        async with self._session() as conn:
            found = await self._first(conn, collection, query)
        return found[1] if found else None

    async def find_one_any(self, collection: str, queries: List[Document]) -> Optional[Document]:
        """First document, in insertion order, that matches any of ``queries``"""
        alternatives = []
        params: List[Any] = [collection]
        for query in queries:
            where, query_params = self._where(collection, query)
            alternatives.append(f"({where})")
            params.extend(query_params)
        async with self._session() as conn:
            async with conn.execute(
                f"SELECT body FROM documents WHERE collection = ? AND ({' OR '.join(alternatives)}) "
                "ORDER BY seq LIMIT 1",
                params
            ) as cursor:
                row = await cursor.fetchone()
        return json.loads(row[0]) if row else None

    async def update_one(self, collection: str, query: Document, fields: Document,
                         upsert: bool = False) -> UpdateResult:
        """Merge ``fields`` into the first match, or insert query+fields when upserting"""
        fields = {key: value for key, value in fields.items() if key != "_id"}
        now = self._now()
        async with self._session(write=True) as conn:
            found = await self._first(conn, collection, query)
            if found:
                seq, current = found
                merged = {**current, **fields}
                if merged == current:
                    return UpdateResult(matched_count=1, modified_count=0)
                await conn.execute(
                    "UPDATE documents SET body = ?, updated_at = ? WHERE seq = ?",
                    (self._dumps(merged), now, seq)
                )
                return UpdateResult(matched_count=1, modified_count=1)

            if not upsert:
                return UpdateResult(matched_count=0, modified_count=0)

            doc_id = uuid.uuid4().hex
            doc = {**query, **fields, "_id": doc_id}
            await conn.execute(
                "INSERT INTO documents (collection, doc_id, body, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (collection, doc_id, self._dumps(doc), now, now)
            )
        logger.debug(f"Upserted {doc_id} into {collection}")
        return UpdateResult(matched_count=0, modified_count=0, upserted_id=doc_id)

    async def delete_one(self, collection: str, query: Document) -> DeleteResult:
        async with self._session(write=True) as conn:
            found = await self._first(conn, collection, query)
            if not found:
                return DeleteResult(deleted_count=0)
            await conn.execute("DELETE FROM documents WHERE seq = ?", (found[0],))
        return DeleteResult(deleted_count=1)
