"""
repositories/document_repo.py
------------------------------
Generic data access for the `documents` table.
A document lives at <namespace>/<collection>/<doc_id> and its body is JSONB.
"""

from __future__ import annotations

import uuid
from typing import Optional

from psycopg2.extras import Json

from config import APP_ID
from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)


def user_namespace(user_id: int | str, app_id: str = APP_ID) -> str:
    """Namespace holding every collection of one user."""
    return f"artifacts/{app_id}/users/{user_id}"


def user_id_from_namespace(namespace: str, app_id: str = APP_ID) -> Optional[int]:
    """Inverse of user_namespace(); None for other apps or non-numeric users."""
    prefix = user_namespace("", app_id)
    if not namespace.startswith(prefix):
        return None
    try:
        return int(namespace[len(prefix):])
    except ValueError:
        return None


def new_document_id() -> str:
    return uuid.uuid4().hex[:20]


class DocumentRepository:
    """CRUD on raw documents. Returned documents carry their ID under ``"id"``."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, namespace: str, collection: str, data: dict) -> str:
        """
        Insert a new document under a generated ID.

        Returns:
            The new document ID.
        """
        doc_id = new_document_id()
        body = {k: v for k, v in data.items() if k != "id"}
        sql = """
            INSERT INTO documents (namespace, collection, doc_id, data)
            VALUES (%s, %s, %s, %s);
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (namespace, collection, doc_id, Json(body)))
            conn.commit()
            logger.info(f"Added {collection} document {doc_id} in {namespace}")
            return doc_id
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add {collection} document: {e}")
            raise
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get(self, namespace: str, collection: str, doc_id: str) -> Optional[dict]:
        """Fetch a single document, or None when it does not exist."""
        sql = """
            SELECT doc_id, data FROM documents
            WHERE namespace = %s AND collection = %s AND doc_id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (namespace, collection, doc_id))
                row = cur.fetchone()
                return self._row_to_document(row) if row else None
        finally:
            release_connection(conn)

    def list(self, namespace: str, collection: str,
             order_by: Optional[str] = None, descending: bool = False) -> list[dict]:
        """
        Full snapshot of a collection.

        Args:
            order_by: Optional top-level document field to sort on.
            descending: Sort direction for ``order_by``.
        """
        sql = "SELECT doc_id, data FROM documents WHERE namespace = %s AND collection = %s"
        params: list = [namespace, collection]
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY data ->> %s {direction}, doc_id ASC"
            params.append(order_by)
        else:
            sql += " ORDER BY created_at ASC, doc_id ASC"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql + ";", params)
                return [self._row_to_document(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def list_namespaces(self, prefix: str) -> list[str]:
        """Distinct namespaces holding at least one document, starting with ``prefix``."""
        sql = """
            SELECT DISTINCT namespace FROM documents
            WHERE left(namespace, %s) = %s
            ORDER BY namespace;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (len(prefix), prefix))
                return [row[0] for row in cur.fetchall()]
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def set(self, namespace: str, collection: str, doc_id: str, data: dict,
            merge: bool = False) -> None:
        """
        Create or overwrite a document at a known ID.

        Args:
            merge: When True, top-level fields are merged into the existing body
                instead of replacing it.
        """
        body = {k: v for k, v in data.items() if k != "id"}
        if merge:
            sql = """
                INSERT INTO documents (namespace, collection, doc_id, data)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (namespace, collection, doc_id)
                DO UPDATE SET data = documents.data || EXCLUDED.data, updated_at = NOW();
            """
        else:
            sql = """
                INSERT INTO documents (namespace, collection, doc_id, data)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT (namespace, collection, doc_id)
                DO UPDATE SET data = EXCLUDED.data, updated_at = NOW();
            """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (namespace, collection, doc_id, Json(body)))
            conn.commit()
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to set {collection}/{doc_id}: {e}")
            raise
        finally:
            release_connection(conn)

    def update(self, namespace: str, collection: str, doc_id: str, fields: dict) -> bool:
        """
        Merge fields into an existing document.

        Returns:
            False when the document does not exist.
        """
        sql = """
            UPDATE documents SET data = data || %s, updated_at = NOW()
            WHERE namespace = %s AND collection = %s AND doc_id = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (Json(fields), namespace, collection, doc_id))
                updated = cur.rowcount > 0
            conn.commit()
            return updated
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to update {collection}/{doc_id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, namespace: str, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False when nothing was deleted."""
        sql = "DELETE FROM documents WHERE namespace = %s AND collection = %s AND doc_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (namespace, collection, doc_id))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Deleted {collection} document {doc_id} in {namespace}")
            return deleted
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to delete {collection}/{doc_id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_document(row: tuple) -> dict:
        """Convert a (doc_id, data) row into a document dict with its ID."""
        return {**(row[1] or {}), "id": row[0]}
