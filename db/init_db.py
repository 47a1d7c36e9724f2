"""
db/init_db.py
-------------
Creates the document store schema if it does not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

CHANGE_CHANNEL = "documents_changed"

SCHEMA_SQL = f"""
-- Documents table: every collection of every user, one JSONB body per document.
-- namespace is artifacts/<app_id>/users/<user_id>
CREATE TABLE IF NOT EXISTS documents (
    namespace       TEXT NOT NULL,
    collection      TEXT NOT NULL,
    doc_id          TEXT NOT NULL,
    data            JSONB NOT NULL DEFAULT '{{}}'::jsonb,
    created_at      TIMESTAMPTZ DEFAULT NOW(),
    updated_at      TIMESTAMPTZ DEFAULT NOW(),
    PRIMARY KEY (namespace, collection, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(namespace, collection);

-- Realtime fan-out: payload is "<namespace>|<collection>"
CREATE OR REPLACE FUNCTION notify_document_change() RETURNS trigger AS $$
DECLARE
    row_ns TEXT;
    row_coll TEXT;
BEGIN
    IF TG_OP = 'DELETE' THEN
        row_ns := OLD.namespace;
        row_coll := OLD.collection;
    ELSE
        row_ns := NEW.namespace;
        row_coll := NEW.collection;
    END IF;
    PERFORM pg_notify('{CHANGE_CHANNEL}', row_ns || '|' || row_coll);
    RETURN NULL;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS documents_change_trigger ON documents;
CREATE TRIGGER documents_change_trigger
    AFTER INSERT OR UPDATE OR DELETE ON documents
    FOR EACH ROW EXECUTE FUNCTION notify_document_change();
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create the table, index and change trigger.
    Safe to call multiple times.
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise
    finally:
        release_connection(conn)


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")
