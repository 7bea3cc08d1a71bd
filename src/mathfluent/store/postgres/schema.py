"""PostgreSQL schema definitions for the document store."""

from typing import Final

NOTIFY_CHANNEL: Final[str] = "mathfluent_documents"

CREATE_DOCUMENTS_TABLE: Final[str] = """
CREATE TABLE IF NOT EXISTS documents (
    seq BIGSERIAL,
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data JSONB NOT NULL DEFAULT '{}'::jsonb,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (collection, id)
);
"""

CREATE_COLLECTION_INDEX: Final[str] = """
CREATE INDEX IF NOT EXISTS idx_documents_collection_seq
ON documents (collection, seq);
"""

CREATE_DATA_GIN_INDEX: Final[str] = """
CREATE INDEX IF NOT EXISTS idx_documents_data
ON documents USING GIN (data);
"""

# Live queries: every write announces its collection on NOTIFY_CHANNEL
CREATE_NOTIFY_TRIGGER: Final[str] = f"""
CREATE OR REPLACE FUNCTION notify_document_change()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    PERFORM pg_notify('{NOTIFY_CHANNEL}', NEW.collection);
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trigger_notify_document_change ON documents;

CREATE TRIGGER trigger_notify_document_change
BEFORE INSERT OR UPDATE ON documents
FOR EACH ROW
EXECUTE FUNCTION notify_document_change();
"""

CURRENT_TIME: Final[str] = "SELECT clock_timestamp();"

INSERT_DOCUMENT: Final[str] = """
INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb);
"""

UPSERT_DOCUMENT: Final[str] = """
INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)
ON CONFLICT (collection, id) DO UPDATE SET data = EXCLUDED.data;
"""

MERGE_DOCUMENT: Final[str] = """
INSERT INTO documents (collection, id, data) VALUES ($1, $2, $3::jsonb)
ON CONFLICT (collection, id) DO UPDATE SET data = documents.data || EXCLUDED.data;
"""

SELECT_DOCUMENT: Final[str] = """
SELECT data::text FROM documents WHERE collection = $1 AND id = $2;
"""

# {direction} is ASC or DESC, {nulls} FIRST or LAST; ordering is on the text form of a top-level field
SELECT_ORDERED: Final[str] = """
SELECT id, data::text FROM documents
WHERE collection = $1
ORDER BY data ->> $2 {direction} NULLS {nulls}, seq {direction}
LIMIT $3;
"""

SELECT_UNORDERED: Final[str] = """
SELECT id, data::text FROM documents
WHERE collection = $1
ORDER BY seq ASC
LIMIT $2;
"""
