from .backend import PostgresDocumentStore

__all__ = ["PostgresDocumentStore"]
