"""Document store abstraction layer with live queries."""

from .base import DocumentStore
from .factory import SUPPORTED_BACKENDS, create_document_store
from .models import SERVER_TIMESTAMP, Document, Query
from .subscription import Subscription

__all__ = [
    "DocumentStore",
    "Document",
    "Query",
    "SERVER_TIMESTAMP",
    "SUPPORTED_BACKENDS",
    "Subscription",
    "create_document_store",
]
