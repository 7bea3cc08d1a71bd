"""
MathFluent: AI-assisted math problem solving with community and direct chat.

Each sub-package hides one design decision: which AI provider answers,
which document store persists chat, how the signed-in session is kept.
"""

__version__ = "0.1.0"

from .chat import (
    ChatNavigator,
    ChatService,
    Conversation,
    ConversationView,
    Message,
    MessageStatus,
    direct_thread_id,
    merge_snapshot,
)
from .solver import (
    MathTutor,
    SolutionStep,
    SolveRequest,
    SolverSession,
    parse_solution_steps,
)
from .store import DocumentStore, create_document_store

__all__ = [
    "ChatNavigator",
    "ChatService",
    "Conversation",
    "ConversationView",
    "DocumentStore",
    "MathTutor",
    "Message",
    "MessageStatus",
    "SolutionStep",
    "SolveRequest",
    "SolverSession",
    "create_document_store",
    "direct_thread_id",
    "merge_snapshot",
    "parse_solution_steps",
]
