"""Mock sign-in, session persistence and user lookup."""

from .directory import UserDirectory
from .models import Role, User
from .session import AuthSession
from .storage import FileSessionStorage, InMemorySessionStorage, SessionStorage

__all__ = [
    "AuthSession",
    "FileSessionStorage",
    "InMemorySessionStorage",
    "Role",
    "SessionStorage",
    "User",
    "UserDirectory",
]
