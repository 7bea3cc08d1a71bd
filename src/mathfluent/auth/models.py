"""User profile model."""

from typing import Literal

from pydantic import BaseModel, Field

from ..config import AVATAR_URL_TEMPLATE

Role = Literal["student", "teacher"]


class User(BaseModel):
    """A signed-in (or directory) user."""

    id: str
    email: str
    name: str | None = None
    role: Role = "student"
    avatar: str | None = None
    subjects: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        """Name if set, otherwise the local part of the email."""
        return self.name or self.email.split("@")[0]

    @property
    def avatar_url(self) -> str:
        return self.avatar or AVATAR_URL_TEMPLATE.format(seed=self.email)

    @property
    def initials(self) -> str:
        parts = self.display_name.split()
        return "".join(p[0] for p in parts[:2]).upper() or "U"
