"""Mock authentication.

There is no credential check: any email and password sign in. The session
is persisted through a ``SessionStorage`` so it survives restarts.
"""

import asyncio
import logging
import time
from typing import Any

from pydantic import ValidationError

from ..config import AUTH_SIMULATED_DELAY
from ..errors import AuthError
from ..notifications import Notifier, notify
from .models import Role, User
from .storage import SessionStorage

logger = logging.getLogger(__name__)


class AuthSession:
    """Holds the signed-in user.

    Hidden design decisions:
    - User ids are derived from the clock in milliseconds
    - A short artificial delay precedes login and signup
    """

    def __init__(
        self,
        storage: SessionStorage,
        notifier: Notifier | None = None,
        delay: float = AUTH_SIMULATED_DELAY
    ):
        self._storage = storage
        self._notifier = notifier
        self._delay = delay
        self.user: User | None = None
        self.is_loading = True

    @property
    def is_logged_in(self) -> bool:
        return self.user is not None

    def load(self) -> User | None:
        """Restore the user saved by a previous session, if any."""
        stored = self._storage.read()
        if stored is not None:
            try:
                self.user = User.model_validate(stored)
            except ValidationError as e:
                logger.warning("Discarding invalid stored session: %s", e)
                self._storage.remove()
        self.is_loading = False
        return self.user

    def _persist(self) -> None:
        if self.user is not None:
            self._storage.write(self.user.model_dump(mode="json"))

    @staticmethod
    def _new_id() -> str:
        return str(int(time.time() * 1000))

    async def login(self, email: str, password: str) -> User:
        """Sign in as ``email``.

        Raises:
            AuthError: If email or password is blank
        """
        if not email.strip() or not password:
            raise AuthError("Email and password are required.")

        self.is_loading = True
        try:
            await asyncio.sleep(self._delay)
            self.user = User(id=self._new_id(), email=email.strip(), name=email.split("@")[0])
            self._persist()
        finally:
            self.is_loading = False

        logger.info("Logged in as %s", self.user.email)
        notify(self._notifier, "Login Successful", f"Welcome back, {self.user.display_name}!")
        return self.user

    async def signup(self, name: str, email: str, password: str) -> User:
        """Create an account and sign in.

        Raises:
            AuthError: If any field is blank
        """
        if not name.strip() or not email.strip() or not password:
            raise AuthError("Name, email and password are required.")

        self.is_loading = True
        try:
            await asyncio.sleep(self._delay)
            self.user = User(id=self._new_id(), email=email.strip(), name=name.strip())
            self._persist()
        finally:
            self.is_loading = False

        logger.info("Signed up %s", self.user.email)
        notify(self._notifier, "Signup Successful", f"Welcome, {self.user.display_name}!")
        return self.user

    def logout(self) -> None:
        self.user = None
        self._storage.remove()
        notify(self._notifier, "Logged Out", "You have been successfully logged out.")

    def update_profile(
        self,
        name: str | None = None,
        avatar: str | None = None,
        role: Role | None = None
    ) -> User:
        """Change fields of the signed-in user's profile.

        Raises:
            AuthError: If no user is signed in
        """
        if self.user is None:
            raise AuthError("You must be logged in to update your profile.")

        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name.strip() or None
        if avatar is not None:
            updates["avatar"] = avatar or None
        if role is not None:
            updates["role"] = role

        self.user = User.model_validate({**self.user.model_dump(), **updates})
        self._persist()
        notify(self._notifier, "Profile Updated", "Your profile changes have been saved.")
        return self.user
