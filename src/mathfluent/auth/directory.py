"""Look up users by id, for resolving direct-message peers."""

import logging

from pydantic import ValidationError

from ..config import USERS_COLLECTION
from ..store import DocumentStore
from ..teachers import get_teacher
from .models import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Users saved in the store, with the teacher directory as a fallback."""

    def __init__(self, store: DocumentStore):
        self._store = store

    async def save_user(self, user: User) -> None:
        await self._store.set(USERS_COLLECTION, user.id, user.model_dump(mode="json", exclude={"id"}))

    async def get_user(self, user_id: str) -> User | None:
        document = await self._store.get(USERS_COLLECTION, user_id)
        if document is not None:
            try:
                return User.model_validate(document.to_dict())
            except ValidationError:
                logger.warning("Ignoring malformed user document %s", user_id)

        teacher = get_teacher(user_id)
        if teacher is None:
            return None
        return User(
            id=teacher.id,
            email=teacher.email,
            name=teacher.name,
            role="teacher",
            avatar=teacher.avatar,
            subjects=list(teacher.subjects),
        )
