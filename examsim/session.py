"""Local, non-authenticating user accounts.

Passwords are accepted for interface parity but never checked or stored.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .data.schemas import User
from .identifiers import IdFactory
from .store import BlobStore, StorageError, read_json_blob, write_json_blob

logger = logging.getLogger(__name__)

USERS_KEY = "@App:users"
CURRENT_USER_KEY = "@App:currentUser"


def _to_user(payload) -> Optional[User]:
    if isinstance(payload, dict) and isinstance(payload.get("id"), str) and isinstance(payload.get("username"), str):
        return User(id=payload["id"], username=payload["username"])
    return None


class SessionManager:
    def __init__(
        self,
        store: BlobStore,
        users_key: str = USERS_KEY,
        current_user_key: str = CURRENT_USER_KEY,
        id_factory: Optional[IdFactory] = None,
    ):
        self.store = store
        self.users_key = users_key
        self.current_user_key = current_user_key
        self.id_factory = id_factory or IdFactory()

    def _read_users(self) -> List[User]:
        """Strict read of the users list.

        Raises:
            StorageError: If the blob is unreadable or not a JSON list
        """
        payload = read_json_blob(self.store, self.users_key)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise StorageError(f"Stored users '{self.users_key}' is not a list", key=self.users_key)
        return [u for u in (_to_user(item) for item in payload) if u is not None]

    def _users(self) -> List[User]:
        try:
            return self._read_users()
        except StorageError as e:
            logger.error("Could not load users, treating list as empty: %s", e)
            return []

    def current_user(self) -> Optional[User]:
        try:
            return _to_user(read_json_blob(self.store, self.current_user_key))
        except StorageError as e:
            logger.error("Could not load current user: %s", e)
            return None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user() is not None

    def _set_current(self, user: User) -> None:
        write_json_blob(self.store, self.current_user_key, user.to_dict())

    def register(self, username: str, password: Optional[str] = None) -> Optional[User]:
        """Create an account and log it in; ``None`` if the name is taken.

        Raises:
            ValueError: If the username is empty
            StorageError: If the stored users can't be read; nothing is written
        """
        if not username:
            raise ValueError("Username must not be empty")
        users = self._read_users()
        if any(u.username == username for u in users):
            logger.info("User '%s' already exists", username)
            return None
        user = User(id=self.id_factory(), username=username)
        write_json_blob(self.store, self.users_key, [u.to_dict() for u in users + [user]])
        self._set_current(user)
        logger.info("Registered user '%s'", username)
        return user

    def login(self, username: str, password: Optional[str] = None) -> Optional[User]:
        for user in self._users():
            if user.username == username:
                self._set_current(user)
                return user
        return None

    def logout(self) -> None:
        self.store.delete(self.current_user_key)
