"""Registered users and their session tokens."""

import secrets
import string
from dataclasses import dataclass
from typing import Any

import structlog

from .types import UserPayload

logger = structlog.get_logger(__name__)

TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_TOKEN_LENGTH = 24


@dataclass
class User:
    """A registered account. ``name`` is the key and never changes."""

    name: str
    age: int
    weight_kg: float
    height_m: float
    password: str
    token: str | None = None

    @property
    def bmi(self) -> float:
        if self.height_m <= 0.0:
            return 0.0
        return self.weight_kg / (self.height_m * self.height_m)

    def to_dict(self) -> UserPayload:
        """Serialize for the snapshot; the session token is left out."""
        return {
            "name": self.name,
            "age": self.age,
            "weightKg": self.weight_kg,
            "heightM": self.height_m,
            "password": self.password,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            name=str(data.get("name", "")),
            age=int(data.get("age", 0)),
            weight_kg=float(data.get("weightKg", 0.0)),
            height_m=float(data.get("heightM", 0.0)),
            password=str(data.get("password", "")),
        )


class UserStore:
    """Owns every registered user and the token -> user name binding.

    A user has at most one live token. Logging in again revokes the previous
    token; deleting the user revokes it as well. Tokens live in memory only.
    """

    def __init__(self, token_length: int = DEFAULT_TOKEN_LENGTH) -> None:
        self._token_length = token_length
        self._users: dict[str, User] = {}
        self._token_to_name: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, name: object) -> bool:
        return name in self._users

    @property
    def active_sessions(self) -> int:
        """Number of live session tokens."""
        return len(self._token_to_name)

    def _generate_token(self) -> str:
        while True:
            token = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(self._token_length))
            if token not in self._token_to_name:
                return token

    def _revoke_tokens(self, name: str) -> None:
        stale = [token for token, owner in self._token_to_name.items() if owner == name]
        for token in stale:
            del self._token_to_name[token]

    def register_user(
        self,
        name: str,
        age: int,
        weight_kg: float,
        height_m: float,
        password: str,
    ) -> bool:
        """Create an account. Does not log the user in.

        Returns:
            False if the name is already registered.
        """
        if name in self._users:
            return False
        self._users[name] = User(name, age, weight_kg, height_m, password)
        return True

    def login(self, name: str, password: str) -> str | None:
        """Check credentials and mint a fresh session token.

        Returns:
            The new token, or None for an unknown name or wrong password.
        """
        user = self._users.get(name)
        if user is None or user.password != password:
            return None

        self._revoke_tokens(name)
        token = self._generate_token()
        user.token = token
        self._token_to_name[token] = name
        return token

    def update_user(
        self,
        name: str,
        new_age: int,
        new_weight_kg: float,
        new_height_m: float,
        new_password: str,
    ) -> bool:
        """Overwrite the mutable fields of a user; the session is untouched."""
        user = self._users.get(name)
        if user is None:
            return False
        user.age = new_age
        user.weight_kg = new_weight_kg
        user.height_m = new_height_m
        user.password = new_password
        return True

    def delete_user(self, name: str) -> bool:
        """Remove a user together with its session token."""
        if name not in self._users:
            return False
        self._revoke_tokens(name)
        del self._users[name]
        return True

    def get_user(self, name: str) -> User | None:
        return self._users.get(name)

    def get_user_name_by_token(self, token: str) -> str | None:
        if not token:
            return None
        return self._token_to_name.get(token)

    def get_user_bmi(self, token: str) -> float:
        """BMI of the token's owner, 0.0 when the token does not resolve."""
        name = self.get_user_name_by_token(token)
        if name is None:
            return 0.0
        user = self._users.get(name)
        if user is None:
            return 0.0
        return user.bmi

    def to_json(self) -> list[UserPayload]:
        return [user.to_dict() for user in self._users.values()]

    def from_json(self, data: Any) -> None:
        """Replace every user with the snapshot entries and drop all sessions.

        Raises:
            ValueError: If the section is not a list of objects.
        """
        if not isinstance(data, list):
            raise ValueError(f"users section must be a list, got {type(data).__name__}")

        users: dict[str, User] = {}
        for entry in data:
            if not isinstance(entry, dict):
                raise ValueError("user entry must be an object")
            user = User.from_dict(entry)
            if not user.name:
                logger.warning("snapshot_user_without_name_skipped")
                continue
            users[user.name] = user

        self._users = users
        self._token_to_name = {}
