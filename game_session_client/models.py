"""
Core data models for the Game Session Client.

This module defines the credential held by the client, the uniform
RequestOutcome returned by every remote operation, and strict schemas for
each backend response body.
"""

import json
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Generic, List, Optional, Type, TypeVar, Union

from .exceptions import MalformedResponseError


T = TypeVar("T")


@dataclass
class Credential:
    """
    The (token, username) pair identifying an authenticated session.

    An empty token means there is no active session.
    """
    token: str = ""
    username: str = ""

    @property
    def is_logged_in(self) -> bool:
        return bool(self.token)

    def is_consistent(self) -> bool:
        """Token and username must be both set or both empty."""
        return bool(self.token) == bool(self.username)

    def copy(self) -> "Credential":
        return Credential(token=self.token, username=self.username)


@dataclass(frozen=True)
class Success(Generic[T]):
    """Successful outcome of a remote operation."""
    value: Optional[T] = None
    message: str = ""
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Failure:
    """Failed outcome of a remote operation, carrying a displayable reason."""
    reason: str
    ok: ClassVar[bool] = False


RequestOutcome = Union[Success[T], Failure]


@dataclass(frozen=True)
class PlayerInfo:
    """The server's view of the current player. Read-only snapshot."""
    username: str
    is_logged_in: bool


@dataclass
class UserData:
    """Request body for register, login and logout."""
    username: str = ""
    password: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"username": self.username, "password": self.password}


def _require(data: Dict[str, Any], name: str, expected: Type) -> Any:
    if name not in data:
        raise MalformedResponseError("Malformed response", f"missing field '{name}'")

    value = data[name]
    # bool is an int subclass; keep the two apart
    if expected is int and isinstance(value, bool):
        raise MalformedResponseError("Malformed response", f"field '{name}' must be int")
    if not isinstance(value, expected):
        raise MalformedResponseError(
            "Malformed response",
            f"field '{name}' must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass
class ApiResponse:
    """Base response shape shared by every endpoint."""
    success: bool
    message: str

    @classmethod
    def from_dict(cls, data: Any) -> "ApiResponse":
        if not isinstance(data, dict):
            raise MalformedResponseError("Malformed response", "body is not a JSON object")
        return cls(**cls._fields_from(data))

    @classmethod
    def _fields_from(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "success": _require(data, "success", bool),
            "message": _require(data, "message", str),
        }


@dataclass
class LoginResponse(ApiResponse):
    token: str = ""
    username: str = ""

    @classmethod
    def _fields_from(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._fields_from(data)
        fields["token"] = _require(data, "token", str)
        fields["username"] = _require(data, "username", str)
        if fields["success"] and not (fields["token"] and fields["username"]):
            raise MalformedResponseError(
                "Malformed response", "login succeeded without a token and username"
            )
        return fields


@dataclass
class PlayersResponse(ApiResponse):
    players: List[str] = field(default_factory=list)
    count: int = 0

    @classmethod
    def _fields_from(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._fields_from(data)
        players = _require(data, "players", list)
        if not all(isinstance(player, str) for player in players):
            raise MalformedResponseError("Malformed response", "players must be strings")
        fields["players"] = list(players)
        fields["count"] = _require(data, "count", int)
        return fields


@dataclass
class PlayerInfoResponse(ApiResponse):
    username: str = ""
    is_logged_in: bool = False

    @classmethod
    def _fields_from(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        fields = super()._fields_from(data)
        fields["username"] = _require(data, "username", str)
        fields["is_logged_in"] = _require(data, "isLoggedIn", bool)
        return fields

    def to_player_info(self) -> PlayerInfo:
        return PlayerInfo(username=self.username, is_logged_in=self.is_logged_in)


def parse_json(body: str) -> Optional[Any]:
    """
    Parse a response body as JSON.

    Returns:
        The decoded value, or None if the body is empty or not valid JSON.
    """
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


def parse_error_message(body: str) -> Optional[str]:
    """
    Extract the server-provided message from an error body.

    Args:
        body: Raw response body

    Returns:
        The ``message`` field when the body is a JSON object carrying a
        non-empty string message, otherwise None.
    """
    data = parse_json(body)
    if not isinstance(data, dict):
        return None

    message = data.get("message")
    if isinstance(message, str) and message:
        return message
    return None


def decode_response(body: str, schema: Type[ApiResponse]) -> ApiResponse:
    """
    Decode a response body against a strict endpoint schema.

    Raises:
        MalformedResponseError: If the body is not JSON or does not match.
    """
    data = parse_json(body)
    if data is None:
        raise MalformedResponseError("Malformed response", "body is not valid JSON")
    return schema.from_dict(data)
