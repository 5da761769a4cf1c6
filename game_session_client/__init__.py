"""
Game Session Client - client-side session manager for a remote game API.

This package authenticates a user, persists the bearer credential between
runs, and exposes authenticated queries (online players, player info) as
async calls that always resolve to a Success or Failure outcome.
"""

__version__ = "0.1.0"
__author__ = "Game Session Client Team"

from .models import Credential, Success, Failure, RequestOutcome, PlayerInfo
from .config import Config, ApiConfig, StorageConfig, load_config
from .credential_store import CredentialStore, JsonFileCredentialStore, MemoryCredentialStore
from .session_client import SessionClient
from .exceptions import (
    GameSessionClientError,
    NotAuthenticatedError,
    TransportError,
    ApiError,
    MalformedResponseError,
    CredentialStoreError,
    ConfigurationError
)

__all__ = [
    "Credential",
    "Success",
    "Failure",
    "RequestOutcome",
    "PlayerInfo",
    "Config",
    "ApiConfig",
    "StorageConfig",
    "load_config",
    "CredentialStore",
    "JsonFileCredentialStore",
    "MemoryCredentialStore",
    "SessionClient",
    "GameSessionClientError",
    "NotAuthenticatedError",
    "TransportError",
    "ApiError",
    "MalformedResponseError",
    "CredentialStoreError",
    "ConfigurationError"
]
