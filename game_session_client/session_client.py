"""
Session client for the remote game API.

This module owns the credential lifecycle: it loads the persisted token at
construction, sets it on login, clears it on logout, signs authorized
requests with it, and normalizes every remote failure into a Failure
outcome without touching the credential.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .config import Config
from .credential_store import (
    CredentialStore,
    JsonFileCredentialStore,
    TOKEN_KEY,
    USERNAME_KEY,
)
from .error_handler import ErrorHandler
from .exceptions import (
    ApiError,
    CredentialStoreError,
    GameSessionClientError,
    MalformedResponseError,
    NotAuthenticatedError,
    TransportError,
)
from .models import (
    ApiResponse,
    Credential,
    Failure,
    LoginResponse,
    PlayerInfo,
    PlayerInfoResponse,
    PlayersResponse,
    RequestOutcome,
    Success,
    UserData,
    decode_response,
    parse_error_message,
)
from .transport import ApiReply, ApiTransport


REGISTER_PATH = "auth/register"
LOGIN_PATH = "auth/login"
LOGOUT_PATH = "auth/logout"
ONLINE_PLAYERS_PATH = "game/online-players"
PLAYER_INFO_PATH = "game/player-info"


class SessionClient:
    """
    Client-side session manager for the game backend.

    Construct one instance at startup and hand it to whatever needs it.
    Credential-mutating calls (login, logout, clear_credentials) are
    serialized; read-only queries may run concurrently.
    """

    def __init__(
        self,
        config: Config,
        store: Optional[CredentialStore] = None,
        transport: Optional[ApiTransport] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        """
        Initialize the session client from local state only.

        Args:
            config: Client configuration
            store: Credential store; defaults to a JSON file under data_dir
            transport: HTTP transport; defaults to one built from config.api
            error_handler: Retry policy for read-only queries
        """
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.store = store if store is not None else JsonFileCredentialStore(
            config.storage.credentials_path
        )
        self.transport = transport or ApiTransport(config.api)
        self.error_handler = error_handler or ErrorHandler(
            max_retries=config.api.max_retries,
            base_delay=config.api.retry_base_delay
        )

        self._credential = self._load_credential()
        self._credential_lock = asyncio.Lock()

    async def __aenter__(self) -> "SessionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Release the HTTP session. Credential state is kept."""
        await self.transport.close()

    @property
    def is_logged_in(self) -> bool:
        return self._credential.is_logged_in

    @property
    def username(self) -> str:
        return self._credential.username

    @property
    def token(self) -> str:
        return self._credential.token

    @property
    def credential(self) -> Credential:
        """A copy of the current credential."""
        return self._credential.copy()

    def diagnostics(self) -> Dict[str, Any]:
        """Retry error statistics and per-request timings for this process."""
        return {
            'errors': self.error_handler.get_error_statistics(),
            'requests': self.transport.performance.summary(),
        }

    def _load_credential(self) -> Credential:
        credential = Credential(
            token=self.store.get(TOKEN_KEY, ""),
            username=self.store.get(USERNAME_KEY, "")
        )
        if not credential.is_consistent():
            self.logger.warning(
                "Persisted credential is incomplete (token and username must both be set); "
                "starting without a session"
            )
            return Credential()
        if credential.is_logged_in:
            self.logger.info(f"Restored session for {credential.username}")
        return credential

    async def _persist(self) -> None:
        """Write the in-memory credential to the store. Failures are logged only."""
        try:
            if self._credential.is_logged_in:
                self.store.set(TOKEN_KEY, self._credential.token)
                self.store.set(USERNAME_KEY, self._credential.username)
            else:
                self.store.delete(TOKEN_KEY)
                self.store.delete(USERNAME_KEY)
            await self.store.save()
        except CredentialStoreError as e:
            self.logger.error(f"Could not persist credentials, keeping in-memory session: {e}")
        except Exception as e:
            # The in-memory update is already committed and stays authoritative
            self.logger.exception(f"Unexpected credential store failure: {e}")

    def _check_reply(self, reply: ApiReply, schema, default_reason: str) -> ApiResponse:
        """
        Classify a reply and decode its body against ``schema``.

        Raises:
            ApiError: Non-2xx status, or a 2xx body with success=false
            MalformedResponseError: 2xx body that does not match the schema
        """
        if not reply.ok:
            message = parse_error_message(reply.body)
            raise ApiError(message or default_reason, f"HTTP {reply.status}", status=reply.status)

        response = decode_response(reply.body, schema)
        if not response.success:
            raise ApiError(response.message or default_reason, status=reply.status)
        return response

    def _failure(
        self,
        operation: str,
        error: GameSessionClientError,
        default_reason: str,
        report_transport: bool
    ) -> Failure:
        if isinstance(error, NotAuthenticatedError):
            return Failure(error.message)

        self.logger.error(f"{operation} error: {error}")

        if isinstance(error, TransportError):
            return Failure(str(error) if report_transport else default_reason)
        if isinstance(error, ApiError):
            return Failure(error.message)
        if isinstance(error, MalformedResponseError):
            return Failure(default_reason)
        return Failure(error.message or default_reason)

    async def _execute(
        self,
        operation: str,
        default_reason: str,
        call: Callable[[], Awaitable[RequestOutcome]],
        report_transport: bool = False
    ) -> RequestOutcome:
        """
        Run ``call`` and normalize anything it raises into a Failure.

        Transport failures resolve to ``default_reason`` unless
        ``report_transport`` is set, in which case the transport description
        (e.g. "Request timed out") becomes the reason.
        """
        try:
            return await call()
        except GameSessionClientError as e:
            return self._failure(operation, e, default_reason, report_transport)
        except Exception as e:
            self.logger.exception(f"Unexpected {operation.lower()} error: {e}")
            return Failure(default_reason)

    async def _post(self, path: str, body: UserData) -> ApiReply:
        return await self.transport.request(
            "POST", path, payload=body.to_dict(), token=self._credential.token
        )

    async def _authorized_get(self, path: str) -> ApiReply:
        token = self._credential.token
        if not token:
            raise NotAuthenticatedError()
        return await self.error_handler.retry_async(
            self.transport.request,
            "GET",
            path,
            token=token,
            exceptions=(TransportError,),
            context={'path': path}
        )

    async def register(self, username: str, password: str) -> RequestOutcome[None]:
        """
        Create a new account. Does not log in.

        Args:
            username: Account name, forwarded as given
            password: Account password, forwarded as given

        Returns:
            Success with the server message, or Failure
        """
        async def call() -> RequestOutcome[None]:
            reply = await self._post(REGISTER_PATH, UserData(username, password))
            response = self._check_reply(reply, ApiResponse, "Registration failed")
            self.logger.info(f"Registered account {username}")
            return Success(message=response.message)

        return await self._execute("Registration", "Registration failed", call)

    async def login(self, username: str, password: str) -> RequestOutcome[None]:
        """
        Authenticate and store the returned token and canonical username.

        The credential is replaced only after a complete, valid reply; on
        any failure it is left exactly as it was.
        """
        async def call() -> RequestOutcome[None]:
            reply = await self._post(LOGIN_PATH, UserData(username, password))
            response = self._check_reply(reply, LoginResponse, "Login failed")

            self._credential = Credential(token=response.token, username=response.username)
            await self._persist()

            self.logger.info(f"Logged in as {response.username}")
            return Success(message="Login successful")

        async with self._credential_lock:
            return await self._execute("Login", "Login failed", call)

    async def logout(self) -> RequestOutcome[None]:
        """
        End the session on the server, then locally.

        The local credential is cleared only when the server confirms the
        logout. If the server cannot be reached the session stays active.
        """
        async def call() -> RequestOutcome[None]:
            reply = await self._post(LOGOUT_PATH, UserData(self._credential.username, ""))

            if not reply.ok:
                message = parse_error_message(reply.body)
                raise ApiError(message or "Logout failed", f"HTTP {reply.status}", status=reply.status)

            message = "Logout successful"
            try:
                response = decode_response(reply.body, ApiResponse)
            except MalformedResponseError as e:
                self.logger.debug(f"Logout reply body not decodable: {e}")
            else:
                if not response.success:
                    raise ApiError(response.message or "Logout failed", status=reply.status)
                message = response.message or message

            previous = self._credential.username
            self._credential = Credential()
            await self._persist()

            self.logger.info(f"Logged out {previous}" if previous else "Logged out")
            return Success(message=message)

        async with self._credential_lock:
            return await self._execute("Logout", "Logout failed", call, report_transport=True)

    async def clear_credentials(self) -> None:
        """Drop the local session and its persisted entries without contacting the server."""
        async with self._credential_lock:
            self._credential = Credential()
            await self._persist()
            self.logger.info("Local credentials cleared")

    async def get_online_players(self) -> RequestOutcome[List[str]]:
        """
        List the identifiers of players currently online.

        Returns:
            Success with a (possibly empty) list, or Failure("Not logged in")
            without any request when there is no session
        """
        if not self.is_logged_in:
            return Failure(NotAuthenticatedError().message)

        async def call() -> RequestOutcome[List[str]]:
            reply = await self._authorized_get(ONLINE_PLAYERS_PATH)
            response = self._check_reply(reply, PlayersResponse, "Failed to get online players")
            return Success(value=list(response.players), message="Success")

        return await self._execute("Online players", "Failed to get online players", call)

    async def get_player_info(self) -> RequestOutcome[PlayerInfo]:
        """
        Fetch the server's view of the current player.

        The server's answer is returned as-is; it is not reconciled with
        local session state.
        """
        if not self.is_logged_in:
            return Failure(NotAuthenticatedError().message)

        async def call() -> RequestOutcome[PlayerInfo]:
            reply = await self._authorized_get(PLAYER_INFO_PATH)
            response = self._check_reply(reply, PlayerInfoResponse, "Failed to get player info")
            return Success(value=response.to_player_info(), message="Success")

        return await self._execute("Player info", "Failed to get player info", call)
