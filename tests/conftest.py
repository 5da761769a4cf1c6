"""
Shared fixtures for Game Session Client tests.

Provides a fake game backend served by aiohttp's TestServer, configuration
pointing at it, and session clients backed by in-memory or on-disk stores.
"""

import asyncio
import json
import socket
from typing import Any, Dict, List, Tuple

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from game_session_client.config import ApiConfig, Config, StorageConfig
from game_session_client.credential_store import (
    MemoryCredentialStore,
    TOKEN_KEY,
    USERNAME_KEY,
)
from game_session_client.session_client import SessionClient


TEST_USERNAME = "alice"
TEST_PASSWORD = "secret123"
TEST_TOKEN = "T1"


class FakeBackend:
    """
    In-process stand-in for the game API.

    Records every request and answers like the real server unless a canned
    response is registered for a path in ``responses``.
    """

    def __init__(self):
        self.users: Dict[str, str] = {TEST_USERNAME: TEST_PASSWORD}
        self.online: List[str] = [TEST_USERNAME, "bob"]
        self.token = TEST_TOKEN
        self.requests: List[Dict[str, Any]] = []
        self.responses: Dict[str, Tuple[int, str]] = {}
        self.delays: Dict[str, float] = {}
        self.base_url = ""

    def set_response(self, path: str, status: int, body: Any) -> None:
        text = body if isinstance(body, str) else json.dumps(body)
        self.responses[path] = (status, text)

    def requests_to(self, path: str) -> List[Dict[str, Any]]:
        return [r for r in self.requests if r['path'] == path]

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_route('*', '/api/{tail:.*}', self._handle)
        return app

    async def _handle(self, request: web.Request) -> web.Response:
        path = request.match_info['tail']
        raw = await request.text()
        self.requests.append({
            'method': request.method,
            'path': path,
            'headers': dict(request.headers),
            'body': json.loads(raw) if raw else None,
        })

        if path in self.delays:
            await asyncio.sleep(self.delays[path])

        if path in self.responses:
            status, text = self.responses[path]
            return web.Response(status=status, text=text, content_type='application/json')

        handler = {
            'auth/register': self._register,
            'auth/login': self._login,
            'auth/logout': self._logout,
            'game/online-players': self._online_players,
            'game/player-info': self._player_info,
        }.get(path)
        if handler is None:
            return web.json_response({'success': False, 'message': 'Not found'}, status=404)
        return handler(request, self.requests[-1]['body'] or {})

    def _authorized(self, request: web.Request) -> bool:
        return request.headers.get('Authorization') == f"Bearer {self.token}"

    def _register(self, request, body):
        username = body.get('username', '')
        if username in self.users:
            return web.json_response(
                {'success': False, 'message': 'Username already exists'}, status=409
            )
        self.users[username] = body.get('password', '')
        return web.json_response({'success': True, 'message': 'User registered successfully'})

    def _login(self, request, body):
        username = body.get('username', '')
        if self.users.get(username) != body.get('password'):
            return web.json_response(
                {'success': False, 'message': 'bad credentials'}, status=401
            )
        return web.json_response({
            'success': True, 'message': 'ok', 'token': self.token, 'username': username
        })

    def _logout(self, request, body):
        if not self._authorized(request):
            return web.json_response({'success': False, 'message': 'Invalid token'}, status=401)
        return web.json_response({'success': True, 'message': 'Logged out successfully'})

    def _online_players(self, request, body):
        if not self._authorized(request):
            return web.json_response({'success': False, 'message': 'Invalid token'}, status=401)
        return web.json_response({
            'success': True, 'message': 'Success',
            'players': list(self.online), 'count': len(self.online)
        })

    def _player_info(self, request, body):
        if not self._authorized(request):
            return web.json_response({'success': False, 'message': 'Invalid token'}, status=401)
        return web.json_response({
            'success': True, 'message': 'Success',
            'username': TEST_USERNAME, 'isLoggedIn': True
        })


def unused_port() -> int:
    """A local port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def backend():
    """Start a fake backend for the duration of a test."""
    fake = FakeBackend()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.base_url = str(server.make_url('/api/'))
    yield fake
    await server.close()


def make_config(base_url: str, data_dir: str, **api_overrides) -> Config:
    api = dict(base_url=base_url, timeout=2.0, max_retries=0, retry_base_delay=0.0)
    api.update(api_overrides)
    return Config(
        api=ApiConfig(**api),
        storage=StorageConfig(data_dir=data_dir),
        log_level="DEBUG"
    )


@pytest.fixture
def unreachable_url() -> str:
    return f"http://127.0.0.1:{unused_port()}/api/"


@pytest.fixture
def memory_store() -> MemoryCredentialStore:
    return MemoryCredentialStore()


@pytest.fixture
def logged_in_store() -> MemoryCredentialStore:
    return MemoryCredentialStore({TOKEN_KEY: TEST_TOKEN, USERNAME_KEY: TEST_USERNAME})


@pytest.fixture
def config(backend, tmp_path) -> Config:
    return make_config(backend.base_url, str(tmp_path))


@pytest_asyncio.fixture
async def client(config, memory_store):
    """Session client with no persisted session."""
    session_client = SessionClient(config, store=memory_store)
    yield session_client
    await session_client.close()


@pytest_asyncio.fixture
async def logged_in_client(config, logged_in_store):
    """Session client restored from a persisted session for alice."""
    session_client = SessionClient(config, store=logged_in_store)
    yield session_client
    await session_client.close()


def snapshot(client: SessionClient, store: MemoryCredentialStore) -> Tuple[Any, ...]:
    """Everything that makes up the credential, in memory and persisted."""
    return (client.token, client.username, client.is_logged_in, dict(store.data))

