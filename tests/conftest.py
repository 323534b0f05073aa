"""Shared test fixtures for connectfive."""

import threading

import pytest

from connectfive.client import GameClient
from connectfive.config import GameServerConfig, ServerConfig
from connectfive.core.match import Match
from connectfive.server import Matchmaker


@pytest.fixture
def match():
    """A started 6x9 match with X and O seated."""
    m = Match()
    m.join()
    m.join()
    m.start()
    return m


@pytest.fixture
def players(match):
    """(x, o) participants of the ``match`` fixture."""
    x = match.current_turn
    return x, match.opponent_of(x)


@pytest.fixture
def server():
    """Matchmaker on an ephemeral localhost port, serving in a background thread."""
    config = GameServerConfig(
        server=ServerConfig(host="127.0.0.1", port=0, max_sessions=8, accept_timeout_s=0.05),
    )
    mm = Matchmaker(config)
    mm.bind()
    thread = threading.Thread(target=mm.serve_forever, daemon=True)
    thread.start()
    yield mm
    mm.shutdown()
    thread.join(timeout=5)


@pytest.fixture
def connect(server):
    """Factory opening GameClients against the ``server`` fixture; all closed at teardown."""
    clients = []
    host, port = server.address

    def _connect() -> GameClient:
        client = GameClient(host, port, timeout=5.0)
        clients.append(client)
        return client

    yield _connect
    for client in clients:
        client.close()
