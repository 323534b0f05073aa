"""Matchmaker — accept connections in pairs and run their sessions.

Connections are paired in arrival order: the first becomes X and waits, the
second becomes O and starts the match. Each session's command loop runs on
a bounded ThreadPoolExecutor; once every worker is busy, further sessions
queue until one frees up.
"""

from __future__ import annotations

import logging
import socket
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from connectfive.config import GameServerConfig, default_config
from connectfive.core.match import Match
from connectfive.server.session import PlayerSession

__all__ = ["Matchmaker"]

logger = logging.getLogger(__name__)


class Matchmaker:
    """Owns the listening socket, the worker pool, and every live session."""

    def __init__(self, config: GameServerConfig | None = None) -> None:
        self.config = config or default_config()
        self._pool = ThreadPoolExecutor(
            max_workers=self.config.server.max_sessions,
            thread_name_prefix="c5p-session",
        )
        self._listener: socket.socket | None = None
        self._stopped = threading.Event()
        self._sessions_lock = threading.Lock()
        self._sessions: set[PlayerSession] = set()
        self._pending: PlayerSession | None = None
        self._matches_created = 0

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> Matchmaker:
        self.bind()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Listening
    # ------------------------------------------------------------------

    def bind(self) -> tuple[str, int]:
        """Open the listening socket. Returns the bound (host, port)."""
        if self._listener is not None:
            return self.address
        cfg = self.config.server
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            listener.bind((cfg.host, cfg.port))
            listener.listen()
        except OSError:
            listener.close()
            raise
        listener.settimeout(cfg.accept_timeout_s)
        self._listener = listener
        logger.info("Listening on %s:%d", *self.address)
        return self.address

    @property
    def address(self) -> tuple[str, int]:
        if self._listener is None:
            raise RuntimeError("Matchmaker is not bound")
        host, port = self._listener.getsockname()[:2]
        return host, port

    @property
    def matches_created(self) -> int:
        return self._matches_created

    @property
    def live_sessions(self) -> int:
        with self._sessions_lock:
            return len(self._sessions)

    def serve_forever(self) -> None:
        """Accept connections until :meth:`shutdown` is called."""
        self.bind()
        logger.info("Waiting on connections...")
        while not self._stopped.is_set():
            try:
                conn, addr = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as exc:
                if self._stopped.is_set():
                    break
                logger.warning("accept failed: %s", exc)
                continue
            conn.settimeout(None)
            try:
                self.handle_connection(conn, addr)
            except OSError as exc:
                logger.warning("Setup failed for %s: %s", addr, exc)
                conn.close()
        logger.info("Accept loop stopped")

    # ------------------------------------------------------------------
    # Pairing
    # ------------------------------------------------------------------

    def handle_connection(self, conn: socket.socket, addr: tuple) -> PlayerSession:
        """Seat a new connection: first of a new match, or opponent of the waiting one."""
        logger.info("Connection from %s:%s", *addr[:2])
        first = self._pending
        if first is None or not first.live:
            board = self.config.board
            match = Match(board.rows, board.cols, board.run_length)
            self._matches_created += 1
            session = PlayerSession(match, match.join(), conn, addr)
            session.open()
            self._pending = session
            self._dispatch(session)
            return session

        self._pending = None
        match = first.match
        session = PlayerSession(match, match.join(), conn, addr)
        session.open()
        first.pair(session)
        self._dispatch(session)
        return session

    def _dispatch(self, session: PlayerSession) -> None:
        with self._sessions_lock:
            self._sessions.add(session)
        future = self._pool.submit(session.run)
        future.add_done_callback(lambda f: self._session_done(session, f))

    def _session_done(self, session: PlayerSession, future: Future) -> None:
        with self._sessions_lock:
            self._sessions.discard(session)
        if future.cancelled():
            logger.info("%r: cancelled before it ran", session)
            session.close()

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting, finish every live session, and join the pool."""
        self._stopped.set()
        if self._listener is not None:
            self._listener.close()
        with self._sessions_lock:
            sessions = list(self._sessions)
        for session in sessions:
            session.terminate()
        self._pool.shutdown(wait=wait, cancel_futures=True)
        logger.info(
            "Matchmaker stopped after %d match(es)", self._matches_created,
        )
