"""
Pulseboard - Real-Time Broadcast Hub

Owns the set of live WebSocket connections and everything pushed to them.

Per-connection lifecycle:
    connected -> authenticated -> subscribed -> closed

- A connection is acknowledged on open but receives no broadcast traffic
  until it authenticates with a session token (same checks as the HTTP gate).
- `subscribe` records channels; every authenticated connection still
  receives every broadcast.
- Delivery is best-effort: a failed send, or a socket found closed, drops
  that recipient from the live set. There is no retry or queue.
- A background task pushes the most recent metric rows on its own timer,
  independent of whoever writes them.

The connection dict is only touched from the event loop; broadcasts iterate
over a snapshot so a drop during delivery never disturbs the loop.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID, uuid4

from fastapi import WebSocket
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from starlette.websockets import WebSocketState

from pulseboard.audit.models import AuditAction
from pulseboard.audit.service import record_event
from pulseboard.auth.dependencies import AuthenticatedUser, AuthenticationError, authenticate_token
from pulseboard.auth.tokens import TokenService
from pulseboard.metrics.schemas import metric_payload
from pulseboard.metrics.store import latest_metrics
from pulseboard.realtime.messages import (
    CHANNELS,
    AlertMessage,
    AuthMessage,
    AuthSuccessMessage,
    ConnectionMessage,
    ConnectionUser,
    ErrorMessage,
    MessageFormatError,
    MetricsUpdateMessage,
    PingMessage,
    PongMessage,
    ServerMessage,
    SubscribedMessage,
    SubscribeMessage,
    parse_client_message,
)


logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"


class ClientConnection:
    """
    One live WebSocket and what the hub knows about it.

    Attributes:
        id: Connection identifier (for logs and audit)
        websocket: Underlying transport
        state: Lifecycle state
        user: Authenticated user, None until `auth` succeeds
        channels: Subscribed channels
        connected_at: Open time (UTC)
    """

    def __init__(self, websocket: WebSocket):
        self.id = uuid4().hex
        self.websocket = websocket
        self.state = ConnectionState.CONNECTED
        self.user: Optional[AuthenticatedUser] = None
        self.channels: Set[str] = set()
        self.connected_at = datetime.utcnow()

    @property
    def is_authenticated(self) -> bool:
        return self.state in (ConnectionState.AUTHENTICATED, ConnectionState.SUBSCRIBED)

    @property
    def is_open(self) -> bool:
        return (
            self.state != ConnectionState.CLOSED
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def reset_auth(self) -> None:
        self.user = None
        self.channels = set()
        self.state = ConnectionState.CONNECTED

    async def send_text(self, payload: str) -> None:
        await self.websocket.send_text(payload)


class BroadcastHub:
    """
    Real-time fan-out for dashboard clients.

    Args:
        session_factory: Async session factory (auth lookups, audit, metric polling)
        tokens: Token service shared with the HTTP gate
        broadcast_interval: Seconds between `metrics_update` pushes; <= 0 disables
        recent_metrics: Number of newest metric rows per push

    Example:
        hub = BroadcastHub(session_factory, tokens)
        hub.start()
        await hub.broadcast(MetricCreatedMessage(data=payload))
        await hub.shutdown()
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        tokens: TokenService,
        broadcast_interval: float = 5.0,
        recent_metrics: int = 10,
    ):
        self._session_factory = session_factory
        self._tokens = tokens
        self._broadcast_interval = broadcast_interval
        self._recent_metrics = recent_metrics
        self._connections: Dict[str, ClientConnection] = {}
        self._task: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    @property
    def authenticated_count(self) -> int:
        return sum(1 for c in self._connections.values() if c.is_authenticated)

    def connections(self) -> List[ClientConnection]:
        """Snapshot of live connections."""
        return list(self._connections.values())

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """Accept and register a socket, then send the connection acknowledgment."""
        await websocket.accept()
        connection = ClientConnection(websocket)
        self._connections[connection.id] = connection
        logger.info("Real-time connection %s opened (%d live)", connection.id, self.connection_count)

        await self._send(connection, ConnectionMessage())
        return connection

    def disconnect(self, connection: ClientConnection) -> None:
        """Deregister a connection. Safe to call more than once."""
        connection.state = ConnectionState.CLOSED
        if self._connections.pop(connection.id, None) is not None:
            logger.info("Real-time connection %s closed (%d live)", connection.id, self.connection_count)

    async def revoke_user_connections(
        self,
        user_id: UUID,
        session_ids: Optional[Iterable[UUID]] = None,
    ) -> int:
        """
        Drop authentication on a user's live connections.

        Called when sessions are deleted (logout, revocation, deactivation).
        The sockets stay open but receive no further broadcasts until they
        authenticate again.

        Args:
            user_id: Owner of the revoked sessions
            session_ids: Only connections authenticated on these sessions;
                None revokes every connection of the user

        Returns:
            Number of connections revoked
        """
        sessions = set(session_ids) if session_ids is not None else None
        revoked = [
            c for c in self.connections()
            if c.is_authenticated
            and c.user is not None
            and c.user.user_id == user_id
            and (sessions is None or c.user.session_id in sessions)
        ]

        for connection in revoked:
            connection.reset_auth()
            await self._send(connection, ErrorMessage(message="Session revoked"))

        if revoked:
            logger.info("Revoked %d real-time connection(s) of user %s", len(revoked), user_id)
        return len(revoked)

    async def serve(self, websocket: WebSocket) -> None:
        """Run one connection until the client goes away."""
        connection = await self.connect(websocket)
        try:
            while connection.state != ConnectionState.CLOSED:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break

                raw = frame.get("text")
                if raw is None and frame.get("bytes") is not None:
                    raw = frame["bytes"].decode("utf-8", errors="replace")
                await self.handle_message(connection, raw or "")
        except Exception:
            if connection.state != ConnectionState.CLOSED:
                logger.exception("Real-time connection %s failed", connection.id)
        finally:
            self.disconnect(connection)

    # -------------------------------------------------------------------------
    # Inbound messages
    # -------------------------------------------------------------------------

    async def handle_message(self, connection: ClientConnection, raw: str) -> None:
        """
        Dispatch one inbound frame.

        Malformed or unknown messages get an `error` reply; the connection
        stays open.
        """
        try:
            message = parse_client_message(raw)
        except MessageFormatError as e:
            await self._send(connection, ErrorMessage(message=str(e)))
            return

        if isinstance(message, AuthMessage):
            await self._handle_auth(connection, message)
        elif isinstance(message, SubscribeMessage):
            await self._handle_subscribe(connection, message)
        elif isinstance(message, PingMessage):
            await self._send(connection, PongMessage())

    async def _handle_auth(self, connection: ClientConnection, message: AuthMessage) -> None:
        try:
            async with self._session_factory() as db:
                user = await authenticate_token(db, message.token, self._tokens)
                await record_event(
                    db,
                    action=AuditAction.REALTIME_AUTH,
                    resource="realtime",
                    user_id=user.user_id,
                    details={"connection_id": connection.id, "email": user.email},
                )
        except AuthenticationError as e:
            logger.info("Real-time auth rejected on %s: %s", connection.id, e.reason)
            connection.reset_auth()
            await self._send(connection, ErrorMessage(message="Authentication failed"))
            return
        except SQLAlchemyError:
            logger.exception("Real-time auth lookup failed on %s", connection.id)
            connection.reset_auth()
            await self._send(connection, ErrorMessage(message="Authentication unavailable"))
            return

        connection.user = user
        connection.channels = set()
        connection.state = ConnectionState.AUTHENTICATED
        await self._send(
            connection,
            AuthSuccessMessage(user=ConnectionUser(id=user.user_id, email=user.email, role=user.role.value)),
        )

    async def _handle_subscribe(self, connection: ClientConnection, message: SubscribeMessage) -> None:
        if not connection.is_authenticated:
            await self._send(connection, ErrorMessage(message="Authentication required"))
            return

        requested = list(dict.fromkeys(message.channels or CHANNELS))
        unknown = [channel for channel in requested if channel not in CHANNELS]
        if unknown:
            await self._send(connection, ErrorMessage(message=f"Unknown channels: {', '.join(unknown)}"))
            return

        connection.channels = set(requested)
        connection.state = ConnectionState.SUBSCRIBED
        await self._send(connection, SubscribedMessage(channels=requested))

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def broadcast(self, message: ServerMessage) -> int:
        """
        Push a message to every authenticated connection.

        Returns:
            Number of connections the message was delivered to
        """
        recipients = [c for c in self.connections() if c.is_authenticated]
        return await self._deliver(recipients, message)

    async def broadcast_to_users(self, user_ids: Iterable[UUID], message: ServerMessage) -> int:
        """Push a message to authenticated connections of the given users."""
        targets = set(user_ids)
        recipients = [
            c for c in self.connections()
            if c.is_authenticated and c.user is not None and c.user.user_id in targets
        ]
        return await self._deliver(recipients, message)

    async def broadcast_alert(self, severity: str, message: str, data: Optional[dict] = None) -> int:
        return await self.broadcast(AlertMessage(severity=severity, message=message, data=data))

    async def broadcast_recent_metrics(self) -> int:
        """Push the newest metric rows as one `metrics_update`."""
        if not self.authenticated_count:
            return 0

        async with self._session_factory() as db:
            metrics = await latest_metrics(db, limit=self._recent_metrics)
        if not metrics:
            return 0

        return await self.broadcast(MetricsUpdateMessage(data=[metric_payload(m) for m in metrics]))

    async def _deliver(self, recipients: List[ClientConnection], message: ServerMessage) -> int:
        payload = message.to_json()
        delivered = 0

        for connection in recipients:
            if not connection.is_open:
                self.disconnect(connection)
                continue
            try:
                await connection.send_text(payload)
                delivered += 1
            except Exception as e:
                logger.debug("Dropping connection %s after failed send: %s", connection.id, e)
                self.disconnect(connection)

        return delivered

    async def _send(self, connection: ClientConnection, message: ServerMessage) -> bool:
        """Direct reply to one connection; drops it if the send fails."""
        try:
            await connection.send_text(message.to_json())
            return True
        except Exception as e:
            logger.debug("Dropping connection %s after failed reply: %s", connection.id, e)
            self.disconnect(connection)
            return False

    # -------------------------------------------------------------------------
    # Background broadcast
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the periodic metrics push."""
        if self._broadcast_interval <= 0 or self.running:
            return
        self._task = asyncio.create_task(self._run(), name="realtime-metrics-broadcast")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._broadcast_interval)
            try:
                await self.broadcast_recent_metrics()
            except Exception:
                logger.exception("Periodic metrics broadcast failed; skipping cycle")

    async def shutdown(self) -> None:
        """Stop the timer and close every live connection."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        for connection in self.connections():
            try:
                await connection.websocket.close(code=1001)
            except Exception:
                logger.debug("Connection %s already closed at shutdown", connection.id)
            self.disconnect(connection)
