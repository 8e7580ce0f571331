"""
Real-time broadcast hub served on /ws.
"""

from pulseboard.realtime.hub import BroadcastHub, ClientConnection, ConnectionState

__all__ = ["BroadcastHub", "ClientConnection", "ConnectionState"]
