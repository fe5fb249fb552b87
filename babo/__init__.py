"""WebSocket game server with login, matchmaking and two-player rooms."""

__version__ = "0.1.0"