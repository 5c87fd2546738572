"""Persistence subsystem exports."""

from persistence.sqlite_store import GatewayNotConnectedError, SqliteGateway

__all__ = ["GatewayNotConnectedError", "SqliteGateway"]
