"""JSON-RPC transport for the provider."""

from .server import JsonRpcServer, run_server


__all__ = ["JsonRpcServer", "run_server"]
