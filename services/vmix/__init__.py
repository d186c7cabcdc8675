"""vMix HTTP API transport."""

from .client import CommandResult, RemoteUnavailable, VMixClient
from .commands import RemoteCommand, RemoteFunction, build_field_commands
from .state import RemoteState, parse_state

__all__ = [
    "CommandResult",
    "RemoteUnavailable",
    "VMixClient",
    "RemoteCommand",
    "RemoteFunction",
    "build_field_commands",
    "RemoteState",
    "parse_state",
]
