"""Command implementations for the migrate CLI."""

from .maintenance import handle_add, handle_unlock
from .status import handle_status
from .up import add_up_arguments, handle_up
from .verify import handle_verify

__all__ = [
    "add_up_arguments",
    "handle_add",
    "handle_status",
    "handle_unlock",
    "handle_up",
    "handle_verify",
]
