"""Errors raised on the client side of the action surface."""
from typing import Optional


class ClientError(Exception):
    """Base class for failures that never reached a server verdict."""

    code = "client_error"
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ActionInProgress(ClientError):
    code = "in_progress"
    default_message = "Please wait, this request is already being processed."


class ActionTimeout(ClientError):
    code = "timeout"
    default_message = "The request took too long. Showing the latest status."


class TransportError(ClientError):
    code = "transport_error"
    default_message = "Could not reach the server. Please check your connection."
