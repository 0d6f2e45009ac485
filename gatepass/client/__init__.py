"""Async client for the role action surfaces."""
from gatepass.client.actions import (
    ActionOutcome,
    GuardActions,
    ManagerActions,
    ResidentActions,
)
from gatepass.client.api import GatepassApi
from gatepass.client.board import VisitorBoard
from gatepass.client.errors import ActionInProgress, ActionTimeout, TransportError
from gatepass.client.session import SessionStore

__all__ = [
    "ActionOutcome",
    "GuardActions",
    "ManagerActions",
    "ResidentActions",
    "GatepassApi",
    "VisitorBoard",
    "ActionInProgress",
    "ActionTimeout",
    "TransportError",
    "SessionStore",
]
