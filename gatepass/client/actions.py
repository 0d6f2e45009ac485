"""Role action surfaces.

Each action is two-phase: the guarded request is awaited first, and only a
confirmed result is projected onto the ``VisitorBoard``. Every action returns
an ``ActionOutcome``; failures are logged and turned into a user-facing
message at this boundary and never leave the board showing a status the
server did not commit.
"""
import asyncio
from datetime import date, time
from typing import Awaitable, Callable, Optional, Set

from pydantic import BaseModel

from gatepass.client.api import GatepassApi
from gatepass.client.board import VisitorBoard
from gatepass.client.errors import ActionInProgress, ActionTimeout, ClientError
from gatepass.core import config
from gatepass.core.exceptions import GatepassError
from gatepass.core.logging_config import get_logger
from gatepass.schemas.visitor import VisitorRead

logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Something went wrong. Please try again."


class ActionOutcome(BaseModel):
    ok: bool
    visitor: Optional[VisitorRead] = None
    error_code: Optional[str] = None
    message: Optional[str] = None
    refetched: bool = False
    # Pre-approval only: what the resident shares with the visitor
    otp: Optional[str] = None
    qr_payload: Optional[str] = None


class ActionSurface:
    """Single-flight, timeout and error mapping shared by every role."""

    def __init__(
        self,
        api: GatepassApi,
        board: Optional[VisitorBoard] = None,
        timeout: Optional[float] = None,
    ):
        self.api = api
        self.board = board or VisitorBoard()
        self.timeout = timeout if timeout is not None else config.settings.ACTION_TIMEOUT_SECONDS
        self._in_flight: Set[str] = set()

    def is_busy(self, key: str) -> bool:
        """True while an action on ``key`` is awaiting the server."""
        return key in self._in_flight

    async def refresh(self) -> None:
        """Reload every bucket this role shows."""

    async def _refetch(self, visitor_id: Optional[str]) -> Optional[VisitorRead]:
        """Reconcile with authoritative state; never raises."""
        try:
            if visitor_id is None:
                await asyncio.wait_for(self.refresh(), timeout=self.timeout)
                return None
            visitor = await asyncio.wait_for(self.api.get_visitor(visitor_id), timeout=self.timeout)
        except Exception as e:
            logger.warning("refetch_failed", visitor_id=visitor_id, error=str(e))
            raise _RefetchFailed() from e
        self.board.sync(visitor)
        return visitor

    async def _failure(self, visitor_id: Optional[str], error: Exception) -> ActionOutcome:
        if isinstance(error, (GatepassError, ClientError)):
            code, message = error.code, error.message
        else:
            code, message = "unexpected_error", UNEXPECTED_ERROR_MESSAGE

        outcome = ActionOutcome(ok=False, error_code=code, message=message)

        # Rejections that mean "the state moved under us" force a re-fetch
        if code in ("conflict", "timeout"):
            try:
                outcome.visitor = await self._refetch(visitor_id)
                outcome.refetched = True
            except _RefetchFailed:
                pass

        return outcome

    async def _run(
        self,
        action: str,
        key: str,
        call: Callable[[], Awaitable],
        project: Callable,
        visitor_id: Optional[str] = None,
    ) -> ActionOutcome:
        """
        Run one action.

        Args:
            action: Name used in logs
            key: Single-flight key (visitor id, or a per-surface name)
            call: Zero-argument coroutine factory issuing the request
            project: Applied to the confirmed result; returns the outcome
            visitor_id: Visitor to re-fetch on conflict or timeout
        """
        if key in self._in_flight:
            logger.info("action_in_progress", action=action, key=key)
            return await self._failure(visitor_id, ActionInProgress())

        self._in_flight.add(key)
        try:
            try:
                result = await asyncio.wait_for(call(), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning("action_timed_out", action=action, key=key, timeout=self.timeout)
                return await self._failure(visitor_id, ActionTimeout())
            except (GatepassError, ClientError) as e:
                logger.info("action_rejected", action=action, key=key, code=e.code, message=e.message)
                return await self._failure(visitor_id, e)
            except Exception as e:
                logger.error("action_failed", action=action, key=key, error=str(e), exc_info=True)
                return await self._failure(visitor_id, e)

            outcome = project(result)
            logger.info("action_succeeded", action=action, key=key)
            return outcome
        finally:
            self._in_flight.discard(key)


class _RefetchFailed(Exception):
    pass


def _projected(apply: Callable[[VisitorRead], None]) -> Callable[[VisitorRead], ActionOutcome]:
    def project(visitor: VisitorRead) -> ActionOutcome:
        apply(visitor)
        return ActionOutcome(ok=True, visitor=visitor)
    return project


class ResidentActions(ActionSurface):
    """Approve, deny, cancel and pre-approve visitors of the resident's unit."""

    async def refresh(self) -> None:
        pending, approved = await asyncio.gather(
            self.api.list_visitors("pending"),
            self.api.list_visitors("approved"),
        )
        self.board.replace("pending", pending)
        self.board.replace("approved", approved)

    async def approve(self, visitor_id: str) -> ActionOutcome:
        return await self._run(
            "approve", visitor_id,
            lambda: self.api.approve(visitor_id),
            _projected(self.board.apply_approved),
            visitor_id=visitor_id,
        )

    async def deny(self, visitor_id: str, reason: Optional[str] = None) -> ActionOutcome:
        return await self._run(
            "deny", visitor_id,
            lambda: self.api.deny(visitor_id, reason),
            _projected(self.board.apply_denied),
            visitor_id=visitor_id,
        )

    async def cancel(self, visitor_id: str) -> ActionOutcome:
        return await self._run(
            "cancel", visitor_id,
            lambda: self.api.cancel(visitor_id),
            _projected(self.board.apply_denied),
            visitor_id=visitor_id,
        )

    async def pre_approve(
        self,
        visitor_name: str,
        visitor_phone: Optional[str] = None,
        visitor_type: str = "guest",
        expected_date: Optional[date] = None,
        expected_time: Optional[time] = None,
        purpose: Optional[str] = None,
    ) -> ActionOutcome:
        def project(response) -> ActionOutcome:
            self.board.apply_created(response.visitor)
            return ActionOutcome(
                ok=True,
                visitor=response.visitor,
                otp=response.otp,
                qr_payload=response.qr_payload,
            )

        return await self._run(
            "pre_approve", "pre-approve",
            lambda: self.api.pre_approve(
                visitor_name, visitor_phone, visitor_type, expected_date, expected_time, purpose,
            ),
            project,
        )


class WalkInActions(ActionSurface):
    """Gate roles that can register walk-ins."""

    async def refresh(self) -> None:
        inside = await self.api.list_visitors("active")
        self.board.replace("inside", inside)

    async def register_walk_in(
        self,
        unit_number: str,
        visitor_name: str,
        visitor_phone: Optional[str] = None,
        purpose: Optional[str] = None,
        visitor_type: str = "walk-in",
    ) -> ActionOutcome:
        """Create a visitor already inside; single-flight for the whole surface."""
        return await self._run(
            "register_walk_in", "walk-in",
            lambda: self.api.register_walk_in(unit_number, visitor_name, visitor_phone, purpose, visitor_type),
            _projected(self.board.apply_created),
        )


class GuardActions(WalkInActions):
    """Check visitors in and out at the gate."""

    async def refresh(self) -> None:
        expected, inside = await asyncio.gather(
            self.api.list_visitors("expected"),
            self.api.list_visitors("active"),
        )
        self.board.replace("approved", expected)
        self.board.replace("inside", inside)

    async def check_in(self, visitor_id: str, otp: Optional[str] = None) -> ActionOutcome:
        return await self._run(
            "check_in", visitor_id,
            lambda: self.api.check_in(visitor_id, otp),
            _projected(self.board.apply_checked_in),
            visitor_id=visitor_id,
        )

    async def check_in_with_otp(self, otp: str) -> ActionOutcome:
        return await self._run(
            "check_in_with_otp", "otp-entry",
            lambda: self.api.check_in_by_otp(otp),
            _projected(self.board.apply_checked_in),
        )

    async def check_in_with_qr(self, payload: str) -> ActionOutcome:
        return await self._run(
            "check_in_with_qr", "qr-scan",
            lambda: self.api.check_in_by_qr(payload),
            _projected(self.board.apply_checked_in),
        )

    async def check_out(self, visitor_id: str) -> ActionOutcome:
        return await self._run(
            "check_out", visitor_id,
            lambda: self.api.check_out(visitor_id),
            _projected(self.board.apply_checked_out),
            visitor_id=visitor_id,
        )


class ManagerActions(WalkInActions):
    """Managers only register walk-ins from the gate console."""
