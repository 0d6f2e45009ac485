"""Typed async wrapper over the HTTP API."""
from datetime import date, time
from typing import Any, List, Optional

import httpx

from gatepass.client.errors import TransportError
from gatepass.client.session import SessionStore
from gatepass.core.exceptions import ERRORS_BY_CODE, GatepassError
from gatepass.schemas.auth import RoleRead, SessionContext, TokenResponse
from gatepass.schemas.visitor import PreApproveResponse, VisitorLookupResponse, VisitorRead


def _context_from(token: TokenResponse) -> SessionContext:
    role: Optional[RoleRead] = token.current_role
    if role is None:
        return SessionContext(profile_id=token.profile.id)
    return SessionContext(
        profile_id=token.profile.id,
        role_id=role.id,
        role=role.role,
        society_id=role.society_id,
        unit_id=role.unit_id,
    )


def error_from_response(response: httpx.Response) -> GatepassError:
    """Rebuild the domain error the server reported."""
    try:
        body = response.json()
    except ValueError:
        body = None

    detail = body.get("error") if isinstance(body, dict) else None
    if isinstance(detail, dict):
        cls = ERRORS_BY_CODE.get(detail.get("code"), GatepassError)
        error = cls(detail.get("message"))
    else:
        # Rate limiter and framework errors use their own body shape
        error = GatepassError(detail if isinstance(detail, str) else f"HTTP {response.status_code}")
    error.status_code = response.status_code
    return error


class GatepassApi:
    """
    One method per endpoint, returning schema objects.

    Server rejections are raised as the matching ``GatepassError`` subclass;
    network failures as ``TransportError``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        session: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.session = session or SessionStore()
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/v1",
            transport=transport,
            timeout=timeout,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GatepassApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def request(self, method: str, path: str, **kwargs) -> Any:
        headers = kwargs.pop("headers", {})
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise error_from_response(response)
        return response.json()

    # Authentication

    async def send_login_otp(self, phone: str) -> dict:
        return await self.request("POST", "/auth/otp/send", json={"phone": phone})

    async def verify_login_otp(self, phone: str, otp: str) -> TokenResponse:
        """Sign in and persist the session."""
        token = TokenResponse.model_validate(
            await self.request("POST", "/auth/otp/verify", json={"phone": phone, "otp": otp})
        )
        self.session.save(token.access_token, _context_from(token))
        return token

    async def select_role(self, role_id: str) -> TokenResponse:
        token = TokenResponse.model_validate(
            await self.request("POST", "/auth/role", json={"role_id": role_id})
        )
        self.session.save(token.access_token, _context_from(token))
        return token

    def sign_out(self) -> None:
        self.session.clear()

    # Reads

    async def get_visitor(self, visitor_id: str) -> VisitorRead:
        return VisitorRead.model_validate(await self.request("GET", f"/visitors/{visitor_id}"))

    async def list_visitors(self, bucket: str) -> List[VisitorRead]:
        data = await self.request("GET", "/visitors", params={"bucket": bucket})
        return [VisitorRead.model_validate(v) for v in data]

    async def lookup_visitor(self, phone: str) -> VisitorLookupResponse:
        return VisitorLookupResponse.model_validate(
            await self.request("GET", "/visitors/lookup", params={"phone": phone})
        )

    # Creation

    async def pre_approve(
        self,
        visitor_name: str,
        visitor_phone: Optional[str] = None,
        visitor_type: str = "guest",
        expected_date: Optional[date] = None,
        expected_time: Optional[time] = None,
        purpose: Optional[str] = None,
    ) -> PreApproveResponse:
        payload = {
            "visitor_name": visitor_name,
            "visitor_phone": visitor_phone,
            "visitor_type": visitor_type,
            "expected_date": expected_date.isoformat() if expected_date else None,
            "expected_time": expected_time.isoformat() if expected_time else None,
            "purpose": purpose,
        }
        return PreApproveResponse.model_validate(
            await self.request("POST", "/visitors/pre-approve", json=payload)
        )

    async def register_walk_in(
        self,
        unit_number: str,
        visitor_name: str,
        visitor_phone: Optional[str] = None,
        purpose: Optional[str] = None,
        visitor_type: str = "walk-in",
    ) -> VisitorRead:
        payload = {
            "unit_number": unit_number,
            "visitor_name": visitor_name,
            "visitor_phone": visitor_phone,
            "purpose": purpose,
            "visitor_type": visitor_type,
        }
        return VisitorRead.model_validate(await self.request("POST", "/visitors/walk-in", json=payload))

    # Transitions

    async def _transition(self, visitor_id: str, action: str, payload: Optional[dict] = None) -> VisitorRead:
        return VisitorRead.model_validate(
            await self.request("POST", f"/visitors/{visitor_id}/{action}", json=payload)
        )

    async def approve(self, visitor_id: str) -> VisitorRead:
        return await self._transition(visitor_id, "approve")

    async def deny(self, visitor_id: str, reason: Optional[str] = None) -> VisitorRead:
        return await self._transition(visitor_id, "deny", {"reason": reason})

    async def cancel(self, visitor_id: str) -> VisitorRead:
        return await self._transition(visitor_id, "cancel")

    async def check_in(self, visitor_id: str, otp: Optional[str] = None) -> VisitorRead:
        return await self._transition(visitor_id, "check-in", {"otp": otp})

    async def check_out(self, visitor_id: str) -> VisitorRead:
        return await self._transition(visitor_id, "check-out")

    async def check_in_by_otp(self, otp: str) -> VisitorRead:
        return VisitorRead.model_validate(
            await self.request("POST", "/visitors/check-in/otp", json={"otp": otp})
        )

    async def check_in_by_qr(self, payload: str) -> VisitorRead:
        return VisitorRead.model_validate(
            await self.request("POST", "/visitors/check-in/qr", json={"payload": payload})
        )
