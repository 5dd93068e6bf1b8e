import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from flask import current_app

from .errors import ApiError
from .models import (
    ContributionPeriod,
    DashboardSummary,
    Extra,
    ExtrasPage,
    Fine,
    Loan,
    LoanStatus,
    LoginResponse,
    Member,
    PageMeta,
    SaccoSettings,
)

log = logging.getLogger(__name__)


@dataclass
class ApiResponse:
    data: Any
    status_code: int = 200


def _server_message(resp):
    """Best-effort extraction of the backend's error text."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            if body.get(key):
                return str(body[key])
    return None


def _envelope_items(payload):
    # Some endpoints wrap their list in {"data": [...]}, others return it bare.
    if isinstance(payload, dict):
        return payload.get("data") or []
    return payload or []


class SaccoApi:
    """Async client for the SACCO backend REST API."""

    def __init__(self, base_url, token=None, timeout=None, transport=None):
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_app(cls, token=None):
        """Build a client from the current app's configuration."""
        cfg = current_app.config
        return cls(
            cfg["SACCO_API_URL"],
            token=token,
            timeout=cfg.get("SACCO_API_TIMEOUT"),
            transport=cfg.get("SACCO_API_TRANSPORT"),
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method, path, params=None, json=None) -> ApiResponse:
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        log.debug("%s %s params=%s", method, path, params)
        try:
            resp = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as e:
            log.warning("%s %s failed: %r", method, path, e)
            raise ApiError(str(e) or "Network error") from e
        if resp.is_error:
            message = _server_message(resp) or f"Request failed with status code {resp.status_code}"
            log.info("%s %s -> %s: %s", method, path, resp.status_code, message)
            raise ApiError(message, status_code=resp.status_code)
        if not resp.content:
            return ApiResponse(None, resp.status_code)
        try:
            payload = resp.json()
        except ValueError as e:
            raise ApiError("Malformed response payload", status_code=resp.status_code) from e
        return ApiResponse(payload, resp.status_code)

    async def _get(self, path, params=None, parse=None):
        resp = await self._request("GET", path, params=params)
        if parse is not None:
            try:
                resp.data = parse(resp.data)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ApiError("Malformed response payload", status_code=resp.status_code) from e
        return resp

    # --- dashboard ---
    async def dashboard_summary(self):
        return await self._get("/dashboard/summary", parse=DashboardSummary.from_dict)

    # --- members ---
    async def list_members(self):
        return await self._get("/member", parse=lambda p: [Member.from_dict(m) for m in _envelope_items(p)])

    async def save_member(self, member_request):
        """Create a member, or update one when the request carries an id."""
        return await self._request("POST", "/member/create", json=member_request.to_dict())

    # --- contributions ---
    async def list_periods(self):
        return await self._get(
            "/contribution-period",
            parse=lambda p: [ContributionPeriod.from_dict(x) for x in _envelope_items(p)],
        )

    async def create_period(self, date):
        return await self._request("POST", "/contribution-period", json={"date": date})

    async def record_contribution(self, contribution_request):
        return await self._request("POST", "/contribution", json=contribution_request.to_dict())

    # --- loans ---
    async def list_loans(self, status: Optional[LoanStatus] = None):
        params = {"loanStatus": status.value if status else None}
        return await self._get("/loan", params=params, parse=lambda p: [Loan.from_dict(x) for x in _envelope_items(p)])

    async def request_loan(self, member_id, amount):
        return await self._request("POST", "/loan/request", params={"memberId": member_id, "amount": amount})

    async def vote(self, loan_id, member_id, decision):
        return await self._request(
            "POST",
            f"/loan/{loan_id}/vote",
            params={"memberId": member_id, "decision": decision.value},
        )

    async def disburse(self, loan_id):
        return await self._request("POST", "/loan/disburse", params={"loanId": loan_id})

    async def repay(self, loan_id, amount):
        return await self._request("POST", "/loan/repay", params={"loanId": loan_id, "amount": amount})

    # --- fines ---
    async def list_fines(self, status):
        return await self._get("/fine", params={"status": status.value}, parse=lambda p: [Fine.from_dict(x) for x in _envelope_items(p)])

    async def record_fine(self, fine_request):
        return await self._request("POST", "/fine", json=fine_request.to_dict())

    async def settle_fine(self, fine_id):
        return await self._request("POST", "/fine/settle", params={"fineId": fine_id})

    # --- extras ---
    async def list_extras(self, page, size, extra_type):
        def parse(payload):
            payload = payload or {}
            items = [Extra.from_dict(x) for x in _envelope_items(payload)]
            meta = PageMeta.from_dict(payload.get("metaData") if isinstance(payload, dict) else None)
            return ExtrasPage(items=items, meta=meta)

        params = {"page": page, "size": size, "extraType": extra_type.value}
        return await self._get("/extra", params=params, parse=parse)

    # --- auth ---
    async def login(self, email, password):
        resp = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        resp.data = LoginResponse.from_dict(resp.data or {})
        return resp

    # --- settings ---
    async def get_settings(self):
        return await self._get("/setup", parse=lambda p: SaccoSettings.from_dict(p or {}))

    async def update_settings(self, settings):
        return await self._request("PUT", "/setup", json=settings.to_dict())
