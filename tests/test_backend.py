import asyncio

import httpx
import pytest

from sacco_portal.errors import ApiError
from sacco_portal.models import (
    ContributionRequest,
    ExtraType,
    FineRequest,
    FineStatus,
    FineType,
    LoanStatus,
    MemberRequest,
    SaccoSettings,
    VoteDecision,
)


def run(coro):
    return asyncio.run(coro)


def call(make_api, method, *args, token="token-abc"):
    async def go():
        async with make_api(token=token) as api:
            return await getattr(api, method)(*args)
    return run(go())


def test_sends_bearer_token_and_json_headers(backend, make_api):
    call(make_api, "list_members")
    (request,) = backend.calls("GET", "/member")
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert request.headers["Content-Type"] == "application/json"


def test_anonymous_client_sends_no_authorization(backend, make_api):
    call(make_api, "dashboard_summary", token=None)
    (request,) = backend.calls("GET", "/dashboard/summary")
    assert "Authorization" not in request.headers


def test_dashboard_summary_is_parsed(make_api):
    summary = call(make_api, "dashboard_summary").data
    assert summary.sacco_balance == 125000.5
    assert summary.active_loans == 3
    assert summary.weekly_compliance_rate == 87.25


def test_list_loans_passes_status(backend, make_api):
    backend.add_loan(status="APPROVED", approved=2000)
    backend.add_loan()
    loans = call(make_api, "list_loans", LoanStatus.APPROVED).data
    assert [l.status for l in loans] == [LoanStatus.APPROVED]
    (request,) = backend.calls("GET", "/loan")
    assert request.url.params["loanStatus"] == "APPROVED"


def test_vote_uses_loan_path_and_query(backend, make_api):
    loan_id = backend.add_loan()
    call(make_api, "vote", loan_id, 7, VoteDecision.REJECT)
    (request,) = backend.calls("POST", f"/loan/{loan_id}/vote")
    assert request.url.params["memberId"] == "7"
    assert request.url.params["decision"] == "REJECT"


def test_periods_envelope_is_unwrapped(make_api):
    (period,) = call(make_api, "list_periods").data
    assert period.amount_required == 1000
    assert period.total_collected == 1500
    assert period.late_count == 1


def test_extras_page_metadata(make_api):
    page = call(make_api, "list_extras", 1, 10, ExtraType.SURPLUS).data
    assert len(page.items) == 5
    assert page.meta.total_elements == 15
    assert page.meta.total_pages == 2
    assert all(e.type is ExtraType.SURPLUS for e in page.items)


def test_request_bodies_are_camel_case(backend, make_api):
    call(make_api, "save_member", MemberRequest("Ann Achieng", "0722", "ann@example.com", "2024-01-01"))
    call(make_api, "record_contribution", ContributionRequest(member_id=7, period_id=1, amount=1000))
    call(make_api, "record_fine", FineRequest(8, FineType.MEETING_ABSENTEEISM, 250, "2024-05-05"))
    assert backend.members[-1]["fullName"] == "Ann Achieng"
    assert backend.periods[0]["contributions"][-1]["amount"] == 1000
    assert backend.fines[-1]["type"] == "MEETING_ABSENTEEISM"


def test_settle_fine(backend, make_api):
    call(make_api, "settle_fine", 21)
    assert backend.fines[0]["status"] == "PAID"
    assert [f.id for f in call(make_api, "list_fines", FineStatus.PAID).data] == [21, 22]


def test_server_message_is_used_verbatim(backend, make_api):
    backend.override("GET", "/member", httpx.Response(500, json={"message": "Database unavailable"}))
    with pytest.raises(ApiError) as excinfo:
        call(make_api, "list_members")
    assert excinfo.value.message == "Database unavailable"
    assert excinfo.value.status_code == 500


def test_status_without_message_gets_generic_text(backend, make_api):
    backend.override("GET", "/member", httpx.Response(503, json={}))
    with pytest.raises(ApiError, match="status code 503"):
        call(make_api, "list_members")


def test_plain_text_error_body(backend, make_api):
    backend.override("GET", "/member", httpx.Response(502, text="Bad gateway"))
    with pytest.raises(ApiError, match="Bad gateway"):
        call(make_api, "list_members")


def test_transport_failure_becomes_api_error(backend, make_api):
    backend.override("GET", "/member", httpx.ConnectError("Connection refused"))
    with pytest.raises(ApiError, match="Connection refused"):
        call(make_api, "list_members")


def test_malformed_json(backend, make_api):
    backend.override("GET", "/dashboard/summary", httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(ApiError, match="Malformed response payload"):
        call(make_api, "dashboard_summary")


def test_payload_missing_required_keys(backend, make_api):
    backend.override("GET", "/loan", httpx.Response(200, json=[{"memberName": "no id"}]))
    with pytest.raises(ApiError, match="Malformed response payload"):
        call(make_api, "list_loans", LoanStatus.PENDING)


def test_login_response(make_api):
    login = call(make_api, "login", "jane@example.com", "secret", token=None).data
    assert login.access_token == "token-abc"
    assert login.user.member_id == 7
    assert login.user.role == "ADMIN"


def test_settings_round_trip(backend, make_api):
    settings = call(make_api, "get_settings").data
    settings.set("loan_interest_rate", "12.5")
    call(make_api, "update_settings", settings)
    assert backend.settings["loanInterestRate"] == 12.5
    assert backend.settings["contributionDay"] == "MONDAY"


@pytest.mark.parametrize("attr, value", [
    ("days_to_deadline", "inf"),
    ("loan_interest_rate", "nan"),
    ("contribution_amount", float("-inf")),
])
def test_settings_reject_non_finite_numbers(attr, value):
    settings = SaccoSettings()
    with pytest.raises(ValueError):
        settings.set(attr, value)
    assert getattr(settings, attr) == getattr(SaccoSettings, attr)
