import json
import re
import time

import httpx
import pytest

from sacco_portal import create_app
from sacco_portal.backend import SaccoApi
from sacco_portal.config import TestingConfig

API_PREFIX = "/api"
BASE_URL = "http://backend.test/api"


def _loan_json(loan):
    return dict(loan)


class FakeBackend:
    """In-memory stand-in for the SACCO REST backend.

    Mimics the parts of the backend the portal relies on, including the loan
    state rules, so tests can drive a loan through its lifecycle. Use
    ``override`` to force a canned response for one endpoint.
    """

    def __init__(self):
        self.requests = []
        self.overrides = {}
        self.quorum = 1
        self.votes = {}
        self._ids = iter(range(100, 10_000))
        self.members = [
            {"id": 7, "memberNumber": "M007", "fullName": "Jane Wanjiku", "phone": "0711000007",
             "email": "jane@example.com", "joinDate": "2023-01-10", "status": "ACTIVE"},
            {"id": 8, "memberNumber": "M008", "fullName": "Peter Otieno", "phone": "0711000008",
             "email": "peter@example.com", "joinDate": "2023-02-11", "status": "ACTIVE"},
        ]
        self.loans = {}
        self.periods = [
            {"id": 1, "date": "2024-05-06", "deadline": "2024-05-06T18:00:00", "amountRequired": 1000,
             "contributions": [
                 {"id": 11, "memberName": "Jane Wanjiku", "amount": 1000, "paymentDate": "2024-05-06T10:00:00", "late": False},
                 {"id": 12, "memberName": "Peter Otieno", "amount": 500, "paymentDate": "2024-05-07T09:00:00", "late": True},
             ]},
        ]
        self.fines = [
            {"id": 21, "memberName": "Peter Otieno", "amount": 200, "date": "2024-05-01",
             "status": "UNPAID", "type": "LATE_MEETINGS", "paidDate": None},
            {"id": 22, "memberName": "Jane Wanjiku", "amount": 300, "date": "2024-04-01",
             "status": "PAID", "type": "MEETING_ABSENTEEISM", "paidDate": "2024-04-03"},
        ]
        self.extras = [
            {"id": 31 + i, "memberName": f"Member {i}", "amount": 100 * (i + 1), "periodDate": "2024-05-06",
             "date": "2024-05-07", "extraType": "ARREAR" if i % 2 else "SURPLUS",
             "status": "ACTIVE" if i % 2 else None}
            for i in range(30)
        ]
        self.settings = {
            "contributionDay": "MONDAY", "contributionAmount": 1000, "daysToDeadline": 2,
            "deadlineTime": "18:00", "latePaymentFineAmount": 100, "meetingAbsentFineAmount": 200,
            "meetingLateFineAmount": 50, "loanInterestRate": 10, "loanPenaltyRate": 5,
            "loanDuration": 30, "status": "ACTIVE",
        }

    # --- helpers for tests ---
    def add_loan(self, status="PENDING", requested=5000, approved=0, paid=0, member_id=7):
        loan_id = next(self._ids)
        member = next(m for m in self.members if m["id"] == member_id)
        self.loans[loan_id] = {
            "id": loan_id, "memberId": member_id, "memberName": member["fullName"],
            "memberNo": member["memberNumber"], "requestedAmount": requested,
            "approvedAmount": approved, "paidAmount": paid, "interestAmount": 0,
            "status": status, "requestDate": "2024-05-01", "duration": 30,
        }
        return loan_id

    def override(self, method, path, response):
        self.overrides[(method, path)] = response

    def calls(self, method=None, path=None):
        return [
            r for r in self.requests
            if (method is None or r.method == method)
            and (path is None or r.url.path == API_PREFIX + path)
        ]

    # --- transport entry point ---
    def __call__(self, request):
        self.requests.append(request)
        path = request.url.path[len(API_PREFIX):]
        key = (request.method, path)
        if key in self.overrides:
            response = self.overrides[key]
            if isinstance(response, Exception):
                raise response
            return response(request) if callable(response) else response
        params = request.url.params
        body = json.loads(request.content) if request.content else None

        if key == ("POST", "/auth/login"):
            if body["password"] != "secret":
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(200, json={
                "accessToken": "token-abc", "refreshToken": "refresh-abc", "tokenType": "Bearer",
                "expirationTime": int(time.time() * 1000) + 3_600_000,
                "userData": {"memberId": 7, "name": "Jane Wanjiku", "email": body["email"], "role": "ADMIN"},
            })
        if key == ("GET", "/dashboard/summary"):
            return httpx.Response(200, json={
                "saccoBalance": 125000.5, "totalLoansIssued": 80000, "activeLoans": 3,
                "membersWithArrears": 2, "weeklyComplianceRate": 87.25,
            })
        if key == ("GET", "/member"):
            return httpx.Response(200, json=self.members)
        if key == ("POST", "/member/create"):
            if body.get("id"):
                member = next(m for m in self.members if m["id"] == body["id"])
                member.update(body)
            else:
                member = dict(body, id=next(self._ids), status="ACTIVE")
                self.members.append(member)
            return httpx.Response(200, json=member)
        if key == ("GET", "/loan"):
            status = params.get("loanStatus")
            loans = [_loan_json(l) for l in self.loans.values() if status is None or l["status"] == status]
            return httpx.Response(200, json=loans)
        if key == ("POST", "/loan/request"):
            loan_id = self.add_loan(requested=float(params["amount"]), member_id=int(params["memberId"]))
            return httpx.Response(200, json=_loan_json(self.loans[loan_id]))
        match = re.fullmatch(r"/loan/(\d+)/vote", path)
        if match and request.method == "POST":
            return self._vote(int(match.group(1)), int(params["memberId"]), params["decision"])
        if key == ("POST", "/loan/disburse"):
            loan = self.loans.get(int(params["loanId"]))
            if loan is None or loan["status"] != "APPROVED":
                return httpx.Response(400, json={"message": "Loan is not approved"})
            loan["status"] = "DISBURSED"
            loan["approvedDate"] = loan.get("approvedDate") or "2024-05-02"
            return httpx.Response(200, json=_loan_json(loan))
        if key == ("POST", "/loan/repay"):
            loan = self.loans.get(int(params["loanId"]))
            if loan is None or loan["status"] != "DISBURSED":
                return httpx.Response(400, json={"message": "Loan is not disbursed"})
            loan["paidAmount"] += float(params["amount"])
            if loan["paidAmount"] >= loan["approvedAmount"]:
                loan["status"] = "REPAID"
            return httpx.Response(200, json=_loan_json(loan))
        if key == ("GET", "/contribution-period"):
            return httpx.Response(200, json={"data": self.periods})
        if key == ("POST", "/contribution-period"):
            period = {"id": next(self._ids), "date": body["date"], "deadline": None,
                      "amountRequired": self.settings["contributionAmount"], "contributions": []}
            self.periods.insert(0, period)
            return httpx.Response(200, json=period)
        if key == ("POST", "/contribution"):
            period = next(p for p in self.periods if p["id"] == body["periodId"])
            member = next(m for m in self.members if m["id"] == body["memberId"])
            period["contributions"].append({
                "id": next(self._ids), "memberName": member["fullName"], "amount": body["amount"],
                "paymentDate": body.get("paymentDate"), "late": False,
            })
            return httpx.Response(200, json={"ok": True})
        if key == ("GET", "/fine"):
            return httpx.Response(200, json=[f for f in self.fines if f["status"] == params.get("status")])
        if key == ("POST", "/fine"):
            member = next(m for m in self.members if m["id"] == body["memberId"])
            fine = {"id": next(self._ids), "memberName": member["fullName"], "amount": body["amount"],
                    "date": body["fineDate"], "status": "UNPAID", "type": body["type"], "paidDate": None}
            self.fines.append(fine)
            return httpx.Response(200, json=fine)
        if key == ("POST", "/fine/settle"):
            fine = next(f for f in self.fines if f["id"] == int(params["fineId"]))
            fine["status"] = "PAID"
            fine["paidDate"] = "2024-05-10"
            return httpx.Response(200, json=fine)
        if key == ("GET", "/extra"):
            page, size = int(params["page"]), int(params["size"])
            matching = [e for e in self.extras if e["extraType"] == params["extraType"]]
            chunk = matching[page * size:(page + 1) * size]
            total_pages = (len(matching) + size - 1) // size
            return httpx.Response(200, json={
                "data": chunk,
                "metaData": {"page": page, "size": size, "totalElements": len(matching), "totalPages": total_pages},
            })
        if key == ("GET", "/setup"):
            return httpx.Response(200, json=self.settings)
        if key == ("PUT", "/setup"):
            self.settings = body
            return httpx.Response(200, json=body)
        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})

    def _vote(self, loan_id, member_id, decision):
        loan = self.loans.get(loan_id)
        if loan is None or loan["status"] != "PENDING":
            return httpx.Response(400, json={"message": "Voting is closed for this loan"})
        self.votes.setdefault(loan_id, {})[member_id] = decision
        decisions = list(self.votes[loan_id].values())
        if decisions.count("APPROVE") >= self.quorum:
            loan["status"] = "APPROVED"
            loan["approvedAmount"] = loan["requestedAmount"]
            loan["approvedDate"] = "2024-05-02"
        elif decisions.count("REJECT") >= self.quorum:
            loan["status"] = "REJECTED"
        return httpx.Response(200, json={"loanId": loan_id, "status": loan["status"]})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_api(backend):
    def factory(token="token-abc"):
        return SaccoApi(BASE_URL, token=token, transport=httpx.MockTransport(backend))
    return factory


@pytest.fixture
def app(backend):
    app = create_app(TestingConfig, SACCO_API_TRANSPORT=httpx.MockTransport(backend))
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


def sign_in(client, role="ADMIN", member_id=7, expires_in_ms=3_600_000):
    with client.session_transaction() as sess:
        sess.update({
            "accessToken": "token-abc",
            "role": role,
            "userName": "Jane Wanjiku",
            "userEmail": "jane@example.com",
            "memberId": member_id,
            "expirationTime": int(time.time() * 1000) + expires_in_ms,
        })


@pytest.fixture
def admin_client(client):
    sign_in(client)
    return client
