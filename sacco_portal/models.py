"""Records exchanged with the SACCO backend.

The backend speaks camelCase JSON. Each record parses itself with
``from_dict`` and ignores keys it does not know about; requests serialize back
with ``to_dict``.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class MemberStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class LoanStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DISBURSED = "DISBURSED"
    REPAID = "REPAID"
    REJECTED = "REJECTED"
    DEFAULTED = "DEFAULTED"


class VoteDecision(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class FineType(str, Enum):
    LATE_MEETINGS = "LATE_MEETINGS"
    MEETING_ABSENTEEISM = "MEETING_ABSENTEEISM"


class FineStatus(str, Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"


class ExtraType(str, Enum):
    SURPLUS = "SURPLUS"
    ARREAR = "ARREAR"


class ExtraStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CLEARED = "CLEARED"


def _amount(value):
    if value in (None, ""):
        return 0.0
    return float(value)


def _enum(enum_cls, value):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


@dataclass
class DashboardSummary:
    sacco_balance: float = 0.0
    total_loans_issued: float = 0.0
    active_loans: int = 0
    members_with_arrears: int = 0
    weekly_compliance_rate: float = 0.0

    @classmethod
    def from_dict(cls, data):
        return cls(
            sacco_balance=_amount(data.get("saccoBalance")),
            total_loans_issued=_amount(data.get("totalLoansIssued")),
            active_loans=int(data.get("activeLoans") or 0),
            members_with_arrears=int(data.get("membersWithArrears") or 0),
            weekly_compliance_rate=_amount(data.get("weeklyComplianceRate")),
        )


@dataclass
class Member:
    id: int
    full_name: str
    member_number: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    join_date: Optional[str] = None
    status: Optional[MemberStatus] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            full_name=data.get("fullName") or "",
            member_number=data.get("memberNumber"),
            phone=data.get("phone"),
            email=data.get("email"),
            join_date=data.get("joinDate"),
            status=_enum(MemberStatus, data.get("status")),
        )


@dataclass
class MemberRequest:
    full_name: str
    phone: str
    email: str
    join_date: str
    id: Optional[int] = None
    password: Optional[str] = None

    def to_dict(self):
        body = {
            "fullName": self.full_name,
            "phone": self.phone,
            "email": self.email,
            "joinDate": self.join_date,
        }
        if self.id is not None:
            body["id"] = self.id
        if self.password:
            body["password"] = self.password
        return body


@dataclass
class Loan:
    id: int
    status: LoanStatus
    requested_amount: float = 0.0
    approved_amount: float = 0.0
    paid_amount: float = 0.0
    interest_amount: float = 0.0
    eligible_amount: Optional[float] = None
    member_id: Optional[int] = None
    member_name: str = ""
    member_no: Optional[str] = None
    request_date: Optional[str] = None
    approved_date: Optional[str] = None
    due_date: Optional[str] = None
    duration: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        eligible = data.get("eligibleAmount")
        return cls(
            id=data["id"],
            status=LoanStatus(data["status"]),
            requested_amount=_amount(data.get("requestedAmount")),
            approved_amount=_amount(data.get("approvedAmount")),
            paid_amount=_amount(data.get("paidAmount")),
            interest_amount=_amount(data.get("interestAmount")),
            eligible_amount=None if eligible is None else float(eligible),
            member_id=data.get("memberId"),
            member_name=data.get("memberName") or "",
            member_no=data.get("memberNo"),
            request_date=data.get("requestDate"),
            approved_date=data.get("approvedDate"),
            due_date=data.get("dueDate"),
            duration=data.get("duration"),
        )

    @property
    def principal(self):
        return self.approved_amount or self.requested_amount

    @property
    def outstanding(self):
        return max(self.principal - self.paid_amount, 0.0)


@dataclass
class Contribution:
    id: int
    amount: float
    member_name: Optional[str] = None
    payment_date: Optional[str] = None
    late: bool = False

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            amount=_amount(data.get("amount")),
            member_name=data.get("memberName"),
            payment_date=data.get("paymentDate"),
            late=bool(data.get("late")),
        )


@dataclass
class ContributionPeriod:
    id: int
    date: str
    deadline: Optional[str] = None
    amount_required: float = 0.0
    contributions: List[Contribution] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            date=data.get("date"),
            deadline=data.get("deadline"),
            amount_required=_amount(data.get("amountRequired")),
            contributions=[Contribution.from_dict(c) for c in data.get("contributions") or []],
        )

    @property
    def total_collected(self):
        return sum(c.amount for c in self.contributions)

    @property
    def late_count(self):
        return sum(1 for c in self.contributions if c.late)


@dataclass
class ContributionRequest:
    member_id: int
    period_id: int
    amount: float
    payment_date: Optional[str] = None

    def to_dict(self):
        body = {"memberId": self.member_id, "periodId": self.period_id, "amount": self.amount}
        if self.payment_date:
            body["paymentDate"] = self.payment_date
        return body


@dataclass
class Fine:
    id: int
    amount: float
    status: FineStatus
    member_name: str = ""
    type: Optional[FineType] = None
    date: Optional[str] = None
    paid_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            amount=_amount(data.get("amount")),
            status=FineStatus(data["status"]),
            member_name=data.get("memberName") or "",
            type=_enum(FineType, data.get("type")),
            date=data.get("date"),
            paid_date=data.get("paidDate"),
        )


@dataclass
class FineRequest:
    member_id: int
    type: FineType
    amount: float
    fine_date: str

    def to_dict(self):
        return {
            "memberId": self.member_id,
            "type": self.type.value,
            "amount": self.amount,
            "fineDate": self.fine_date,
        }


@dataclass
class Extra:
    id: int
    amount: float
    member_name: str = ""
    period_date: Optional[str] = None
    date: Optional[str] = None
    type: Optional[ExtraType] = None
    status: Optional[ExtraStatus] = None

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            amount=_amount(data.get("amount")),
            member_name=data.get("memberName") or "",
            period_date=data.get("periodDate"),
            date=data.get("date"),
            type=_enum(ExtraType, data.get("extraType") or data.get("type")),
            status=_enum(ExtraStatus, data.get("status")),
        )


@dataclass
class PageMeta:
    page: int = 0
    size: int = 0
    total_elements: int = 0
    total_pages: int = 0

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            page=int(data.get("page") or data.get("pageNumber") or 0),
            size=int(data.get("size") or data.get("pageSize") or 0),
            total_elements=int(data.get("totalElements") or 0),
            total_pages=int(data.get("totalPages") or 0),
        )


@dataclass
class ExtrasPage:
    items: List[Extra]
    meta: PageMeta


@dataclass
class SaccoSettings:
    contribution_day: str = "MONDAY"
    contribution_amount: float = 0.0
    days_to_deadline: int = 0
    deadline_time: str = "18:00"
    late_payment_fine_amount: float = 0.0
    meeting_absent_fine_amount: float = 0.0
    meeting_late_fine_amount: float = 0.0
    loan_interest_rate: float = 0.0
    loan_penalty_rate: float = 0.0
    loan_duration: int = 12
    status: str = "ACTIVE"

    # attribute name -> backend key
    FIELDS = {
        "contribution_day": "contributionDay",
        "contribution_amount": "contributionAmount",
        "days_to_deadline": "daysToDeadline",
        "deadline_time": "deadlineTime",
        "late_payment_fine_amount": "latePaymentFineAmount",
        "meeting_absent_fine_amount": "meetingAbsentFineAmount",
        "meeting_late_fine_amount": "meetingLateFineAmount",
        "loan_interest_rate": "loanInterestRate",
        "loan_penalty_rate": "loanPenaltyRate",
        "loan_duration": "loanDuration",
        "status": "status",
    }

    @classmethod
    def from_dict(cls, data):
        settings = cls()
        for attr, key in cls.FIELDS.items():
            if data.get(key) is not None:
                settings.set(attr, data[key])
        return settings

    def to_dict(self):
        return {key: getattr(self, attr) for attr, key in self.FIELDS.items()}

    def set(self, attr, value):
        """Assign ``value`` to ``attr``, coercing it to the field's type."""
        if attr not in self.FIELDS:
            raise KeyError(attr)
        current = getattr(type(self), attr)
        if isinstance(current, str):
            value = str(value)
        else:
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(f"{attr} must be a finite number")
            value = int(number) if isinstance(current, int) else number
        setattr(self, attr, value)


@dataclass
class UserData:
    member_id: Optional[int]
    name: str
    email: str
    role: str

    @classmethod
    def from_dict(cls, data):
        member_id = data.get("memberId")
        return cls(
            member_id=None if member_id is None else int(member_id),
            name=data.get("name") or "",
            email=data.get("email") or "",
            role=data.get("role") or "",
        )


@dataclass
class LoginResponse:
    access_token: str
    user: UserData
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expiration_time: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        expiration = data.get("expirationTime")
        return cls(
            access_token=data.get("accessToken") or "",
            user=UserData.from_dict(data.get("userData") or {}),
            refresh_token=data.get("refreshToken"),
            token_type=data.get("tokenType"),
            expiration_time=None if expiration is None else int(expiration),
        )
