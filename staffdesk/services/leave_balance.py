# StaffDesk - Leave Balance Ledger
# Yearly entitlements, with days used derived from approved requests

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from staffdesk.models.leave_balance import (
    LeaveBalance,
    BALANCE_TYPES,
    DEFAULT_ENTITLEMENTS,
    ANNUAL_LEAVE,
    SICK_LEAVE,
    PARENTAL_LEAVE,
    OTHER_LEAVE,
)
from staffdesk.models.request import Request, RequestStatus
from staffdesk.models.request_type import RequestType
from staffdesk.services.audit import AuditService
from staffdesk.services.errors import ValidationFailedError


logger = logging.getLogger(__name__)


# Time-off types checked against the remaining balance at submission
BALANCE_TYPE_BY_CODE = {
    "PAID_LEAVE": ANNUAL_LEAVE,
    "PAID_SICK_LEAVE": SICK_LEAVE,
    "PARENTAL_LEAVE": PARENTAL_LEAVE,
    "OTHER_LEAVE": OTHER_LEAVE,
}

# Unpaid leave is never refused for lack of balance, but once approved it
# still counts as days used of the matching balance. WFH counts nowhere.
USED_BALANCE_TYPE_BY_CODE = {
    **BALANCE_TYPE_BY_CODE,
    "UNPAID_LEAVE": ANNUAL_LEAVE,
    "UNPAID_SICK_LEAVE": SICK_LEAVE,
}


def balance_type_for(code: str) -> Optional[str]:
    """Balance a submission of this type must fit in, if any."""
    return BALANCE_TYPE_BY_CODE.get(code)


def codes_for(balance_type: str) -> list[str]:
    """Request type codes whose approved days count against balance_type."""
    return [code for code, mapped in USED_BALANCE_TYPE_BY_CODE.items() if mapped == balance_type]


def duration_days(start: date, end: date) -> int:
    """Inclusive day count: the same start and end date is one day."""
    return (end - start).days + 1


@dataclass(frozen=True)
class BalanceSnapshot:
    balance_type: str
    year: int
    total: Decimal
    used: Decimal

    @property
    def remaining(self) -> Decimal:
        # May go negative if an over-limit request was approved anyway
        return self.total - self.used


class LeaveBalanceLedger:
    """
    Leave entitlements per (employee, balance type, year).

    Only the entitlement is stored. "used" is recomputed from APPROVED
    time-off requests on every read, so approving, rejecting or cancelling
    a request never has to touch this table.

    Usage:
        ledger = LeaveBalanceLedger(db)
        balances = ledger.get_balances(employee_id, 2025)
        balances["Annual Leave"].remaining
    """

    def __init__(
        self,
        db: Session,
        performed_by: Optional[int] = None,
        ip_address: Optional[str] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.db = db
        self.performed_by = performed_by
        self.ip_address = ip_address
        self.clock = clock or date.today

    def _check_type(self, balance_type: str) -> None:
        if balance_type not in BALANCE_TYPES:
            raise ValidationFailedError(f"Unknown balance type '{balance_type}'")

    def _find(self, employee_id: int, balance_type: str, year: int) -> Optional[LeaveBalance]:
        return self.db.execute(
            select(LeaveBalance).where(
                LeaveBalance.employee_id == employee_id,
                LeaveBalance.balance_type == balance_type,
                LeaveBalance.year == year,
            )
        ).scalar_one_or_none()

    def ensure_balance(self, employee_id: int, balance_type: str, year: int) -> LeaveBalance:
        """
        Return the balance row, creating it with the default entitlement if absent.

        The insert runs in a SAVEPOINT. If a concurrent caller created the
        same row first, the unique constraint fires and we read theirs.
        """
        self._check_type(balance_type)

        balance = self._find(employee_id, balance_type, year)
        if balance is not None:
            return balance

        try:
            with self.db.begin_nested():
                balance = LeaveBalance(
                    employee_id=employee_id,
                    balance_type=balance_type,
                    year=year,
                    total=DEFAULT_ENTITLEMENTS[balance_type],
                )
                self.db.add(balance)
        except IntegrityError:
            logger.warning(
                "Balance %s/%s/%s created concurrently, re-reading",
                employee_id, balance_type, year,
            )
            balance = self._find(employee_id, balance_type, year)
            if balance is None:
                raise
            return balance

        logger.info(
            "Materialized default %s balance for employee %s, year %s",
            balance_type, employee_id, year,
        )
        return balance

    def used_days(self, employee_id: int, balance_type: str, year: int) -> Decimal:
        """
        Days used: inclusive length of every APPROVED request of a mapped
        type whose effective_from falls in the year.
        """
        self._check_type(balance_type)
        codes = codes_for(balance_type)
        if not codes:
            return Decimal("0")

        rows = self.db.execute(
            select(Request.effective_from, Request.effective_to)
            .join(RequestType, Request.request_type_id == RequestType.request_type_id)
            .where(
                Request.requester_id == employee_id,
                Request.status == RequestStatus.APPROVED.value,
                RequestType.code.in_(codes),
                Request.effective_from >= date(year, 1, 1),
                Request.effective_from <= date(year, 12, 31),
                Request.effective_to.is_not(None),
            )
        ).all()

        return sum(
            (Decimal(duration_days(start, end)) for start, end in rows),
            Decimal("0"),
        )

    def get_balance(self, employee_id: int, balance_type: str, year: Optional[int] = None) -> BalanceSnapshot:
        year = year or self.clock().year
        balance = self.ensure_balance(employee_id, balance_type, year)
        return BalanceSnapshot(
            balance_type=balance_type,
            year=year,
            total=Decimal(balance.total),
            used=self.used_days(employee_id, balance_type, year),
        )

    def get_balances(self, employee_id: int, year: Optional[int] = None) -> dict[str, BalanceSnapshot]:
        """All four balance types for the year, keyed by balance type."""
        year = year or self.clock().year
        return {
            balance_type: self.get_balance(employee_id, balance_type, year)
            for balance_type in BALANCE_TYPES
        }

    def check_sufficiency(
        self,
        employee_id: int,
        balance_type: str,
        year: int,
        requested_days,
    ) -> bool:
        """True when remaining (with a freshly derived used) covers requested_days."""
        snapshot = self.get_balance(employee_id, balance_type, year)
        return snapshot.remaining >= Decimal(requested_days)

    def set_entitlement(
        self,
        employee_id: int,
        balance_type: str,
        year: int,
        total,
    ) -> LeaveBalance:
        """Administrative change of the yearly entitlement (create or update)."""
        total = Decimal(str(total))
        if total < 0:
            raise ValidationFailedError("Entitlement cannot be negative")

        balance = self.ensure_balance(employee_id, balance_type, year)
        audit = AuditService(self.db, self.performed_by or employee_id, self.ip_address)
        old_state = audit.capture_state(balance)

        balance.total = total
        self.db.flush()
        audit.log_update(balance, old_state, context="set entitlement")

        logger.info(
            "Entitlement %s/%s/%s set to %s by %s",
            employee_id, balance_type, year, total, self.performed_by,
        )
        return balance
