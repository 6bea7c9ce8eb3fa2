# StaffDesk - Leave Balance Model

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import String, Integer, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, fk

if TYPE_CHECKING:
    from .employee import Employee


ANNUAL_LEAVE = "Annual Leave"
SICK_LEAVE = "Sick Leave"
PARENTAL_LEAVE = "Parental Leave"
OTHER_LEAVE = "Other Leave"

BALANCE_TYPES = (ANNUAL_LEAVE, SICK_LEAVE, PARENTAL_LEAVE, OTHER_LEAVE)

# Entitlement (days) used when a row is first materialized
DEFAULT_ENTITLEMENTS = {
    ANNUAL_LEAVE: Decimal("15"),
    SICK_LEAVE: Decimal("10"),
    PARENTAL_LEAVE: Decimal("14"),
    OTHER_LEAVE: Decimal("5"),
}


class LeaveBalance(TimestampMixin, Base):
    """
    Yearly leave entitlement for one employee and one balance type.

    Only the entitlement (total) is stored. Days used are always derived
    from approved time-off requests when the balance is read, so there is
    no running counter to keep in step with request status.
    """

    __tablename__ = "leave_balances"

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "balance_type", "year",
            name="uq_leave_balances_employee_type_year"
        ),
    )

    balance_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True
    )

    employee_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey(fk("employees.employee_id")),
        nullable=False,
        index=True
    )

    balance_type: Mapped[str] = mapped_column(String(30), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    total: Mapped[Decimal] = mapped_column(
        Numeric(6, 2),
        nullable=False
    )

    employee: Mapped["Employee"] = relationship("Employee")

    def __repr__(self) -> str:
        return f"<LeaveBalance {self.employee_id} {self.balance_type} {self.year}: {self.total}>"
