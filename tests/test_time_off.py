"""
Tests for the time-off facade: submission against balances, cancellation
by display id, history and balances.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from staffdesk.models import ANNUAL_LEAVE, SICK_LEAVE, Request, RequestStatus
from staffdesk.services.errors import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationFailedError,
)


JUNE_2 = date(2025, 6, 2)
JUNE_4 = date(2025, 6, 4)


class TestPaidLeaveScenario:

    def test_submit_approve_and_balance(self, org, time_off_service, request_service):
        alice = time_off_service(org.alice)

        created = alice.submit("PAID_LEAVE", JUNE_2, JUNE_4, "Family trip")
        assert created.status == RequestStatus.PENDING.value
        assert alice.balances(2025)[ANNUAL_LEAVE].remaining == Decimal("15")

        request_service(org.maria).approve(created.request_id, comment="Have fun")

        annual = alice.balances(2025)[ANNUAL_LEAVE]
        assert annual.total == Decimal("15")
        assert annual.used == Decimal("3")
        assert annual.remaining == Decimal("12")

    def test_balances_default_to_current_year(self, org, time_off_service):
        balances = time_off_service(org.alice).balances()

        assert {b.year for b in balances.values()} == {2025}


class TestSubmit:

    def test_more_than_remaining(self, org, time_off_service):
        with pytest.raises(InsufficientBalanceError) as excinfo:
            time_off_service(org.alice).submit("PAID_LEAVE", date(2025, 6, 1), date(2025, 6, 16), "Long trip")

        assert excinfo.value.remaining == Decimal("15")
        assert excinfo.value.requested == Decimal("16")

    def test_approved_days_reduce_what_is_left(self, org, time_off_service, request_service):
        first = time_off_service(org.alice).submit("PAID_LEAVE", date(2025, 6, 2), date(2025, 6, 13), "Summer")
        request_service(org.maria).approve(first.request_id)

        with pytest.raises(InsufficientBalanceError) as excinfo:
            time_off_service(org.alice).submit("PAID_LEAVE", date(2025, 7, 1), date(2025, 7, 4), "More summer")

        assert excinfo.value.remaining == Decimal("3")

    def test_exactly_the_remaining_days(self, org, time_off_service):
        created = time_off_service(org.alice).submit("OTHER_LEAVE", date(2025, 6, 2), date(2025, 6, 6), "Move house")

        assert created.duration_days == 5

    def test_unpaid_leave_has_no_cap(self, org, time_off_service):
        created = time_off_service(org.alice).submit("UNPAID_LEAVE", date(2025, 6, 1), date(2025, 7, 31), "Travel")

        assert created.duration_days == 61

    def test_approved_unpaid_leave_reduces_paid_allowance(self, org, time_off_service, request_service):
        unpaid = time_off_service(org.alice).submit("UNPAID_LEAVE", date(2025, 6, 2), date(2025, 6, 13), "Sabbatical")
        request_service(org.maria).approve(unpaid.request_id)

        with pytest.raises(InsufficientBalanceError) as excinfo:
            time_off_service(org.alice).submit("PAID_LEAVE", date(2025, 7, 1), date(2025, 7, 4), "Summer")

        assert excinfo.value.remaining == Decimal("3")

    def test_long_sick_leave_needs_certificate(self, org, time_off_service):
        with pytest.raises(ValidationFailedError, match="medical certificate"):
            time_off_service(org.alice).submit("PAID_SICK_LEAVE", date(2025, 5, 1), date(2025, 5, 4), "Flu")

    def test_long_sick_leave_with_certificate(self, org, time_off_service):
        created = time_off_service(org.alice).submit(
            "PAID_SICK_LEAVE",
            date(2025, 5, 1),
            date(2025, 5, 4),
            "Flu",
            attachment_urls=["https://files.example.com/cert.pdf", "  "],
        )

        assert created.payload["attachment_urls"] == ["https://files.example.com/cert.pdf"]

    def test_short_sick_leave_without_certificate(self, org, time_off_service):
        created = time_off_service(org.alice).submit("UNPAID_SICK_LEAVE", date(2025, 5, 1), date(2025, 5, 3), "Cold")

        assert created.status == RequestStatus.PENDING.value

    def test_sick_leave_draws_sick_balance(self, org, time_off_service, request_service):
        created = time_off_service(org.alice).submit("PAID_SICK_LEAVE", date(2025, 5, 1), date(2025, 5, 2), "Cold")
        request_service(org.hank).approve(created.request_id)

        balances = time_off_service(org.alice).balances(2025)
        assert balances[SICK_LEAVE].used == Decimal("2")
        assert balances[ANNUAL_LEAVE].used == Decimal("0")

    def test_not_a_time_off_type(self, org, time_off_service):
        with pytest.raises(ValidationFailedError, match="time-off"):
            time_off_service(org.alice).submit("PROFILE_UPDATE", JUNE_2, JUNE_4, "Oops")


class TestCancel:

    def test_cancel_by_display_id(self, org, time_off_service):
        service = time_off_service(org.alice)
        created = service.submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")

        cancelled = service.cancel(created.display_id, comment="Plans changed")

        assert cancelled.request_id == created.request_id
        assert cancelled.status == RequestStatus.CANCELLED.value
        assert cancelled.payload["cancellation_comment"] == "Plans changed"
        assert cancelled.payload["request_display_id"] == created.display_id

    @pytest.mark.parametrize("as_ref", [int, str, lambda rid: f"req-{rid:03d}"])
    def test_resolve_reference_forms(self, org, time_off_service, as_ref):
        service = time_off_service(org.alice)
        created = service.submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")

        assert service.resolve(as_ref(created.request_id)) is created

    def test_resolve_garbage(self, org, time_off_service):
        with pytest.raises(NotFoundError):
            time_off_service(org.alice).resolve("TICKET-9")

    def test_resolve_unknown_id(self, org, time_off_service):
        with pytest.raises(NotFoundError):
            time_off_service(org.alice).resolve("REQ-999")

    def test_cancel_non_time_off(self, org, time_off_service, request_service):
        profile = request_service(org.alice).create(
            "PROFILE_UPDATE",
            reason="New phone",
            payload={"changes": [{"field": "phone", "new_value": "555-0199"}]},
        )

        with pytest.raises(ValidationFailedError, match="not a time-off request"):
            time_off_service(org.alice).cancel(profile.request_id)

    def test_cancelled_days_are_not_used(self, org, time_off_service):
        service = time_off_service(org.alice)
        created = service.submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")
        service.cancel(created.request_id)

        assert service.balances(2025)[ANNUAL_LEAVE].used == 0


class TestHistory:

    def test_history_only_time_off(self, org, time_off_service, request_service):
        service = time_off_service(org.alice)
        first = service.submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")
        service.submit("WFH", date(2025, 6, 9), date(2025, 6, 9), "Plumber")
        request_service(org.alice).create(
            "PROFILE_UPDATE",
            reason="New phone",
            payload={"changes": [{"field": "phone", "new_value": "555-0199"}]},
        )
        service.cancel(first.request_id)

        history = service.history()
        assert history.total == 2
        assert {r.request_type.code for r in history.items} == {"PAID_LEAVE", "WFH"}

        assert service.history(status="CANCELLED").total == 1
        assert service.history(type_code="wfh").total == 1

    def test_history_is_personal(self, org, time_off_service):
        time_off_service(org.bob).submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")

        assert time_off_service(org.alice).history().total == 0


class TestProperties:

    def test_refused_request_leaves_no_row(self, db, org, time_off_service):

        with pytest.raises(InsufficientBalanceError):
            time_off_service(org.alice).submit("OTHER_LEAVE", JUNE_2, date(2025, 6, 7), "Six days")

        assert db.execute(select(func.count()).select_from(Request)).scalar_one() == 0

    def test_used_is_stable_across_reads(self, org, time_off_service, request_service):
        created = time_off_service(org.alice).submit("PAID_LEAVE", JUNE_2, JUNE_4, "Trip")
        request_service(org.maria).approve(created.request_id, comment="ok")

        service = time_off_service(org.alice)
        first = service.balances(2025)
        second = service.balances(2025)
        assert first == second
        assert first[ANNUAL_LEAVE].used == Decimal("3")

    def test_round_trip_through_listing(self, org, time_off_service, request_service):
        created = time_off_service(org.alice).submit("PAID_LEAVE", JUNE_2, JUNE_4, "Family trip")

        page = request_service(org.alice).list()
        listed = [r for r in page.items if r.request_id == created.request_id]

        assert len(listed) == 1
        assert (listed[0].reason, listed[0].effective_from, listed[0].effective_to) == (
            "Family trip", JUNE_2, JUNE_4,
        )
