"""Unit tests for visitor lifecycle services."""
import json
import pytest
from datetime import date, timedelta

from gatepass.core.exceptions import (
    OtpExpired,
    OtpInvalid,
    PermissionDenied,
    TransitionConflict,
    UnitNotFound,
    ValidationFailed,
    VisitorNotFound,
)
from gatepass.db.models import Visitor, VisitorLog, VisitorStatus, VisitorType
from gatepass.services import visitors as visitor_service

from tests.utils import T0, make_visitor


def _statuses(db_session, visitor_id):
    """Every status a visitor has been observed in, oldest first."""
    logs = db_session.query(VisitorLog).filter(
        VisitorLog.visitor_id == visitor_id
    ).order_by(VisitorLog.created_at).all()
    return [log.to_status for log in logs]


@pytest.mark.unit
class TestPreApprove:
    """Test resident pre-approval."""

    def test_pre_approve_creates_approved_visitor_with_otp(self, db_session, resident):
        """Pre-approval returns a 6-digit code valid for 24 hours."""
        visitor, otp = visitor_service.pre_approve_visitor(
            db_session, resident, "Raj Kumar", visitor_phone="9876543210", now=T0,
        )

        assert visitor.status == VisitorStatus.APPROVED
        assert len(otp) == 6 and otp.isdigit()
        assert visitor.otp == otp
        assert visitor.expected_date == date(2025, 1, 15)
        assert visitor.host_id == resident.profile_id
        assert visitor.unit_id == resident.unit_id
        assert visitor.otp_expires_at.replace(tzinfo=None) == (T0 + timedelta(hours=24)).replace(tzinfo=None)
        assert _statuses(db_session, visitor.id) == ["approved"]

    def test_guard_cannot_pre_approve(self, db_session, guard):
        with pytest.raises(PermissionDenied):
            visitor_service.pre_approve_visitor(db_session, guard, "Raj Kumar", now=T0)

    def test_past_expected_date_rejected(self, db_session, resident):
        with pytest.raises(ValidationFailed, match="past"):
            visitor_service.pre_approve_visitor(
                db_session, resident, "Raj Kumar", expected_date=date(2025, 1, 14), now=T0,
            )

    def test_walk_in_type_rejected(self, db_session, resident):
        with pytest.raises(ValidationFailed):
            visitor_service.pre_approve_visitor(
                db_session, resident, "Raj Kumar", visitor_type=VisitorType.WALK_IN, now=T0,
            )

    def test_qr_payload_names_visitor_and_code(self, db_session, resident):
        visitor, otp = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)

        payload = json.loads(visitor_service.build_qr_payload(visitor, otp))

        assert payload == {"visitorId": visitor.id, "otp": otp, "visitorName": "Raj Kumar"}


@pytest.mark.unit
class TestApproveDeny:
    """Test resident decisions on pending visitors."""

    def test_approve_pending(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        updated = visitor_service.approve(db_session, resident, visitor.id, now=T0)

        assert updated.status == VisitorStatus.APPROVED

    def test_deny_pending_with_default_reason(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        updated = visitor_service.deny(db_session, resident, visitor.id, now=T0)

        assert updated.status == VisitorStatus.DENIED
        assert updated.rejection_reason == "Denied by resident"

    def test_deny_with_reason(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        updated = visitor_service.deny(db_session, resident, visitor.id, reason="Not home today", now=T0)

        assert updated.rejection_reason == "Not home today"

    def test_second_decision_conflicts(self, db_session, resident, family_member, units):
        """Whichever decision lands second sees a conflict and changes nothing."""
        visitor = make_visitor(db_session, resident, units["A-101"])
        visitor_service.deny(db_session, resident, visitor.id, now=T0)

        with pytest.raises(TransitionConflict) as exc_info:
            visitor_service.approve(db_session, family_member, visitor.id, now=T0)

        assert exc_info.value.actual == "denied"
        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.DENIED

    def test_other_unit_resident_forbidden(self, db_session, resident, neighbour, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        with pytest.raises(PermissionDenied):
            visitor_service.approve(db_session, neighbour, visitor.id, now=T0)

    def test_unknown_visitor_not_found(self, db_session, resident):
        with pytest.raises(VisitorNotFound):
            visitor_service.approve(db_session, resident, "missing", now=T0)


@pytest.mark.unit
class TestCancel:
    """Test cancelling approved visits."""

    def test_cancel_upcoming_visit(self, db_session, resident, units):
        """Cancel lands in denied and the OTP stops working."""
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        updated = visitor_service.cancel(db_session, resident, visitor.id, now=T0)

        assert updated.status == VisitorStatus.DENIED
        assert updated.rejection_reason == "Cancelled by resident"
        assert updated.otp is None
        assert updated.otp_expires_at is None

    def test_cancel_past_visit_rejected(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        with pytest.raises(ValidationFailed, match="upcoming"):
            visitor_service.cancel(db_session, resident, visitor.id, now=T0 + timedelta(days=2))

        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.APPROVED

    def test_cancel_pending_conflicts(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        with pytest.raises(TransitionConflict):
            visitor_service.cancel(db_session, resident, visitor.id, now=T0)


@pytest.mark.unit
class TestCheckIn:
    """Test gate check-in paths."""

    def test_otp_check_in_within_window(self, db_session, resident, guard):
        """Scenario: pre-approve, then the guard enters the code an hour later."""
        visitor, otp = visitor_service.pre_approve_visitor(
            db_session, resident, "Raj Kumar", visitor_phone="9876543210", now=T0,
        )

        checked_in = visitor_service.check_in_by_otp(db_session, guard, otp, now=T0 + timedelta(hours=1))

        assert checked_in.id == visitor.id
        assert checked_in.status == VisitorStatus.CHECKED_IN
        assert checked_in.checked_in_at is not None
        assert checked_in.checked_in_by == guard.profile_id
        assert _statuses(db_session, visitor.id) == ["approved", "checked-in"]

    def test_otp_check_in_after_25_hours_is_expired(self, db_session, resident, guard):
        """The exact code a day later is expired and the visitor stays approved."""
        visitor, otp = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)

        with pytest.raises(OtpExpired):
            visitor_service.check_in_by_otp(db_session, guard, otp, now=T0 + timedelta(hours=25))

        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.APPROVED

    def test_otp_is_single_use(self, db_session, resident, guard):
        """After check-in the code is cleared and resubmitting it is invalid."""
        visitor, otp = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)
        visitor_service.check_in_by_otp(db_session, guard, otp, now=T0 + timedelta(hours=1))

        db_session.refresh(visitor)
        assert visitor.otp is None
        assert visitor.otp_expires_at is None

        with pytest.raises(OtpInvalid):
            visitor_service.check_in_by_otp(db_session, guard, otp, now=T0 + timedelta(hours=2))

    def test_unknown_otp_invalid(self, db_session, guard):
        with pytest.raises(OtpInvalid):
            visitor_service.check_in_by_otp(db_session, guard, "123456", now=T0)

    def test_malformed_otp_is_validation_error(self, db_session, guard):
        with pytest.raises(ValidationFailed, match="6-digit"):
            visitor_service.check_in_by_otp(db_session, guard, "12ab", now=T0)

    def test_check_in_by_id_with_wrong_otp(self, db_session, resident, guard, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        with pytest.raises(OtpInvalid):
            visitor_service.check_in(db_session, guard, visitor.id, otp="111111", now=T0)

    def test_manual_check_in_from_expected_list(self, db_session, resident, guard, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        updated = visitor_service.check_in(db_session, guard, visitor.id, now=T0)

        assert updated.status == VisitorStatus.CHECKED_IN
        assert updated.otp is None

    def test_manual_check_in_after_pass_expiry_is_expired(self, db_session, resident, guard):
        """A guard told "expired" cannot fall back to manual check-in."""
        visitor, otp = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)
        later = T0 + timedelta(hours=25)

        with pytest.raises(OtpExpired):
            visitor_service.check_in_by_otp(db_session, guard, otp, now=later)
        with pytest.raises(OtpExpired):
            visitor_service.check_in(db_session, guard, visitor.id, now=later)

        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.APPROVED
        assert visitor.checked_in_at is None

    def test_manual_check_in_of_future_visit_rejected(self, db_session, resident, guard):
        visitor, _ = visitor_service.pre_approve_visitor(
            db_session, resident, "Raj Kumar", expected_date=T0.date() + timedelta(days=5), now=T0,
        )

        with pytest.raises(ValidationFailed, match="not expected today"):
            visitor_service.check_in(db_session, guard, visitor.id, now=T0)

        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.APPROVED

    def test_manual_check_in_of_past_visit_rejected(self, db_session, resident, guard, units):
        """An approval without a pass is still bound to its day."""
        visitor = make_visitor(
            db_session, resident, units["A-101"], VisitorStatus.APPROVED,
            otp=None, otp_expires_at=None, expected_date=T0.date() - timedelta(days=1),
        )

        with pytest.raises(ValidationFailed):
            visitor_service.check_in(db_session, guard, visitor.id, now=T0)

    def test_manual_check_in_of_approved_request(self, db_session, resident, guard, units):
        """Requests approved by the host carry no pass and only need today's date."""
        visitor = make_visitor(
            db_session, resident, units["A-101"], VisitorStatus.APPROVED, otp=None, otp_expires_at=None,
        )

        updated = visitor_service.check_in(db_session, guard, visitor.id, now=T0 + timedelta(hours=8))

        assert updated.status == VisitorStatus.CHECKED_IN

    def test_check_in_twice_conflicts(self, db_session, resident, guard, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)
        visitor_service.check_in(db_session, guard, visitor.id, now=T0)

        with pytest.raises(TransitionConflict, match="already checked in"):
            visitor_service.check_in(db_session, guard, visitor.id, now=T0)

    def test_check_in_pending_conflicts(self, db_session, resident, guard, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        with pytest.raises(TransitionConflict):
            visitor_service.check_in(db_session, guard, visitor.id, now=T0)

    def test_resident_cannot_check_in(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        with pytest.raises(PermissionDenied):
            visitor_service.check_in(db_session, resident, visitor.id, now=T0)

    def test_qr_check_in(self, db_session, resident, guard):
        visitor, otp = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)
        payload = visitor_service.build_qr_payload(visitor, otp)

        updated = visitor_service.check_in_by_qr(db_session, guard, payload, now=T0 + timedelta(minutes=30))

        assert updated.status == VisitorStatus.CHECKED_IN

    @pytest.mark.parametrize("payload", ["not json", "[]", '{"visitorId": "x"}', '{"otp": "123456"}'])
    def test_qr_bad_payload(self, db_session, guard, payload):
        with pytest.raises(ValidationFailed):
            visitor_service.check_in_by_qr(db_session, guard, payload, now=T0)

    def test_qr_unknown_visitor(self, db_session, guard):
        payload = json.dumps({"visitorId": "missing", "otp": "123456", "visitorName": "X"})

        with pytest.raises(VisitorNotFound, match="invalid QR code"):
            visitor_service.check_in_by_qr(db_session, guard, payload, now=T0)


@pytest.mark.unit
class TestCheckOut:
    """Test gate check-out."""

    def test_check_out_inside_visitor(self, db_session, resident, guard, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.CHECKED_IN)

        updated = visitor_service.check_out(db_session, guard, visitor.id, now=T0)

        assert updated.status == VisitorStatus.CHECKED_OUT
        assert updated.checked_out_by == guard.profile_id

    def test_check_out_approved_visitor_rejected(self, db_session, resident, guard, units):
        """A visitor who never came in cannot be checked out."""
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)

        with pytest.raises(TransitionConflict):
            visitor_service.check_out(db_session, guard, visitor.id, now=T0)

        db_session.refresh(visitor)
        assert visitor.status == VisitorStatus.APPROVED
        assert visitor.checked_out_at is None


@pytest.mark.unit
class TestWalkIn:
    """Test walk-in registration."""

    def test_walk_in_born_checked_in(self, db_session, resident, neighbour, guard, units):
        """No pending or approved state is ever observed."""
        visitor = visitor_service.register_walk_in(
            db_session, guard, "B-204", "Amit Shah", visitor_phone="9123456780", now=T0,
        )

        assert visitor.status == VisitorStatus.CHECKED_IN
        assert visitor.checked_in_by == guard.profile_id
        assert visitor.host_id == neighbour.profile_id
        assert _statuses(db_session, visitor.id) == ["checked-in"]

    def test_approve_after_walk_in_conflicts(self, db_session, neighbour, guard):
        visitor = visitor_service.register_walk_in(db_session, guard, "B-204", "Amit Shah", now=T0)

        with pytest.raises(TransitionConflict):
            visitor_service.approve(db_session, neighbour, visitor.id, now=T0)

    def test_unit_match_is_case_sensitive(self, db_session, guard):
        with pytest.raises(UnitNotFound, match="Unit a-101 not found"):
            visitor_service.register_walk_in(db_session, guard, "a-101", "Amit Shah", now=T0)

        assert db_session.query(Visitor).count() == 0

    def test_unit_without_resident_has_no_host(self, db_session, manager):
        visitor = visitor_service.register_walk_in(db_session, manager, "C-301", "Courier", now=T0)

        assert visitor.host_id is None

    def test_resident_cannot_register_walk_in(self, db_session, resident):
        with pytest.raises(PermissionDenied):
            visitor_service.register_walk_in(db_session, resident, "A-101", "Amit Shah", now=T0)


@pytest.mark.unit
class TestRequestVisitor:
    """Test pending visit requests."""

    def test_guard_requests_for_unit(self, db_session, resident, guard):
        visitor = visitor_service.request_visitor(db_session, guard, "Delivery Boy", unit_number="A-101", now=T0)

        assert visitor.status == VisitorStatus.PENDING
        assert visitor.host_id == resident.profile_id

    def test_guard_must_name_unit(self, db_session, guard):
        with pytest.raises(ValidationFailed):
            visitor_service.request_visitor(db_session, guard, "Delivery Boy", now=T0)

    def test_resident_requests_for_own_unit(self, db_session, resident):
        visitor = visitor_service.request_visitor(db_session, resident, "Plumber", unit_number="B-204", now=T0)

        assert visitor.unit_id == resident.unit_id


@pytest.mark.unit
class TestListing:
    """Test bucket listings and lookups."""

    def test_resident_sees_only_own_unit(self, db_session, resident, neighbour, units):
        mine = make_visitor(db_session, resident, units["A-101"])
        make_visitor(db_session, neighbour, units["B-204"])

        pending = visitor_service.list_visitors(db_session, resident, "pending")

        assert [v.id for v in pending] == [mine.id]

    def test_expected_is_approved_for_today(self, db_session, resident, guard, units):
        today = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED)
        make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED,
                     expected_date=date(2025, 1, 16))

        expected = visitor_service.list_expected_visitors(db_session, guard, now=T0)

        assert [v.id for v in expected] == [today.id]

    def test_active_lists_inside(self, db_session, resident, guard, units):
        inside = make_visitor(db_session, resident, units["A-101"], VisitorStatus.CHECKED_IN)
        make_visitor(db_session, resident, units["A-101"], VisitorStatus.CHECKED_OUT)

        assert [v.id for v in visitor_service.list_active_visitors(db_session, guard)] == [inside.id]

    def test_unknown_bucket(self, db_session, guard):
        with pytest.raises(ValidationFailed):
            visitor_service.list_visitors(db_session, guard, "everything")

    def test_lookup_by_phone(self, db_session, resident, guard):
        visitor_service.register_walk_in(
            db_session, guard, "A-101", "Amit Shah", visitor_phone="9123456780", now=T0,
        )

        result = visitor_service.lookup_visitor_by_phone(db_session, guard, "9123456780", now=T0 + timedelta(hours=1))

        assert result["name"] == "Amit Shah"
        assert result["is_checked_in_today"] is True
        assert result["last_visit"] is not None

    def test_lookup_unknown_phone(self, db_session, guard):
        result = visitor_service.lookup_visitor_by_phone(db_session, guard, "9000000000", now=T0)

        assert result == {"name": None, "is_checked_in_today": False, "last_visit": None}

    def test_pass_only_for_approved(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"])

        with pytest.raises(ValidationFailed):
            visitor_service.get_visitor_pass(db_session, resident, visitor.id, now=T0)

    def test_pass_is_svg(self, db_session, resident):
        visitor, _ = visitor_service.pre_approve_visitor(db_session, resident, "Raj Kumar", now=T0)

        buffer = visitor_service.get_visitor_pass(db_session, resident, visitor.id, now=T0)

        assert b"svg" in buffer.getvalue()
