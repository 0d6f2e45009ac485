"""Unit tests for OTP generation and verification."""
import pytest
from datetime import timedelta

from gatepass.core.exceptions import OtpExpired, OtpInvalid
from gatepass.db.models import Visitor, VisitorStatus
from gatepass.services.otp import (
    OtpPolicy,
    find_visitor_by_otp,
    generate_otp,
    login_otp_policy,
    verify_visitor_otp,
    visitor_otp_policy,
)

from tests.utils import T0, make_visitor


@pytest.mark.unit
class TestGenerateOtp:
    """Test the code generator."""

    def test_six_ascii_digits(self):
        """Codes are always six digits with no leading zero."""
        for _ in range(500):
            code = generate_otp()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999

    def test_codes_vary(self):
        """Codes are drawn randomly."""
        assert len({generate_otp() for _ in range(200)}) > 150


@pytest.mark.unit
class TestOtpPolicy:
    """Test expiry policies."""

    def test_visitor_policy_is_24_hours(self):
        code, expires_at = visitor_otp_policy().issue(T0)
        assert expires_at == T0 + timedelta(hours=24)
        assert len(code) == 6

    def test_login_policy_is_10_minutes(self):
        _, expires_at = login_otp_policy().issue(T0)
        assert expires_at == T0 + timedelta(minutes=10)

    def test_custom_ttl(self):
        _, expires_at = OtpPolicy(timedelta(seconds=30)).issue(T0)
        assert expires_at == T0 + timedelta(seconds=30)


@pytest.mark.unit
class TestVerifyVisitorOtp:
    """Test verification order and expiry boundary."""

    def _visitor(self, otp="482913", expires_at=T0 + timedelta(hours=24)):
        return Visitor(otp=otp, otp_expires_at=expires_at)

    def test_matching_code_inside_window(self):
        """No exception for the right code before expiry."""
        verify_visitor_otp("482913", self._visitor(), T0 + timedelta(hours=23, minutes=59))

    def test_matching_code_after_expiry_is_expired(self):
        """The exact code 25 hours later is reported as expired."""
        with pytest.raises(OtpExpired):
            verify_visitor_otp("482913", self._visitor(), T0 + timedelta(hours=25))

    def test_expiry_instant_is_expired(self):
        """Success requires now strictly before the expiry."""
        with pytest.raises(OtpExpired):
            verify_visitor_otp("482913", self._visitor(), T0 + timedelta(hours=24))

    @pytest.mark.parametrize("offset_hours", [1, 25])
    def test_wrong_code_is_invalid_regardless_of_expiry(self, offset_hours):
        """A mismatch is invalid whether or not the window has closed."""
        with pytest.raises(OtpInvalid):
            verify_visitor_otp("111111", self._visitor(), T0 + timedelta(hours=offset_hours))

    def test_cleared_code_is_invalid(self):
        """A visitor whose code was consumed has nothing to match."""
        with pytest.raises(OtpInvalid):
            verify_visitor_otp("482913", self._visitor(otp=None, expires_at=None), T0)

    def test_missing_expiry_is_expired(self):
        with pytest.raises(OtpExpired):
            verify_visitor_otp("482913", self._visitor(expires_at=None), T0)

    def test_naive_expiry_treated_as_utc(self):
        """SQLite hands back naive datetimes; they are read as UTC."""
        naive = (T0 + timedelta(hours=1)).replace(tzinfo=None)
        verify_visitor_otp("482913", self._visitor(expires_at=naive), T0)
        with pytest.raises(OtpExpired):
            verify_visitor_otp("482913", self._visitor(expires_at=naive), T0 + timedelta(hours=2))


@pytest.mark.unit
class TestFindVisitorByOtp:
    """Test server-side OTP lookup."""

    def test_finds_approved_visitor_in_society(self, db_session, resident, units):
        visitor = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED, otp="654321",
                               otp_expires_at=T0 + timedelta(hours=24))

        found = find_visitor_by_otp(db_session, resident.society_id, "654321")

        assert found.id == visitor.id

    def test_ignores_other_societies(self, db_session, resident, units):
        make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED, otp="654321",
                     otp_expires_at=T0 + timedelta(hours=24))

        assert find_visitor_by_otp(db_session, "another-society", "654321") is None

    def test_ignores_non_approved(self, db_session, resident, units):
        make_visitor(db_session, resident, units["A-101"], VisitorStatus.PENDING, otp="654321",
                     otp_expires_at=T0 + timedelta(hours=24))

        assert find_visitor_by_otp(db_session, resident.society_id, "654321") is None

    def test_prefers_latest_expiry_on_collision(self, db_session, resident, units):
        """Two live holders of one code resolve to the most recent."""
        make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED, otp="777777",
                     otp_expires_at=T0 + timedelta(hours=2))
        newer = make_visitor(db_session, resident, units["A-101"], VisitorStatus.APPROVED, otp="777777",
                             otp_expires_at=T0 + timedelta(hours=20))

        assert find_visitor_by_otp(db_session, resident.society_id, "777777").id == newer.id
