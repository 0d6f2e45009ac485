"""Integration tests for phone login and role selection."""
import pytest

from gatepass.db.models import Profile, RoleType, UserRole

from tests.utils import bearer


def _login(client, otp_sender, phone):
    sent = client.post("/api/v1/auth/otp/send", json={"phone": phone})
    assert sent.status_code == 200, sent.text
    normalized = "+91" + "".join(c for c in phone if c.isdigit())[-10:]
    return client.post("/api/v1/auth/otp/verify", json={"phone": phone, "otp": otp_sender.sent[normalized]})


@pytest.mark.integration
class TestOtpLogin:
    """Test the send and verify flow."""

    def test_single_role_user_is_signed_in(self, client, otp_sender, resident):
        response = _login(client, otp_sender, "98765 00001")

        assert response.status_code == 200
        data = response.json()
        assert data["profile"]["id"] == resident.profile_id
        assert data["current_role"]["role"] == "resident"
        assert data["token_type"] == "bearer"

        me = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.json()["current_role_id"] == resident.role_id

    def test_first_login_creates_profile(self, client, otp_sender, db_session):
        response = _login(client, otp_sender, "9000012345")

        assert response.status_code == 200
        assert response.json()["roles"] == []
        assert response.json()["current_role"] is None
        assert db_session.query(Profile).filter(Profile.phone == "+919000012345").count() == 1

    def test_code_is_single_use(self, client, otp_sender, resident):
        assert _login(client, otp_sender, "9876500001").status_code == 200

        replay = client.post(
            "/api/v1/auth/otp/verify",
            json={"phone": "9876500001", "otp": otp_sender.sent["+919876500001"]},
        )

        assert replay.status_code == 400
        assert replay.json()["error"]["message"] == "Please request a new OTP"

    def test_wrong_code(self, client, otp_sender, resident):
        client.post("/api/v1/auth/otp/send", json={"phone": "9876500001"})
        code = otp_sender.sent["+919876500001"]
        wrong = "111111" if code != "111111" else "222222"

        response = client.post("/api/v1/auth/otp/verify", json={"phone": "9876500001", "otp": wrong})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "otp_invalid"

    def test_resend_invalidates_previous_code(self, client, otp_sender, resident):
        client.post("/api/v1/auth/otp/send", json={"phone": "9876500001"})
        first = otp_sender.sent["+919876500001"]
        client.post("/api/v1/auth/otp/send", json={"phone": "9876500001"})
        second = otp_sender.sent["+919876500001"]

        if first != second:
            stale = client.post("/api/v1/auth/otp/verify", json={"phone": "9876500001", "otp": first})
            assert stale.status_code == 400

        fresh = client.post("/api/v1/auth/otp/verify", json={"phone": "9876500001", "otp": second})
        assert fresh.status_code == 200

    def test_invalid_phone(self, client):
        response = client.post("/api/v1/auth/otp/send", json={"phone": "12345"})

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "Please enter a valid 10-digit mobile number"


@pytest.mark.integration
class TestRoleSelection:
    """Users with several roles pick one after login."""

    def _second_role(self, db_session, context, role=RoleType.MANAGER):
        user_role = UserRole(profile_id=context.profile_id, society_id=context.society_id, role=role)
        db_session.add(user_role)
        db_session.commit()
        return user_role

    def test_multi_role_user_must_choose(self, client, otp_sender, db_session, guard):
        manager_role = self._second_role(db_session, guard)

        login = _login(client, otp_sender, "9876500004").json()
        assert login["current_role"] is None
        assert len(login["roles"]) == 2

        selected = client.post(
            "/api/v1/auth/role",
            json={"role_id": manager_role.id},
            headers={"Authorization": f"Bearer {login['access_token']}"},
        )

        assert selected.status_code == 200
        assert selected.json()["current_role"]["role"] == "manager"

    def test_without_role_gate_actions_are_refused(self, client, otp_sender, db_session, guard):
        self._second_role(db_session, guard)
        login = _login(client, otp_sender, "9876500004").json()

        response = client.get(
            "/api/v1/visitors?bucket=active",
            headers={"Authorization": f"Bearer {login['access_token']}"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Please select a role first"

    def test_cannot_select_someone_elses_role(self, client, guard, manager):
        response = client.post("/api/v1/auth/role", json={"role_id": manager.role_id}, headers=bearer(guard))

        assert response.status_code == 403

    def test_invalid_token(self, client):
        response = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_revoked_role_token_is_refused(self, client, db_session, guard):
        """A token issued before the role was deactivated stops working."""
        db_session.get(UserRole, guard.role_id).is_active = False
        db_session.commit()

        response = client.get("/api/v1/visitors?bucket=active", headers=bearer(guard))

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Your role is no longer active. Please log in again."

    def test_token_for_foreign_role_is_refused(self, client, resident, guard):
        """Claims naming another profile's role are not trusted."""
        forged = guard.model_copy(update={"profile_id": resident.profile_id})

        response = client.get("/api/v1/visitors?bucket=active", headers=bearer(forged))

        assert response.status_code == 401
