"""
User directory tests: password hashing, authentication and profile edits.
"""

import pytest
from sqlalchemy.exc import IntegrityError

from cofitearia.errors import ConflictError, InvalidCredentialsError, NotFoundError, ValidationError
from cofitearia.models import SessionToken, User
from cofitearia.permissions import Role, has_permission
from cofitearia.services import auth_service, session_service
from cofitearia.services.auth_service import PasswordValidationError

from .conftest import TEST_PASSWORD


def _snapshot(db_session):
    db_session.expire_all()
    users = [u.to_dict() for u in db_session.query(User).order_by(User.id).all()]
    tokens = db_session.query(SessionToken).count()
    return users, tokens


class TestPasswords:

    def test_hash_is_salted_bcrypt(self, app):
        a = auth_service.hash_password("milktea1")
        b = auth_service.hash_password("milktea1")
        assert a != b
        assert a.startswith("$2")
        assert auth_service.verify_password("milktea1", a)
        assert not auth_service.verify_password("milktea2", a)

    def test_short_password_rejected(self, app):
        with pytest.raises(PasswordValidationError):
            auth_service.hash_password("12345")

    def test_password_error_is_a_validation_error(self):
        assert issubclass(PasswordValidationError, ValidationError)

    def test_garbage_hash_never_matches(self, app):
        assert auth_service.verify_password("anything", "not-a-bcrypt-hash") is False


class TestCreateUser:

    def test_password_is_not_stored_in_plaintext(self, db_session, staff):
        assert staff.password_hash != TEST_PASSWORD
        assert auth_service.verify_password(TEST_PASSWORD, staff.password_hash)

    def test_duplicate_username_conflicts(self, db_session, staff):
        with pytest.raises(ConflictError):
            auth_service.create_user("staffuser", "another1", "Dup", "User", Role.STAFF)

    def test_username_uniqueness_ignores_case(self, db_session, staff):
        with pytest.raises(ConflictError):
            auth_service.create_user("StaffUser", "another1", "Dup", "User", Role.STAFF)

    def test_database_rejects_case_variant_username(self, db_session, staff):
        db_session.add(User(
            username="STAFFUSER",
            password_hash=staff.password_hash,
            first_name="Dup",
            last_name="User",
            role=Role.STAFF,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

    @pytest.mark.parametrize("email", ["not-an-email", "a@b", "a b@c.com", "x@y.c"])
    def test_bad_email_rejected(self, db_session, email):
        with pytest.raises(ValidationError):
            auth_service.create_user("ana", "secret123", "Ana", "Reyes", Role.STAFF, email=email)

    def test_valid_email_accepted(self, db_session):
        user = auth_service.create_user("ana", "secret123", "Ana", "Reyes", Role.STAFF, email="ana.reyes+pos@shop.ph")
        assert user.email == "ana.reyes+pos@shop.ph"

    def test_unknown_role_rejected(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("ana", "secret123", "Ana", "Reyes", "CASHIER")

    def test_pwd_staff_defaults_accessibility_on(self, db_session, pwd_staff):
        prefs = pwd_staff.accessibility_preferences()
        assert prefs["high_contrast_mode"] is True
        assert prefs["large_text_mode"] is True
        assert prefs["screen_reader_enabled"] is True
        assert prefs["keyboard_navigation_enabled"] is True

    def test_staff_defaults_accessibility_off(self, db_session, staff):
        prefs = staff.accessibility_preferences()
        assert prefs["high_contrast_mode"] is False
        assert prefs["keyboard_navigation_enabled"] is True


class TestAuthenticate:

    def test_success_stamps_last_login(self, db_session, staff):
        assert staff.last_login_at is None
        user = auth_service.authenticate("staffuser", TEST_PASSWORD)
        assert user.id == staff.id
        assert user.last_login_at is not None

    def test_wrong_password_changes_nothing(self, db_session, staff):
        before = _snapshot(db_session)

        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("staffuser", "wrongpw")

        assert _snapshot(db_session) == before
        assert has_permission(db_session.get(User, staff.id), "DELETE_USER") is False

    def test_unknown_user_gets_same_error(self, db_session, staff):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            auth_service.authenticate("nobody", TEST_PASSWORD)
        assert str(exc_info.value) == "Invalid username or password"

    def test_inactive_user_cannot_log_in(self, db_session, staff):
        auth_service.deactivate_user(staff.id)
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("staffuser", TEST_PASSWORD)

    def test_unknown_user_still_runs_bcrypt(self, db_session, monkeypatch, staff):
        checked = []
        real_verify = auth_service.verify_password

        def counting_verify(password, password_hash):
            checked.append(password_hash)
            return real_verify(password, password_hash)

        monkeypatch.setattr(auth_service, "verify_password", counting_verify)

        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("nobody", TEST_PASSWORD)

        assert len(checked) == 1
        assert checked[0].startswith("$2")
        assert checked[0] != staff.password_hash


class TestProfile:

    def test_update_role_and_name(self, db_session, staff):
        user = auth_service.update_user(staff.id, {"role": "manager", "first_name": "Maria"})
        assert user.role == Role.MANAGER
        assert user.first_name == "Maria"

    def test_update_cannot_touch_password_hash(self, db_session, staff):
        with pytest.raises(ValidationError):
            auth_service.update_user(staff.id, {"password_hash": "x"})

    def test_change_password(self, db_session, staff):
        auth_service.change_password(staff.id, "newsecret")
        assert auth_service.authenticate("staffuser", "newsecret").id == staff.id
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate("staffuser", TEST_PASSWORD)

    def test_list_users_filters(self, db_session, owner, staff, pwd_staff):
        auth_service.deactivate_user(pwd_staff.id)
        assert [u.username for u in auth_service.list_users()] == ["owner", "staffuser"]
        assert [u.username for u in auth_service.list_users(role="STAFF")] == ["staffuser"]
        assert len(auth_service.list_users(include_inactive=True)) == 3

    def test_get_missing_user(self, db_session):
        with pytest.raises(NotFoundError):
            auth_service.get_user(98765)

    def test_accessibility_preferences_update_and_summary(self, db_session, staff):
        user = auth_service.update_accessibility_preferences(
            staff.id, large_text_mode=True, preferred_language="fil"
        )
        assert user.large_text_mode is True
        assert user.preferred_language == "fil"
        summary = auth_service.accessibility_summary(user)
        assert summary == "Staffuser Tester (Staff), Accessibility: Large text, Keyboard navigation"

    def test_unknown_preference_rejected(self, db_session, staff):
        with pytest.raises(ValidationError):
            auth_service.update_accessibility_preferences(staff.id, dark_mode=True)


class TestSessions:

    def test_session_round_trip_and_revoke(self, db_session, staff):
        session, token = session_service.create_session(staff.id)
        assert len(token) == 64
        assert session.token_hash != token
        assert session_service.validate_session(token).user.id == staff.id

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_deactivated_user_session_is_rejected(self, db_session, staff):
        _, token = session_service.create_session(staff.id)
        auth_service.deactivate_user(staff.id)
        assert session_service.validate_session(token) is None
