"""Tests for commune_api.services.accounts against an in-memory database."""

import unittest
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

from commune_api.core.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidToken,
    InvariantViolation,
    NotFound,
    ServiceUnavailable,
    Unauthorized,
)
from commune_api.core.security import create_reset_token, digest_token, verify_token
from commune_api.models import Account
from commune_api.services import accounts
from commune_api.services.accounts import FederatedProfile
from tests.support import FakeMailer, make_session_factory


class AccountsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()

    def tearDown(self) -> None:
        self.db.close()


class TestRegister(AccountsTestCase):
    def test_first_account_is_admin_whatever_role_requested(self) -> None:
        account, token = accounts.register(self.db, "first@example.com", "pw", role="VIEWER")
        self.assertEqual(account.role, "ADMIN")
        self.assertEqual(verify_token(token)["role"], "ADMIN")

    def test_later_accounts_get_requested_role(self) -> None:
        accounts.register(self.db, "first@example.com", "pw")
        account, _ = accounts.register(self.db, "second@example.com", "pw", role="viewer")
        self.assertEqual(account.role, "VIEWER")

    def test_default_role_is_editor(self) -> None:
        accounts.register(self.db, "first@example.com", "pw")
        account, _ = accounts.register(self.db, "second@example.com", "pw")
        self.assertEqual(account.role, "EDITOR")

    def test_cannot_self_assign_admin(self) -> None:
        accounts.register(self.db, "first@example.com", "pw")
        with self.assertRaises(Forbidden):
            accounts.register(self.db, "second@example.com", "pw", role="ADMIN")

    def test_unknown_role_rejected(self) -> None:
        with self.assertRaises(InvalidRequest):
            accounts.register(self.db, "first@example.com", "pw", role="SUPERUSER")

    def test_duplicate_email(self) -> None:
        accounts.register(self.db, "dup@example.com", "pw")
        with self.assertRaises(Conflict):
            accounts.register(self.db, "dup@example.com", "other")

    def test_duplicate_username(self) -> None:
        accounts.register(self.db, "a@example.com", "pw", username="mayor")
        with self.assertRaises(Conflict):
            accounts.register(self.db, "b@example.com", "pw", username="mayor")

    def test_derived_username_gets_suffix_on_collision(self) -> None:
        first, _ = accounts.register(self.db, "info@one.sn", "pw")
        second, _ = accounts.register(self.db, "info@two.sn", "pw")
        self.assertEqual(first.username, "info")
        self.assertEqual(second.username, "info1")

    def test_password_is_hashed(self) -> None:
        account, _ = accounts.register(self.db, "a@example.com", "plain-text")
        self.assertNotEqual(account.password_hash, "plain-text")


class TestLogin(AccountsTestCase):
    def setUp(self) -> None:
        super().setUp()
        accounts.register(self.db, "alice@example.com", "s3cret")

    def test_success(self) -> None:
        account, token = accounts.login(self.db, "alice@example.com", "s3cret")
        self.assertEqual(verify_token(token)["sub"], str(account.id))

    def test_unknown_email_and_wrong_password_fail_identically(self) -> None:
        with self.assertRaises(Unauthorized) as unknown:
            accounts.login(self.db, "nobody@example.com", "s3cret")
        with self.assertRaises(Unauthorized) as wrong:
            accounts.login(self.db, "alice@example.com", "nope")
        self.assertEqual(unknown.exception.message, wrong.exception.message)


class TestProfile(AccountsTestCase):
    def test_update_conflicts_with_other_accounts_only(self) -> None:
        alice, _ = accounts.register(self.db, "alice@example.com", "pw", username="alice")
        accounts.register(self.db, "bob@example.com", "pw", username="bob")
        with self.assertRaises(Conflict):
            accounts.update_profile(self.db, alice, username="bob")
        with self.assertRaises(Conflict):
            accounts.update_profile(self.db, alice, email="bob@example.com")
        updated = accounts.update_profile(self.db, alice, username="alice", email="alice@mlomp.sn")
        self.assertEqual(updated.email, "alice@mlomp.sn")

    def test_change_password_requires_current(self) -> None:
        alice, _ = accounts.register(self.db, "alice@example.com", "old")
        with self.assertRaises(Unauthorized):
            accounts.change_password(self.db, alice, "wrong", "new")
        accounts.change_password(self.db, alice, "old", "new")
        accounts.login(self.db, "alice@example.com", "new")


class TestPasswordReset(AccountsTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.alice, _ = accounts.register(self.db, "alice@example.com", "old")
        self.mailer = FakeMailer()

    def _issue(self) -> str:
        accounts.forgot_password(self.db, "alice@example.com", self.mailer)
        return self.mailer.resets[-1][1]

    def test_only_digest_is_stored(self) -> None:
        token = self._issue()
        self.db.refresh(self.alice)
        self.assertEqual(self.alice.reset_token_digest, digest_token(token))
        self.assertNotIn(token, (self.alice.reset_token_digest, self.alice.password_hash))

    def test_unknown_email(self) -> None:
        with self.assertRaises(NotFound):
            accounts.forgot_password(self.db, "nobody@example.com", self.mailer)
        self.assertEqual(self.mailer.resets, [])

    def test_token_is_single_use(self) -> None:
        token = self._issue()
        accounts.reset_password(self.db, token, "new")
        accounts.login(self.db, "alice@example.com", "new")
        with self.assertRaises(InvalidToken):
            accounts.reset_password(self.db, token, "newer")

    def test_newer_request_supersedes_older_token(self) -> None:
        first = self._issue()
        second = self._issue()
        with self.assertRaises(InvalidToken):
            accounts.reset_password(self.db, first, "new")
        accounts.reset_password(self.db, second, "new")

    def test_expired_token(self) -> None:
        token, expires_at = create_reset_token(self.alice, now=datetime.now(UTC) - timedelta(minutes=61))
        self.alice.reset_token_digest = digest_token(token)
        self.alice.reset_token_expires_at = expires_at
        self.db.commit()
        with self.assertRaises(InvalidToken):
            accounts.reset_password(self.db, token, "new")

    def test_garbage_token(self) -> None:
        with self.assertRaises(InvalidToken):
            accounts.reset_password(self.db, "garbage", "new")

    def test_failed_delivery_rolls_back_digest(self) -> None:
        failing = FakeMailer(error=ServiceUnavailable("Email delivery is not configured"))
        with self.assertRaises(ServiceUnavailable):
            accounts.forgot_password(self.db, "alice@example.com", failing)
        self.db.refresh(self.alice)
        self.assertIsNone(self.alice.reset_token_digest)


class TestAdminInvariants(AccountsTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.admin, _ = accounts.register(self.db, "admin@example.com", "pw")
        self.editor, _ = accounts.register(self.db, "editor@example.com", "pw")

    def test_cannot_delete_last_admin(self) -> None:
        with self.assertRaises(InvariantViolation):
            accounts.delete_account(self.db, self.admin.id)
        self.assertIsNotNone(self.db.get(Account, self.admin.id))

    def test_cannot_demote_last_admin(self) -> None:
        with self.assertRaises(InvariantViolation):
            accounts.change_role(self.db, self.admin.id, "EDITOR")
        self.db.refresh(self.admin)
        self.assertEqual(self.admin.role, "ADMIN")

    def test_admin_removable_once_another_exists(self) -> None:
        accounts.change_role(self.db, self.editor.id, "ADMIN")
        accounts.change_role(self.db, self.admin.id, "VIEWER")
        accounts.delete_account(self.db, self.admin.id)
        self.assertIsNone(self.db.get(Account, self.admin.id))

    def test_delete_non_admin(self) -> None:
        accounts.delete_account(self.db, self.editor.id)
        self.assertIsNone(self.db.get(Account, self.editor.id))

    def test_unknown_targets(self) -> None:
        with self.assertRaises(NotFound):
            accounts.delete_account(self.db, 999)
        with self.assertRaises(NotFound):
            accounts.change_role(self.db, 999, "EDITOR")

    def test_invalid_role(self) -> None:
        with self.assertRaises(InvalidRequest):
            accounts.change_role(self.db, self.editor.id, "OWNER")

    def test_list_newest_first(self) -> None:
        listed = accounts.list_accounts(self.db)
        self.assertEqual([a.id for a in listed], [self.editor.id, self.admin.id])


class TestFederatedLogin(AccountsTestCase):
    def _profile(self, **overrides: str) -> FederatedProfile:
        values = {
            "provider_id": "g-123",
            "email": "Fatou@Example.com",
            "given_name": "Fatou",
            "family_name": "Diatta",
        }
        values.update(overrides)
        return FederatedProfile(**values)

    def test_new_identity_creates_incomplete_account(self) -> None:
        accounts.register(self.db, "admin@example.com", "pw")
        account, missing = accounts.federated_login(self.db, self._profile())
        self.assertEqual(account.email, "fatou@example.com")
        self.assertEqual(account.role, "VIEWER")
        self.assertFalse(account.has_password)
        self.assertFalse(account.is_profile_completed)
        self.assertIn("password", missing)
        self.assertIn("phone_number", missing)
        with self.assertRaises(Unauthorized):
            accounts.login(self.db, "fatou@example.com", "")

    def test_first_account_via_google_is_admin(self) -> None:
        account, _ = accounts.federated_login(self.db, self._profile())
        self.assertEqual(account.role, "ADMIN")

    def test_links_existing_email(self) -> None:
        local, _ = accounts.register(self.db, "fatou@example.com", "pw")
        account, missing = accounts.federated_login(self.db, self._profile())
        self.assertEqual(account.id, local.id)
        self.assertEqual(account.google_id, "g-123")
        self.assertNotIn("password", missing)

    def test_same_identity_returns_same_account(self) -> None:
        first, _ = accounts.federated_login(self.db, self._profile())
        again, _ = accounts.federated_login(self.db, self._profile(email="changed@example.com"))
        self.assertEqual(first.id, again.id)

    def test_complete_profile(self) -> None:
        account, _ = accounts.federated_login(self.db, self._profile())
        completed = accounts.complete_profile(
            self.db,
            account,
            phone_number="+221770000000",
            password="chosen",
            country="Senegal",
            city="Mlomp",
            department="Oussouye",
            commune="Mlomp",
        )
        self.assertTrue(completed.is_profile_completed)
        self.assertTrue(completed.has_password)
        self.assertEqual(accounts.missing_profile_fields(completed), [])
        accounts.login(self.db, "fatou@example.com", "chosen")

    def test_phone_number_must_be_unique(self) -> None:
        first, _ = accounts.federated_login(self.db, self._profile())
        second, _ = accounts.federated_login(self.db, self._profile(provider_id="g-456", email="x@example.com"))
        fields = dict(password="pw", country="SN", city="Mlomp", department="Oussouye", commune="Mlomp")
        accounts.complete_profile(self.db, first, phone_number="+221770000001", **fields)
        with self.assertRaises(Conflict):
            accounts.complete_profile(self.db, second, phone_number="+221770000001", **fields)

    def test_placeholder_phone_rejected(self) -> None:
        account, _ = accounts.federated_login(self.db, self._profile())
        with self.assertRaises(InvalidRequest):
            accounts.complete_profile(
                self.db, account, "temp-123", "pw", "SN", "Mlomp", "Oussouye", "Mlomp"
            )


class TestRegistrationRolesSetting(AccountsTestCase):
    """REGISTRATION_ALLOWED_ROLES controls which roles callers may pick."""

    @patch("commune_api.services.accounts.get_settings")
    def test_viewer_only(self, mock_settings) -> None:
        mock_settings.return_value.registration_roles = frozenset({"VIEWER"})
        accounts.register(self.db, "first@example.com", "pw")
        with self.assertRaises(Forbidden):
            accounts.register(self.db, "second@example.com", "pw", role="EDITOR")
        account, _ = accounts.register(self.db, "third@example.com", "pw", role="VIEWER")
        self.assertEqual(account.role, "VIEWER")
