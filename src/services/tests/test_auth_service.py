"""Unit tests for auth_service — the registration/OTP/login flow."""

import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from adapter.fake.sms_sender import FakeSmsSender
from adapter.fake.user_repository import FakeUserRepository
from config import Settings
from domain.model.errors import (
    ConflictError,
    DispatchError,
    DomainError,
    DuplicateKeyError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    OtpExpiredError,
    UnverifiedError,
    ValidationError,
)
from services import auth_service, credential_service
from services.token_service import TokenService

ALICE = dict(
    username='alice',
    phone='9876543210',
    email='alice@x.com',
    password='Passw0rd',
    confirm_password='Passw0rd',
)


class AuthServiceTestCase(unittest.TestCase):

    def setUp(self):
        patcher = patch.object(credential_service, 'BCRYPT_ROUNDS', 4)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.repo = FakeUserRepository()
        self.sender = FakeSmsSender()
        self.tokens = TokenService(Settings(jwt_secret_key='test-secret'))

    def _register(self, **overrides):
        return auth_service.register(self.repo, self.sender, **dict(ALICE, **overrides))

    def _register_verified(self):
        user = self._register()
        return auth_service.verify_otp(self.repo, self.tokens, user.phone, user.otp)


class TestRegister(AuthServiceTestCase):

    def test_creates_unverified_user_and_sends_otp(self):
        user = self._register()

        self.assertFalse(user.is_verified)
        self.assertTrue(user.has_pending_otp)
        self.assertNotEqual(user.password_hash, 'Passw0rd')
        self.assertEqual(self.sender.sent[0][0], '9876543210')
        self.assertEqual(
            self.sender.last_body,
            f"Your OTP for Solar Wealth Grow registration is {user.otp}. Valid for 5 minutes.",
        )

    def test_otp_expires_after_configured_ttl(self):
        before = datetime.now(timezone.utc)
        user = self._register()
        self.assertGreaterEqual(user.otp_expiry, before + timedelta(minutes=5))
        self.assertLessEqual(user.otp_expiry, datetime.now(timezone.utc) + timedelta(minutes=5))

    def test_login_before_verification_is_rejected(self):
        self._register()
        with self.assertRaises(UnverifiedError):
            auth_service.login(self.repo, self.tokens, 'alice', 'Passw0rd')

    def test_conflicts_name_the_field_and_create_nothing(self):
        self._register()
        cases = [
            (dict(username='alice', phone='1111111111', email='new@x.com'), 'username'),
            (dict(username='bob', phone='9876543210', email='new@x.com'), 'phone'),
            (dict(username='bob', phone='1111111111', email='alice@x.com'), 'email'),
        ]
        for overrides, field in cases:
            with self.subTest(field=field):
                with self.assertRaises(ConflictError) as ctx:
                    self._register(**overrides)
                self.assertEqual(ctx.exception.field, field)
        self.assertEqual(len(self.repo.store), 1)

    def test_store_level_duplicate_becomes_conflict(self):
        """A registration that loses the race at the write still reports a conflict."""
        with patch.object(credential_service, 'check_uniqueness', return_value=None), \
                patch.object(self.repo, 'create', side_effect=DuplicateKeyError('phone')):
            with self.assertRaises(ConflictError) as ctx:
                self._register()
        self.assertEqual(ctx.exception.message, "Phone number already registered")

    def test_dispatch_failure_rolls_back(self):
        self.sender.fail = True

        with self.assertRaises(DispatchError):
            self._register()

        self.assertEqual(self.repo.store, {})
        self.assertIsNone(self.repo.find_by_identifier(phone='9876543210'))

    def test_unexpected_sender_error_rolls_back(self):
        with patch.object(self.sender, 'send', side_effect=RuntimeError("socket closed")):
            with self.assertRaises(RuntimeError):
                self._register()

        self.assertEqual(self.repo.store, {})

    def test_store_failure(self):
        with patch.object(self.repo, 'create', return_value=None):
            with self.assertRaises(DomainError):
                self._register()
        self.assertEqual(self.sender.sent, [])

    def test_invalid_input(self):
        with self.assertRaises(ValidationError):
            self._register(confirm_password='Different1')
        self.assertEqual(self.repo.store, {})

    def test_sanitizes_and_normalizes(self):
        user = self._register(username=' alice ', email='ALICE@X.COM')
        self.assertEqual(user.username, 'alice')
        self.assertEqual(user.email, 'alice@x.com')


class TestResendOtp(AuthServiceTestCase):

    def test_new_otp_overwrites_old(self):
        with patch('services.otp_service.generate_code', side_effect=['111111', '654321']):
            user = self._register()
            resent = auth_service.resend_otp(self.repo, self.sender, '9876543210')

        self.assertEqual(user.otp, '111111')
        self.assertEqual(resent.otp, '654321')
        self.assertEqual(self.repo.get_by_id(user.id).otp, '654321')
        with self.assertRaises(InvalidCodeError):
            auth_service.verify_otp(self.repo, self.tokens, '9876543210', '111111')
        token, _ = auth_service.verify_otp(self.repo, self.tokens, '9876543210', '654321')
        self.assertTrue(token)

    def test_unknown_phone(self):
        with self.assertRaises(NotFoundError):
            auth_service.resend_otp(self.repo, self.sender, '1111111111')

    def test_dispatch_failure_keeps_user(self):
        user = self._register()
        self.sender.fail = True

        with self.assertRaises(DispatchError):
            auth_service.resend_otp(self.repo, self.sender, '9876543210')

        self.assertIsNotNone(self.repo.get_by_id(user.id))


class TestVerifyOtp(AuthServiceTestCase):

    def test_wrong_code(self):
        self._register()
        with patch('services.otp_service.generate_code', return_value='123456'):
            auth_service.resend_otp(self.repo, self.sender, '9876543210')
        with self.assertRaises(InvalidCodeError):
            auth_service.verify_otp(self.repo, self.tokens, '9876543210', '000000')

    def test_expired_code(self):
        user = self._register()
        later = user.otp_expiry + timedelta(seconds=1)
        with self.assertRaises(OtpExpiredError):
            auth_service.verify_otp(self.repo, self.tokens, '9876543210', user.otp, now=later)
        self.assertFalse(self.repo.get_by_id(user.id).is_verified)

    def test_success_verifies_and_returns_token(self):
        token, user = self._register_verified()

        self.assertTrue(user.is_verified)
        self.assertIsNone(user.otp)
        self.assertIsNone(user.otp_expiry)
        self.assertIsNotNone(user.last_login)
        self.assertEqual(self.tokens.verify(token), user.id)
        profile = user.public_profile()
        self.assertNotIn('password_hash', profile)
        self.assertNotIn('otp', profile)

    def test_second_verify_fails(self):
        user = self._register()
        auth_service.verify_otp(self.repo, self.tokens, user.phone, user.otp)
        with self.assertRaises(InvalidCodeError):
            auth_service.verify_otp(self.repo, self.tokens, user.phone, user.otp)

    def test_unknown_phone(self):
        with self.assertRaises(NotFoundError):
            auth_service.verify_otp(self.repo, self.tokens, '1111111111', '123456')


class TestLogin(AuthServiceTestCase):

    def test_login_by_username_or_phone(self):
        self._register_verified()
        for identifier in ('alice', '9876543210'):
            with self.subTest(identifier=identifier):
                token, user = auth_service.login(self.repo, self.tokens, identifier, 'Passw0rd')
                self.assertEqual(self.tokens.verify(token), user.id)
                self.assertIsNotNone(user.last_login)

    def test_wrong_password_and_unknown_user_look_the_same(self):
        self._register_verified()
        with self.assertRaises(InvalidCredentialsError) as wrong_password:
            auth_service.login(self.repo, self.tokens, 'alice', 'Wrong1pass')
        with self.assertRaises(InvalidCredentialsError) as unknown_user:
            auth_service.login(self.repo, self.tokens, 'nobody', 'Passw0rd')
        self.assertEqual(wrong_password.exception.message, unknown_user.exception.message)

    def test_unverified_user_with_wrong_password_gets_invalid_credentials(self):
        self._register()
        with self.assertRaises(InvalidCredentialsError):
            auth_service.login(self.repo, self.tokens, 'alice', 'Wrong1pass')


class TestSession(AuthServiceTestCase):

    def test_current_user(self):
        token, user = self._register_verified()
        self.assertEqual(auth_service.current_user(self.repo, self.tokens, token).id, user.id)

    def test_current_user_deleted(self):
        token, user = self._register_verified()
        self.repo.delete(user.id)
        with self.assertRaises(NotFoundError):
            auth_service.current_user(self.repo, self.tokens, token)

    def test_current_user_bad_token(self):
        with self.assertRaises(InvalidTokenError):
            auth_service.current_user(self.repo, self.tokens, 'garbage')

    def test_logout_never_raises(self):
        token, _ = self._register_verified()
        auth_service.logout(self.tokens, token)
        auth_service.logout(self.tokens, 'garbage')
        auth_service.logout(self.tokens, None)
        # Tokens are stateless: still valid after logout.
        self.assertTrue(self.tokens.verify(token))


class TestUpdateProfile(AuthServiceTestCase):

    def test_changes_fields(self):
        _, user = self._register_verified()
        updated = auth_service.update_profile(self.repo, user, username='alice2', email='A2@x.com')
        self.assertEqual(updated.username, 'alice2')
        self.assertEqual(updated.email, 'a2@x.com')

    def test_same_values_are_not_conflicts(self):
        _, user = self._register_verified()
        updated = auth_service.update_profile(self.repo, user, username='alice', phone='9876543210')
        self.assertEqual(updated.id, user.id)

    def test_taken_value(self):
        _, user = self._register_verified()
        self.repo.create(username='bob', phone='1111111111', email='bob@x.com', password_hash='h')
        with self.assertRaises(ConflictError) as ctx:
            auth_service.update_profile(self.repo, user, phone='1111111111')
        self.assertEqual(ctx.exception.field, 'phone')


if __name__ == '__main__':
    unittest.main()
