"""Unit tests for FakeUserRepository — verifies Port contract compliance."""

import unittest
from datetime import datetime, timedelta, timezone

from adapter.fake.user_repository import FakeUserRepository
from domain.model.errors import DuplicateKeyError
from domain.model.user import User


class TestFakeUserRepository(unittest.TestCase):
    """Tests that FakeUserRepository correctly implements UserRepository Protocol."""

    def setUp(self):
        self.repo = FakeUserRepository()
        self.user = self.repo.create(
            username='alice', phone='9876543210', email='alice@x.com', password_hash='hash',
        )

    # ── create ───────────────────────────────────────────────

    def test_create_returns_unverified_user(self):
        self.assertIsInstance(self.user, User)
        self.assertFalse(self.user.is_verified)
        self.assertIsNone(self.user.otp)
        self.assertIsNotNone(self.repo.get_by_id(self.user.id))

    def test_create_stores_otp_fields(self):
        expiry = datetime.now(timezone.utc) + timedelta(minutes=5)
        user = self.repo.create(
            username='bob', phone='1234567890', email='bob@x.com', password_hash='h',
            otp='123456', otp_expiry=expiry,
        )
        self.assertEqual(user.otp, '123456')
        self.assertEqual(user.otp_expiry, expiry)

    def test_create_duplicate_names_first_field_in_order(self):
        """username is reported before phone and email when all collide."""
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(username='alice', phone='9876543210', email='alice@x.com', password_hash='h')
        self.assertEqual(ctx.exception.field, 'username')

        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(username='other', phone='9876543210', email='alice@x.com', password_hash='h')
        self.assertEqual(ctx.exception.field, 'phone')

        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.create(username='other', phone='1111111111', email='alice@x.com', password_hash='h')
        self.assertEqual(ctx.exception.field, 'email')

        self.assertEqual(len(self.repo.store), 1)

    # ── update / delete ──────────────────────────────────────

    def test_update_applies_all_fields(self):
        updated = self.repo.update(self.user.id, {'is_verified': True, 'otp': None, 'otp_expiry': None})
        self.assertTrue(updated.is_verified)
        self.assertTrue(self.repo.get_by_id(self.user.id).is_verified)

    def test_update_returns_none_for_missing(self):
        self.assertIsNone(self.repo.update('missing', {'is_verified': True}))

    def test_update_rejects_taken_unique_field(self):
        other = self.repo.create(username='bob', phone='1234567890', email='bob@x.com', password_hash='h')
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.repo.update(other.id, {'phone': '9876543210'})
        self.assertEqual(ctx.exception.field, 'phone')

    def test_update_own_value_is_not_a_collision(self):
        updated = self.repo.update(self.user.id, {'username': 'alice'})
        self.assertEqual(updated.username, 'alice')

    def test_returned_users_are_copies(self):
        fetched = self.repo.get_by_id(self.user.id)
        fetched.is_verified = True
        self.assertFalse(self.repo.get_by_id(self.user.id).is_verified)

    def test_delete(self):
        self.assertTrue(self.repo.delete(self.user.id))
        self.assertIsNone(self.repo.get_by_id(self.user.id))
        self.assertFalse(self.repo.delete(self.user.id))

    # ── find_by_identifier ───────────────────────────────────

    def test_find_by_any_identifier(self):
        self.assertEqual(self.repo.find_by_identifier(username='alice').id, self.user.id)
        self.assertEqual(self.repo.find_by_identifier(phone='9876543210').id, self.user.id)
        self.assertEqual(self.repo.find_by_identifier(email='alice@x.com').id, self.user.id)
        self.assertEqual(
            self.repo.find_by_identifier(username='9876543210', phone='9876543210').id, self.user.id,
        )

    def test_find_by_identifier_no_match(self):
        self.assertIsNone(self.repo.find_by_identifier(username='nobody'))
        self.assertIsNone(self.repo.find_by_identifier())


if __name__ == '__main__':
    unittest.main()
