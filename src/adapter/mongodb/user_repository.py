"""MongoDB implementation of UserRepository."""

import uuid
from datetime import datetime, timezone
from logging import getLogger

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import PyMongoError

from adapter.mongodb import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateKeyError
from domain.model.user import User

logger = getLogger(__name__)

UNIQUE_FIELDS = ('username', 'phone', 'email')


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection.

        The unique indexes are what actually enforce uniqueness; the
        read-based check in the service layer only rejects early.
        """
        from adapter.mongodb.indexes import create_index_safe

        try:
            create_index_safe(self.collection, [('username', 1)], 'idx_users_username', unique=True)
            create_index_safe(self.collection, [('phone', 1)], 'idx_users_phone', unique=True)
            create_index_safe(self.collection, [('email', 1)], 'idx_users_email', unique=True)
            create_index_safe(self.collection, [('created_at', -1)], 'idx_users_created_at')
            return True
        except Exception as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            username=doc['username'],
            phone=doc['phone'],
            email=doc['email'],
            created_at=doc['created_at'],
            updated_at=doc['updated_at'],
            password_hash=doc.get('password_hash'),
            otp=doc.get('otp'),
            otp_expiry=_as_utc(doc.get('otp_expiry')),
            is_verified=doc.get('is_verified', False),
            last_login=doc.get('last_login'),
            total_amount=doc.get('total_amount', 0.0),
            deposited_amount=doc.get('deposited_amount', 0.0),
            withdrawn_amount=doc.get('withdrawn_amount', 0.0),
        )

    def _colliding_field(self, values: dict, exclude_id: str | None = None) -> str:
        """Name the first unique field in UNIQUE_FIELDS order that is already taken."""
        for field in UNIQUE_FIELDS:
            if values.get(field) is None:
                continue
            query = {field: values[field]}
            if exclude_id:
                query['_id'] = {'$ne': exclude_id}
            if self.collection.find_one(query, {'_id': 1}):
                return field
        # The conflicting record vanished between the failed write and the lookup.
        return next((f for f in UNIQUE_FIELDS if f in values), UNIQUE_FIELDS[0])

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        username: str,
        phone: str,
        email: str,
        password_hash: str,
        otp: str | None = None,
        otp_expiry: datetime | None = None,
    ) -> User | None:
        """Insert a new unverified user and return it."""
        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user_id,
            'username': username,
            'phone': phone,
            'email': email,
            'password_hash': password_hash,
            'otp': otp,
            'otp_expiry': otp_expiry,
            'is_verified': False,
            'last_login': None,
            'total_amount': 0.0,
            'deposited_amount': 0.0,
            'withdrawn_amount': 0.0,
            'created_at': now,
            'updated_at': now,
        }
        try:
            self.collection.insert_one(user_doc)
        except MongoDuplicateKeyError:
            field = self._colliding_field(user_doc)
            logger.warning("User creation failed: duplicate key", extra={"field": field})
            raise DuplicateKeyError(field)
        except PyMongoError as e:
            logger.error("Failed to create user", extra={"username": username, "error": str(e)})
            return None

        logger.info("User created", extra={"userId": user_id, "username": username})
        return self._to_domain(user_doc)

    def update(self, user_id: str, fields: dict) -> User | None:
        """Apply fields with a single $set and return the updated user."""
        changes = dict(fields, updated_at=datetime.now(timezone.utc))
        try:
            doc = self.collection.find_one_and_update(
                {'_id': user_id},
                {'$set': changes},
                return_document=ReturnDocument.AFTER,
            )
        except MongoDuplicateKeyError:
            field = self._colliding_field(fields, exclude_id=user_id)
            logger.warning("User update failed: duplicate key", extra={"userId": user_id, "field": field})
            raise DuplicateKeyError(field)
        except PyMongoError as e:
            logger.error("Failed to update user", extra={"userId": user_id, "error": str(e)})
            return None

        if not doc:
            return None
        logger.debug("Updated user", extra={"userId": user_id, "fields": sorted(fields)})
        return self._to_domain(doc)

    def delete(self, user_id: str) -> bool:
        try:
            result = self.collection.delete_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to delete user", extra={"userId": user_id, "error": str(e)})
            return False
        return result.deleted_count > 0

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        try:
            doc = self.collection.find_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to get user by ID", extra={"userId": user_id, "error": str(e)})
            raise
        return self._to_domain(doc) if doc else None

    def find_by_identifier(
        self,
        username: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Find the first user matching any of the given fields."""
        clauses = [
            {field: value}
            for field, value in (('username', username), ('phone', phone), ('email', email))
            if value is not None
        ]
        if not clauses:
            return None
        try:
            doc = self.collection.find_one({'$or': clauses})
        except PyMongoError as e:
            logger.error("Failed to find user", extra={"error": str(e)})
            raise
        return self._to_domain(doc) if doc else None


def _as_utc(value: datetime | None) -> datetime | None:
    # PyMongo returns naive datetimes unless the client is tz_aware.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
