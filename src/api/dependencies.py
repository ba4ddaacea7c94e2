from functools import lru_cache

from fastapi import Depends, HTTPException

from adapter.mongodb.connection import get_mongodb_client
from adapter.mongodb.user_repository import MongoUserRepository
from adapter.sms.twilio_sms import TwilioSmsSender
from config import Settings
from port.sms_sender import SmsSender
from port.user_repository import UserRepository
from services.token_service import TokenService


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def _get_db(settings: Settings):
    """Get MongoDB database, raising 503 if unavailable."""
    client = get_mongodb_client(settings.mongo_url)
    if client is None:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return client[settings.mongodb_database]


def get_user_repo(settings: Settings = Depends(get_settings)) -> UserRepository:
    return MongoUserRepository(_get_db(settings))


@lru_cache
def _twilio_sender(settings: Settings) -> TwilioSmsSender:
    return TwilioSmsSender(settings)


def get_sms_sender(settings: Settings = Depends(get_settings)) -> SmsSender:
    return _twilio_sender(settings)


def get_token_service(settings: Settings = Depends(get_settings)) -> TokenService:
    return TokenService(settings)
