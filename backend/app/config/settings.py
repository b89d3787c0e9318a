"""Typed runtime settings read from the environment (after .env is loaded)."""
from __future__ import annotations
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    jwt_secret_key: str = 'dev-secret'
    database_url: str = 'sqlite:///dev.db'
    log_level: str = 'INFO'
    jwt_expires_minutes: int = 720

    @classmethod
    def from_env(cls) -> 'Settings':
        try:
            expires = int(os.getenv('JWT_EXPIRES_MINUTES', cls.jwt_expires_minutes))
        except ValueError:
            expires = cls.jwt_expires_minutes
        return cls(
            jwt_secret_key=os.getenv('JWT_SECRET_KEY', cls.jwt_secret_key),
            database_url=os.getenv('DATABASE_URL', cls.database_url),
            log_level=os.getenv('LOG_LEVEL', cls.log_level).upper(),
            jwt_expires_minutes=expires,
        )

    def as_flask_config(self) -> dict:
        from datetime import timedelta
        return {
            'JWT_SECRET_KEY': self.jwt_secret_key,
            'JWT_ACCESS_TOKEN_EXPIRES': timedelta(minutes=self.jwt_expires_minutes),
            'DATABASE_URL': self.database_url,
            'LOG_LEVEL': self.log_level,
        }
