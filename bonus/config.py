"""Pydantic settings loaded from .env."""
from pydantic_settings import BaseSettings
from pydantic import Field, model_validator

from bonus.models.session import Credential


class MissingCredentials(ValueError):
    """BAHAMUT_UID / BAHAMUT_PWD are not configured."""


class Settings(BaseSettings):
    bahamut_uid: str = Field("", env="BAHAMUT_UID")
    bahamut_pwd: str = Field("", env="BAHAMUT_PWD")
    bahamut_totp: str = Field("", env="BAHAMUT_TOTP")
    telegram_bot_token: str = Field("", env="TELEGRAM_BOT_TOKEN")
    telegram_chat_id: str = Field("", env="TELEGRAM_CHAT_ID")
    database_url: str = Field("./bonus.db", env="DATABASE_URL")
    status_retention_days: int = Field(7, env="STATUS_RETENTION_DAYS")
    # Calendar day used for status keys and answer-article titles
    timezone: str = Field("Asia/Taipei", env="TIMEZONE")
    # Run behaviour
    use_smart_delay: bool = Field(True, env="USE_SMART_DELAY")
    need_sign_guild: bool = Field(True, env="NEED_SIGN_GUILD")
    need_answer: bool = Field(True, env="NEED_ANSWER")
    login_retries: int = Field(3, env="LOGIN_RETRIES")
    http_timeout_s: float = Field(30.0, env="HTTP_TIMEOUT_S")
    # Time-based trigger
    schedule_enabled: bool = Field(False, env="SCHEDULE_ENABLED")
    schedule_hour_utc: int = Field(0, env="SCHEDULE_HOUR_UTC")
    schedule_minute_utc: int = Field(5, env="SCHEDULE_MINUTE_UTC")

    @model_validator(mode="after")
    def strip_secrets(self) -> "Settings":
        self.bahamut_uid = self.bahamut_uid.strip()
        self.bahamut_totp = self.bahamut_totp.strip()
        self.telegram_bot_token = self.telegram_bot_token.strip()
        self.telegram_chat_id = self.telegram_chat_id.strip()
        return self

    @property
    def has_credentials(self) -> bool:
        return bool(self.bahamut_uid and self.bahamut_pwd)

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)

    @property
    def credential(self) -> Credential:
        if not self.has_credentials:
            raise MissingCredentials("BAHAMUT_UID and BAHAMUT_PWD must be set")
        return Credential(
            uid=self.bahamut_uid,
            password=self.bahamut_pwd,
            totp_seed=self.bahamut_totp or None,
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
