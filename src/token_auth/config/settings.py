"""Runtime settings loaded from environment variables."""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]
SigningSecret = Annotated[str, Field(min_length=32)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    jwt_secret: SigningSecret = Field(validation_alias="JWT_SECRET")
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        validation_alias="JWT_ALGORITHM",
    )
    jwt_issuer: NonEmptyStr | None = Field(default=None, validation_alias="JWT_ISSUER")
    access_token_ttl_seconds: PositiveInt = Field(
        default=15 * 60,
        validation_alias="ACCESS_TOKEN_TTL_SECONDS",
    )
    refresh_token_ttl_seconds: PositiveInt = Field(
        default=7 * 24 * 60 * 60,
        validation_alias="REFRESH_TOKEN_TTL_SECONDS",
    )
    app_env: Literal["development", "production"] = Field(
        default="development",
        validation_alias="APP_ENV",
    )
    cookie_secure: bool | None = Field(default=None, validation_alias="COOKIE_SECURE")
    bootstrap_user_email: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_USER_EMAIL",
    )
    bootstrap_user_password: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_USER_PASSWORD",
    )
    bootstrap_user_password_file: NonEmptyStr | None = Field(
        default=None,
        validation_alias="BOOTSTRAP_USER_PASSWORD_FILE",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.access_token_ttl_seconds)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(seconds=self.refresh_token_ttl_seconds)

    @property
    def secure_cookies(self) -> bool:
        """Explicit COOKIE_SECURE wins; otherwise only production sets Secure."""

        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.app_env == "production"


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
