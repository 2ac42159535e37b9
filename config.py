import os
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and passed around."""

    environment: str = "development"

    database_url: Optional[str] = None
    database_name: Optional[str] = None

    jwt_secret: str = "dev-secret-change"
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = Field(60 * 24 * 7, gt=0)  # 7 days

    cookie_name: str = "access_token"
    cookie_samesite: Literal["lax", "strict", "none"] = "lax"
    cookie_secure: bool = False

    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )

    sap_api_url: Optional[str] = None
    sap_auth_type: Literal["none", "basic", "bearer"] = "none"
    sap_basic_user: str = ""
    sap_basic_pass: str = ""
    sap_bearer_token: str = ""
    sap_tls_verify: bool = True

    log_level: str = "INFO"
    port: int = 8000

    @field_validator("jwt_secret")
    @classmethod
    def _strong_enough(cls, v: str) -> str:
        if not v or len(v) < 8:
            raise ValueError("JWT_SECRET is missing or shorter than 8 characters")
        return v

    @property
    def token_max_age(self) -> int:
        return self.token_expire_minutes * 60

    @classmethod
    def from_env(cls) -> "Settings":
        environment = os.getenv("APP_ENV", "development")
        samesite = os.getenv("COOKIE_SAMESITE", "lax").strip().lower()
        # SameSite=None is only honoured by browsers on Secure cookies
        secure_default = samesite == "none" or environment.lower() == "production"
        origins = os.getenv("CORS_ORIGIN", "http://localhost:5173,http://localhost:3000")

        return cls(
            environment=environment,
            database_url=os.getenv("DATABASE_URL") or None,
            database_name=os.getenv("DATABASE_NAME") or None,
            jwt_secret=os.getenv("JWT_SECRET", "dev-secret-change"),
            token_expire_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", 60 * 24 * 7)),
            cookie_name=os.getenv("COOKIE_NAME", "access_token"),
            cookie_samesite=samesite,
            cookie_secure=_env_bool("COOKIE_SECURE", secure_default),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            sap_api_url=os.getenv("SAP_API_URL") or None,
            sap_auth_type=os.getenv("SAP_AUTH_TYPE", "none").strip().lower(),
            sap_basic_user=os.getenv("SAP_BASIC_USER", ""),
            sap_basic_pass=os.getenv("SAP_BASIC_PASS", ""),
            sap_bearer_token=os.getenv("SAP_BEARER_TOKEN", ""),
            sap_tls_verify=_env_bool("SAP_TLS_REJECT_UNAUTHORIZED", True),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", 8000)),
        )
