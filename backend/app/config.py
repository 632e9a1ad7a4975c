import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_positive_int(name: str, raw: str | int) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


def _parse_allowed_origins(raw_allowed_origins: str) -> list[str]:
    # Support both CSV format and JSON array format
    if raw_allowed_origins.startswith("["):
        try:
            parsed_list = json.loads(raw_allowed_origins)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        allowed_origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        allowed_origins = [
            origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
        ]

    if not allowed_origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

    if "*" in allowed_origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )

    for origin in allowed_origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return allowed_origins


class Settings(BaseModel):
    app_name: str = Field(default="Job Gateway")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    allowed_origins: list[str] = Field(default_factory=list)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    secret_key: str | None = Field(default=None)
    algorithm: str = Field(default="HS256")

    xxl_job_admin_url: str = Field(default="")
    xxl_job_username: str = Field(default="")
    xxl_job_password: str = Field(default="")
    xxl_job_timeout_seconds: float = Field(default=10.0)
    # Non-admin listings fetch one page of this size and filter locally;
    # groups with more jobs than the cap are filtered on a truncated set.
    job_list_fetch_cap: int = Field(default=10000)
    job_group_fetch_size: int = Field(default=100)

    audit_retention_days: int = Field(default=180)

    @classmethod
    def from_env(cls) -> "Settings":
        secret_key = os.getenv("SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")
        allowed_origins = _parse_allowed_origins(raw_allowed_origins)

        database_url = os.getenv("DATABASE_URL", "").strip()
        if not database_url:
            raise ValueError("DATABASE_URL environment variable must be set")

        parsed_db = urlparse(database_url)
        if parsed_db.scheme != "postgresql+asyncpg":
            raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
        if not parsed_db.hostname:
            raise ValueError("DATABASE_URL must include hostname")

        db_pool_size = _parse_positive_int(
            "DB_POOL_SIZE", os.getenv("DB_POOL_SIZE", cls.model_fields["db_pool_size"].default)
        )

        db_max_overflow = int(
            os.getenv("DB_MAX_OVERFLOW", cls.model_fields["db_max_overflow"].default)
        )
        if db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must be greater than or equal to 0")

        db_pool_recycle = _parse_positive_int(
            "DB_POOL_RECYCLE",
            os.getenv("DB_POOL_RECYCLE", cls.model_fields["db_pool_recycle"].default),
        )

        db_pool_pre_ping = _parse_bool(
            "DB_POOL_PRE_PING",
            os.getenv("DB_POOL_PRE_PING", str(cls.model_fields["db_pool_pre_ping"].default)),
        )

        xxl_job_admin_url = os.getenv("XXL_JOB_ADMIN_URL", "").strip().rstrip("/")
        if not xxl_job_admin_url:
            raise ValueError("XXL_JOB_ADMIN_URL environment variable must be set")
        parsed_admin = urlparse(xxl_job_admin_url)
        if parsed_admin.scheme not in {"http", "https"} or not parsed_admin.netloc:
            raise ValueError("XXL_JOB_ADMIN_URL must be a valid http/https URL")

        xxl_job_username = os.getenv("XXL_JOB_USERNAME", "").strip()
        if not xxl_job_username:
            raise ValueError("XXL_JOB_USERNAME environment variable must be set")
        xxl_job_password = os.getenv("XXL_JOB_PASSWORD", "")
        if not xxl_job_password:
            raise ValueError("XXL_JOB_PASSWORD environment variable must be set")

        raw_timeout = os.getenv(
            "XXL_JOB_TIMEOUT_SECONDS", str(cls.model_fields["xxl_job_timeout_seconds"].default)
        )
        try:
            xxl_job_timeout_seconds = float(raw_timeout)
        except ValueError as exc:
            raise ValueError("XXL_JOB_TIMEOUT_SECONDS must be a number") from exc
        if xxl_job_timeout_seconds <= 0:
            raise ValueError("XXL_JOB_TIMEOUT_SECONDS must be greater than 0")

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=database_url,
            allowed_origins=allowed_origins,
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", cls.model_fields["algorithm"].default),
            db_pool_size=db_pool_size,
            db_max_overflow=db_max_overflow,
            db_pool_recycle=db_pool_recycle,
            db_pool_pre_ping=db_pool_pre_ping,
            xxl_job_admin_url=xxl_job_admin_url,
            xxl_job_username=xxl_job_username,
            xxl_job_password=xxl_job_password,
            xxl_job_timeout_seconds=xxl_job_timeout_seconds,
            job_list_fetch_cap=_parse_positive_int(
                "JOB_LIST_FETCH_CAP",
                os.getenv("JOB_LIST_FETCH_CAP", cls.model_fields["job_list_fetch_cap"].default),
            ),
            job_group_fetch_size=_parse_positive_int(
                "JOB_GROUP_FETCH_SIZE",
                os.getenv(
                    "JOB_GROUP_FETCH_SIZE", cls.model_fields["job_group_fetch_size"].default
                ),
            ),
            audit_retention_days=_parse_positive_int(
                "AUDIT_RETENTION_DAYS",
                os.getenv(
                    "AUDIT_RETENTION_DAYS", cls.model_fields["audit_retention_days"].default
                ),
            ),
        )


# Settings are built on first access so modules can be imported without
# a fully populated environment.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first accesses build a
    single instance.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
