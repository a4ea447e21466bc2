import os



def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_weekdays(value: str | None) -> tuple[int, ...]:
    # Weekdays are numbered 0=Sunday..6=Saturday, comma separated.
    if not value:
        return ()

    weekdays: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        day = int(part)
        if day < 0 or day > 6:
            raise RuntimeError(f"Invalid weekday {part!r}. Expected 0 (Sunday) through 6 (Saturday).")
        if day not in weekdays:
            weekdays.append(day)

    return tuple(sorted(weekdays))


def _get_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

CORS_ALLOWED_ORIGINS = _get_list(os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:4200"))

# Signing secret shared with the identity service that issues bearer tokens.
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "")

# Stored as max_appointments_per_week, applied as a per-day ceiling.
DEFAULT_DAILY_LIMIT = int(os.getenv("DEFAULT_DAILY_LIMIT", "20"))
DEFAULT_MAX_APPOINTMENTS_PER_SLOT = int(os.getenv("DEFAULT_MAX_APPOINTMENTS_PER_SLOT", "20"))

DEFAULT_HIDDEN_WEEKDAYS = _get_weekdays(os.getenv("DEFAULT_HIDDEN_WEEKDAYS", "0,6"))
DEFAULT_HALF_DAY_WEEKDAYS = _get_weekdays(os.getenv("DEFAULT_HALF_DAY_WEEKDAYS", ""))

SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if len(DEFAULT_HIDDEN_WEEKDAYS) >= 7:
        raise RuntimeError("DEFAULT_HIDDEN_WEEKDAYS cannot hide every day of the week.")
    if DEFAULT_DAILY_LIMIT <= 0:
        raise RuntimeError("DEFAULT_DAILY_LIMIT must be a positive integer.")
