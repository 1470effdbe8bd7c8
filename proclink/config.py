import os


def _bool_env(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-proclink")
    LOG_JSON = _bool_env("LOG_JSON", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    LINK_ID_PREFIX = os.environ.get("LINK_ID_PREFIX", "LINK")
    DEFAULT_ACTOR = os.environ.get("DEFAULT_ACTOR", "system")
    EXPORT_DEFAULT_FORMAT = os.environ.get("EXPORT_DEFAULT_FORMAT", "json")
    STRICT_STAGE_REQUIREMENTS = _bool_env("STRICT_STAGE_REQUIREMENTS", False)
    HISTORY_PAGE_LIMIT = _int_env("HISTORY_PAGE_LIMIT", 200)

    def __init__(self):
        env = os.environ.get("FLASK_ENV", "development").lower()
        if env == "production" and self.SECRET_KEY == "dev-secret-proclink":
            raise RuntimeError("SECRET_KEY is not safe for production.")
