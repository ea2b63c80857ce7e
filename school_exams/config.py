import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    secret_key: str
    jwt_algorithm: str
    access_token_expire_minutes: int
    log_level: str
    default_education_level: str
    create_tables_on_startup: bool


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./school_exams.db"),
        secret_key=os.getenv("SECRET_KEY", "change_this_secret_key"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        # Classes created before education levels existed have none set
        default_education_level=os.getenv("DEFAULT_EDUCATION_LEVEL", "lower_primary"),
        create_tables_on_startup=os.getenv("CREATE_TABLES_ON_STARTUP", "true").lower()
        in ("1", "true", "yes"),
    )
