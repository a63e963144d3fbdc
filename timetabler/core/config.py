from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./timetabler.db"
    SQL_ECHO: bool = False

    # lessons per INSERT statement
    LESSON_BATCH_SIZE: int = 100
    # natural keys per lookup query
    LOOKUP_CHUNK_SIZE: int = 500

    DEFAULT_BUILDING_NAME: str = "A"
    DEFAULT_WEEK_NAME: str = "A"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
