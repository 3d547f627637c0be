from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "foodlink"
    use_mongo: bool = False

    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 60

    log_level: str = "INFO"

    report_page_size: int = 25
    max_page_size: int = 100
    reminder_lead_hours: int = 24
    default_start_time: str = "09:00"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
