from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ENV: str = "local"
    DB_HOST: str = "db"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "ptcoach"
    # Full URL wins over the DB_* parts (sqlite for tests / local runs)
    DB_URL: str | None = None

    # Auth
    SECRET_KEY: str = "dev-secret-change-me"       # set a strong one in prod
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Workout runner policy
    DEFAULT_REST_SECONDS: int = 60
    RPE_PROMPT_DELAY_MS: int = 500
    NOTES_DEBOUNCE_MS: int = 500
    HEARTBEAT_INTERVAL_SECONDS: int = 60
    WEIGHT_EPSILON_KG: float = 0.01
    PROGRESSION_WEEKS_BACK: int = 2
    FEEDBACK_CONFIRMATIONS: int = 2

    # Secondary writes
    BACKGROUND_MAX_ATTEMPTS: int = 3
    BACKGROUND_RETRY_DELAY_SECONDS: float = 0.2

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
