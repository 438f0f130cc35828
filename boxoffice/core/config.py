from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Box Office API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "boxoffice_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Seat holds
    HOLD_MINUTES: int = 10
    MAX_SEATS_PER_BOOKING: int = 5
    HOLD_SWEEP_INTERVAL_SECONDS: int = 60
    RECONCILE_ON_STARTUP: bool = True

    # Screen turnaround added after the movie runtime when scheduling a show
    SHOW_CLEANUP_BUFFER_MINUTES: int = 15

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
