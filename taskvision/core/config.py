from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8080"

    # Database – SQLite für lokale Entwicklung, in Produktion Postgres (asyncpg)
    DATABASE_URL: str = "sqlite+aiosqlite:///./taskvision.db"

    # Redis (optional – Celery deaktiviert wenn USE_CELERY=false)
    REDIS_URL: str = "redis://localhost:6379/0"
    USE_CELERY: bool = False

    # Web Push (VAPID). Ohne Private Key wird jeder Versand als Fehler gemeldet.
    # Schlüsselpaar erzeugen: vapid --gen
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_SUBJECT: str = "mailto:admin@taskvision.local"

    # Fan-out: max. gleichzeitige Zustellungen pro Fenster
    PUSH_WINDOW_SIZE: int = 25
    # Einmaliger Retry bei 429/5xx nach fester Pause
    PUSH_RETRY_DELAY_SECONDS: float = 0.5
    PUSH_TRANSIENT_RETRIES: int = 1
    PUSH_TTL_SECONDS: int = 86400
    PUSH_TIMEOUT_SECONDS: float = 10.0

    PUSH_DEFAULT_TITLE: str = "Task Vision"
    PUSH_DEFAULT_BODY: str = "You have a new notification"
    PUSH_ICON: str = "/icons/android-launchericon-192-192.png"
    PUSH_BADGE: str = "/icons/android-launchericon-96-96.png"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
