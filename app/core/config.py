from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "data-manager"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+pysqlite:///./data_manager.db"

    ADMIN_JWT_TTL_MINUTES: int = 240
    ADMIN_JWT_SECRET: str = "change_me_admin"

    # Roles that see every tenant's rows (logs, all data sets and translations).
    ROOT_ROLES: str = "ROOT,ADMIN"
    # Treat every caller as root; meant for local development only.
    AUTHORIZATION_DISABLED: bool = False

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # System-wide cultures; a data set may narrow them.
    AVAILABLE_CULTURES: str = "en-US,de-DE,pl-PL"

    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 1000

    # How often a running query checks whether its client has gone away.
    DISCONNECT_POLL_SECONDS: float = 0.2

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def root_roles_set(self) -> set[str]:
        return {r.strip().upper() for r in self.ROOT_ROLES.split(",") if r.strip()}

    @property
    def available_cultures_list(self) -> List[str]:
        return sorted(c.strip() for c in self.AVAILABLE_CULTURES.split(",") if c.strip())

settings = Settings()
