from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
import os


class Settings(BaseSettings):
    APP_NAME: str = "GymDesk"
    DEBUG: bool = False

    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/gymdesk.db")
    # Full SQLAlchemy URL; when unset the SQLite file at DATABASE_PATH is used
    DATABASE_URL_OVERRIDE: Optional[str] = os.getenv("DATABASE_URL")

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        # Relative paths resolve against the project root, not the working directory
        db_path = self.DATABASE_PATH
        if not os.path.isabs(db_path):
            project_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
            db_path = os.path.join(project_dir, db_path)
        return f"sqlite:///{os.path.abspath(db_path)}"

    SECRET_KEY: str = os.getenv("SECRET_KEY", "gymdesk-dev-secret-change-me")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12  # one front-desk shift

    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:8765", "http://127.0.0.1:8765"]

    # GYMDESK_LOG_DIR is set by the service wrapper in production
    LOG_DIR: str = os.getenv("GYMDESK_LOG_DIR", "logs")

    HOST: str = "127.0.0.1"
    PORT: int = 8765

    # Attendance / listing limits
    ATTENDANCE_OPEN_LIST_LIMIT: int = 50
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"  # Ignore extra environment variables
    )


settings = Settings()
