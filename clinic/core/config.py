import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent.parent

env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


class Settings:
    """Runtime configuration read from the environment (and `.env`)."""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")
        self.sql_echo = _flag("SQL_ECHO")

        # JWT
        self.secret_key = os.getenv("SECRET_KEY", "change-me")
        self.algorithm = os.getenv("ALGORITHM", "HS256")
        self.access_token_expire_days = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7"))

        # when on, admin routes re-check role/is_active in the database
        self.admin_recheck_role = _flag("ADMIN_RECHECK_ROLE")

        self.bcrypt_rounds = int(os.getenv("BCRYPT_ROUNDS", "10"))
        self.min_password_length = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

        self.cors_origins = [
            o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
        ]
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        # seed
        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@clinic.local")
        self.admin_password = os.getenv("ADMIN_PASSWORD", "admin123")
        self.admin_name = os.getenv("ADMIN_NAME", "Clinic Admin")
        self.admin_phone = os.getenv("ADMIN_PHONE")


settings = Settings()
