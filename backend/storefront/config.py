import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


def _env_bool(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    val = os.environ.get(name)
    try:
        return int(val) if val else default
    except ValueError:
        return default


@dataclass
class Settings:
    database_url: str = "sqlite:///./data/loja.db"

    jwt_secret: str = "dev-secret-change"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 12

    admin_email: str = "admin@lojastreet.com"
    admin_password: str = "admin123"
    admin_name: str = "Administrador"
    seed_products: bool = True

    upload_dir: Path = Path("uploads")
    max_image_mb: int = 5

    mp_access_token: Optional[str] = None
    mp_timeout: float = 15.0
    resend_api_key: Optional[str] = None
    email_from: Optional[str] = None
    email_admin: Optional[str] = None

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 3001

    def __post_init__(self):
        self.upload_dir = Path(self.upload_dir)
        self.admin_email = self.admin_email.strip().lower()

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Read settings from the process environment (and a .env file, if any).
        """
        load_dotenv()
        origins = os.environ.get("CORS_ORIGINS", "*")
        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            jwt_secret=os.environ.get("JWT_SECRET", cls.jwt_secret),
            jwt_expire_minutes=_env_int("JWT_EXPIRE_MINUTES", cls.jwt_expire_minutes),
            admin_email=os.environ.get("ADMIN_DEFAULT_EMAIL", cls.admin_email).lower(),
            admin_password=os.environ.get("ADMIN_DEFAULT_PASSWORD", cls.admin_password),
            admin_name=os.environ.get("ADMIN_DEFAULT_NAME", cls.admin_name),
            seed_products=_env_bool("SEED_PRODUCTS", True),
            upload_dir=Path(os.environ.get("UPLOAD_DIR", "uploads")),
            max_image_mb=_env_int("MAX_IMAGE_MB", cls.max_image_mb),
            mp_access_token=os.environ.get("MP_ACCESS_TOKEN") or None,
            resend_api_key=os.environ.get("RESEND_API_KEY") or None,
            email_from=os.environ.get("EMAIL_FROM") or None,
            email_admin=os.environ.get("EMAIL_ADMIN") or None,
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
            port=_env_int("PORT", cls.port),
        )

    @property
    def emails_enabled(self) -> bool:
        return bool(self.resend_api_key and self.email_from)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
