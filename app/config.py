from pydantic import BaseModel
from dotenv import load_dotenv
import os

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./db/baby-control.db")
    jwt_secret: str = os.getenv("JWT_SECRET", "baby-control-jwt-secret")
    jwt_alg: str = os.getenv("JWT_ALG", "HS256")
    auth_life: int = int(os.getenv("AUTH_LIFE", "1800"))
    account_auth_life: int = int(os.getenv("ACCOUNT_AUTH_LIFE", "43200"))
    enc_hash: str = os.getenv("ENC_HASH", "baby-control-default-enc-hash")
    cors_origins: str = os.getenv("CORS_ORIGINS", "*")
    cookie_secure: bool = _flag("COOKIE_SECURE")
    env_file: str = os.getenv("ENV_FILE", "./.env")

    # ---------- Despliegue ----------
    deployment_mode: str = os.getenv("DEPLOYMENT_MODE", "selfhosted")
    enable_accounts: bool = _flag("ENABLE_ACCOUNTS")
    allow_account_registration: bool = _flag("ALLOW_ACCOUNT_REGISTRATION")
    beta: bool = os.getenv("BETA", "0") == "1"
    app_url: str = os.getenv("APP_URL", "http://localhost:3000")

    # ---------- Stripe ----------
    stripe_secret_key: str | None = os.getenv("STRIPE_SECRET_KEY") or None
    stripe_webhook_secret: str | None = os.getenv("STRIPE_WEBHOOK_SECRET") or None

    # ---------- Email ----------
    email_from: str = os.getenv("EMAIL_FROM", "no-reply@baby-control.local")

    @property
    def is_saas(self) -> bool:
        return self.deployment_mode == "saas"

settings = Settings()
