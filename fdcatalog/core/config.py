import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    PROJECT_NAME: str = "FD Product Catalog"
    MONGODB_URI: str = os.getenv("MONGODB_URI")
    MONGODB_DB_NAME: str = os.getenv("MONGODB_DB_NAME")
    FD_ISSUER_COLLECTION: str = os.getenv("FD_ISSUER_COLLECTION", "fd_issuers")
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY")
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("JWT_ACCESS_TOKEN_EXPIRE_MINUTES", "30"))
    ADMIN_ROLE: str = os.getenv("ADMIN_ROLE", "admin")
    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:3000")
    # Candidate keys tried (base key included) before issuer creation gives up
    ISSUER_KEY_MAX_ATTEMPTS: int = int(os.getenv("ISSUER_KEY_MAX_ATTEMPTS", "100"))
    ENFORCE_REVISION_CHECK: bool = _env_bool("ENFORCE_REVISION_CHECK", True)
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
