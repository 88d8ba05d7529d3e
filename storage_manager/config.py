import os
from dotenv import load_dotenv

load_dotenv()  # load .env before anything reads the environment

# Read DATABASE_URL from environment for production; fall back to local sqlite for dev
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cloud.db")

# Comma-separated CORS origins. Defaults to localhost dev origins.
ALLOW_ORIGINS = [
    o.strip()
    for o in os.getenv("ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Token secrets and lifetimes (seconds). Each token class gets its own secret.
ALGORITHM = "HS256"
ACCESS_SECRET = os.getenv("ACCESS_SECRET", "dev-access-secret")
ACCESS_EXPIRES_IN = int(os.getenv("ACCESS_EXPIRES_IN", str(2 * 60 * 60)))
REFRESH_SECRET = os.getenv("REFRESH_SECRET", "dev-refresh-secret")
REFRESH_EXPIRES_IN = int(os.getenv("REFRESH_EXPIRES_IN", str(7 * 24 * 60 * 60)))
PRIVATE_ACCESS_SECRET = os.getenv("PRIVATE_ACCESS_SECRET", "dev-private-access-secret")
PRIVATE_ACCESS_EXPIRES_IN = int(os.getenv("PRIVATE_ACCESS_EXPIRES_IN", "3600"))

PASSWORD_HASH_ROUNDS = int(os.getenv("PASSWORD_HASH_ROUNDS", "29000"))

DEFAULT_STORAGE_LIMIT_GB = float(os.getenv("DEFAULT_STORAGE_LIMIT_GB", "1.0"))


def cloudinary_configured() -> bool:
    return bool(
        os.getenv("CLOUDINARY_URL")
        or (
            os.getenv("CLOUDINARY_API_KEY")
            and os.getenv("CLOUDINARY_API_SECRET")
            and os.getenv("CLOUDINARY_CLOUD_NAME")
        )
    )
