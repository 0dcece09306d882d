import os
from datetime import timedelta

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


class Config:
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///postmedia.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=_env_int("JWT_ACCESS_TOKEN_EXPIRES", 60 * 24 * 7)
    )
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(
        days=_env_int("JWT_REFRESH_TOKEN_EXPIRES", 30)
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "localhost:9000")
    MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "admin")
    MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "supersecret")
    MINIO_BUCKET = os.getenv("MINIO_BUCKET", "media")
    MINIO_SECURE = _env_bool("MINIO_SECURE", False)
    MINIO_CONNECT_TIMEOUT = _env_float("MINIO_CONNECT_TIMEOUT", 5)
    MINIO_READ_TIMEOUT = _env_float("MINIO_READ_TIMEOUT", 20)
    MINIO_HTTP_POOL_MAXSIZE = _env_int("MINIO_HTTP_POOL_MAXSIZE", 32)

    MEDIA_PUBLIC_BASE_URL = os.getenv(
        "MEDIA_PUBLIC_BASE_URL",
        "http://127.0.0.1:5000",
    )
    MEDIA_CACHE_MAX_AGE_SECONDS = _env_int(
        "MEDIA_CACHE_MAX_AGE_SECONDS", 7 * 24 * 60 * 60
    )
    MEDIA_CACHE_IMMUTABLE = _env_bool("MEDIA_CACHE_IMMUTABLE", True)
    MEDIA_STREAM_CHUNK_SIZE = _env_int("MEDIA_STREAM_CHUNK_SIZE", 256 * 1024)

    MEDIA_COMPRESS_IMAGES = _env_bool("MEDIA_COMPRESS_IMAGES", True)
    MAX_MEDIA_FILES = _env_int("MAX_MEDIA_FILES", 10)
    MAX_MEDIA_FILE_BYTES = _env_int("MAX_MEDIA_FILE_BYTES", 50 * 1024 * 1024)

    # Above either threshold, uploads go out in sequential batches.
    MEDIA_BATCH_FILE_THRESHOLD = _env_int("MEDIA_BATCH_FILE_THRESHOLD", 6)
    MEDIA_BATCH_BYTES_THRESHOLD = _env_int(
        "MEDIA_BATCH_BYTES_THRESHOLD", 20 * 1024 * 1024
    )
    MEDIA_BATCH_SIZE = _env_int("MEDIA_BATCH_SIZE", 3)
    MEDIA_BATCH_PAUSE_SECONDS = _env_float("MEDIA_BATCH_PAUSE_SECONDS", 0.5)
