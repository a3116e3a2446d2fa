from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "arena-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "AI Competition Platform")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/arena_dev")
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_submissions: str = os.getenv("S3_BUCKET_SUBMISSIONS", "arena-submissions-dev")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_ttl_min: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d

    # Submissions
    quota_timezone: str = os.getenv("QUOTA_TIMEZONE", "UTC")  # whose midnight resets daily quota
    submission_file_format: str = os.getenv("SUBMISSION_FILE_FORMAT", "csv")
    strict_prediction_csv: bool = os.getenv("STRICT_PREDICTION_CSV", "0") == "1"

    # Competition defaults
    default_daily_limit: int = int(os.getenv("DEFAULT_DAILY_LIMIT", "5"))
    default_total_limit: int = int(os.getenv("DEFAULT_TOTAL_LIMIT", "50"))
    default_max_file_size_mb: int = int(os.getenv("DEFAULT_MAX_FILE_SIZE_MB", "10"))

settings = Settings()
