from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "retos-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Retos")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/retos_dev")
    db_echo: bool = os.getenv("DB_ECHO", "0") == "1"
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_media: str = os.getenv("S3_BUCKET_MEDIA", "challenge-media")
    s3_presign_expiry_seconds: int = int(os.getenv("S3_PRESIGN_EXPIRY_SECONDS", "600"))
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(500 * 1024 * 1024)))

    # Admin surface is disabled while this is empty
    admin_key: str = os.getenv("ADMIN_KEY", "")

    # Sessions
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "st")
    session_ttl_days: int = int(os.getenv("SESSION_TTL_DAYS", "30"))  # 0 = never expire

    # Game rules
    challenges_per_block: int = int(os.getenv("CHALLENGES_PER_BLOCK", "3"))
    challenge_recency_blocks: int = int(os.getenv("CHALLENGE_RECENCY_BLOCKS", "6"))
    completion_points: int = int(os.getenv("COMPLETION_POINTS", "1"))
    require_media_for_completion: bool = os.getenv("REQUIRE_MEDIA_FOR_COMPLETION", "1") == "1"
    max_rounds: int = int(os.getenv("MAX_ROUNDS", "10"))
    leaderboard_limit: int = int(os.getenv("LEADERBOARD_LIMIT", "50"))
    final_media_limit: int = int(os.getenv("FINAL_MEDIA_LIMIT", "200"))

settings = Settings()
