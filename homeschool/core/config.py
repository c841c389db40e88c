# homeschool/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    database_url: str
    jwt_secret_key: str
    redis_url: Optional[str] = None

    app_name: str = 'homeschool'
    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'
    allowed_origins: List[str] = ['*']

    # Tokens
    jwt_algorithm: str = 'HS256'
    access_token_expire_seconds: int = 3600
    refresh_token_expire_seconds: int = 2592000
    password_reset_expire_seconds: int = 3600
    email_verification_expire_seconds: int = 86400

    # Rate limiting (requests per window seconds)
    rate_limit_enabled: bool = True
    rate_limit_auth: int = 5
    rate_limit_auth_window: int = 900
    rate_limit_password_reset: int = 3
    rate_limit_password_reset_window: int = 3600
    rate_limit_standard: int = 1000
    rate_limit_standard_window: int = 3600
    rate_limit_upload: int = 50
    rate_limit_upload_window: int = 3600

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # Uploads
    upload_dir: str = 'uploads'
    upload_url_prefix: str = '/uploads'
    max_profile_image_bytes: int = 5 * 1024 * 1024
    max_receipt_bytes: int = 10 * 1024 * 1024
    max_attachment_bytes: int = 10 * 1024 * 1024

    # Mail
    email_backend: str = 'background'
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    mail_from: str = 'no-reply@homeschool.local'
    frontend_url: str = 'http://localhost:3000'

    # Background jobs
    celery_broker_url: str = 'redis://localhost:6379/1'
    celery_result_backend: str = 'redis://localhost:6379/2'

    # Cache
    cache_ttl: int = 300

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

settings = Settings()
