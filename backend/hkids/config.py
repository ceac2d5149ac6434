from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///hkids.db"
    secret_key: str = "change-me-in-production"
    token_expire_days: int = 7
    frontend_url: str = "*"
    media_dir: str = "uploads"
    max_upload_bytes: int = 10 * 1024 * 1024
    log_level: str = "INFO"
    environment: str = "development"
    # First admin, created on startup when all three are set
    admin_username: str = "admin"
    admin_email: str = "admin@hkids.com"
    admin_password: str = ""

    class Config:
        env_prefix = "HKIDS_"


settings = Settings()
