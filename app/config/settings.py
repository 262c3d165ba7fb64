from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str
    supabase_key: str  # public anon key, used for the auth flows
    supabase_service_role_key: str  # bypasses RLS; profile rows, storage, admin auth calls
    storage_bucket: str = "user-uploads"

    # Token signing
    jwt_secret: str
    jwt_refresh_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    refresh_token_expire_days: int = 3

    # Email verification redirect handed to Supabase on sign-up
    email_verify_callback_url: str = "http://localhost:3000/api/auth/verify-email/callback"

    # App
    app_name: str = "auth-service"
    port: int = 3000
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "*"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",
        extra="ignore"
    )


settings = Settings()
