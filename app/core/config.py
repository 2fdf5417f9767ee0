"""Application settings loaded from environment variables and .env."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Call Dashboard"
    API_V1_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Hosted auth/database service. Both are required when a client is built.
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""

    # Remote analytics API
    ANALYTICS_API_URL: str = "https://auraalithai--auraalith-dashboard-dashboard-api.modal.run"

    # Remote management API (user provisioning)
    MANAGEMENT_LIST_USERS_URL: str = "https://auraalithai--auraalith-dashboard-get-dashboard-users.modal.run"
    MANAGEMENT_CREATE_USER_URL: str = "https://auraalithai--auraalith-dashboard-create-dashboard-user.modal.run"
    MANAGEMENT_DELETE_USER_URL: str = "https://auraalithai--auraalith-dashboard-delete-dashboard-user.modal.run"
    MANAGEMENT_API_SECRET: str = ""

    # Where password reset links send the user back to
    FRONTEND_URL: str = "http://localhost:3000"

    POLL_INTERVAL_SECONDS: float = 30.0
    HTTP_TIMEOUT_SECONDS: float = 30.0
    DASHBOARD_TIMEZONE: str = "UTC"

    SESSION_COOKIE_NAME: str = "dashboard_session"
    SESSION_COOKIE_SECURE: bool = False
    # Browser sessions unused this long are closed by the sweeper
    SESSION_IDLE_TIMEOUT_SECONDS: float = 8 * 60 * 60
    SESSION_SWEEP_INTERVAL_SECONDS: float = 5 * 60


settings = Settings()
