"""Login, forgot-password and update-password forms."""
import logging
from typing import Optional

from app.core.config import settings
from app.core.errors import AuthServiceError, ValidationFailedError
from app.services.session_client import SessionClient

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
RESET_EMAIL_SENT = "Check your email for the password reset link."
PASSWORD_UPDATED = "Password updated successfully!"


def password_reset_redirect_url(frontend_url: str = None) -> str:
    return f"{(frontend_url or settings.FRONTEND_URL).rstrip('/')}/update-password"


def validate_new_password(password: str, confirm_password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailedError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password != confirm_password:
        raise ValidationFailedError("Passwords do not match")


class AuthFlows:
    def __init__(self, session_client: SessionClient):
        self.session_client = session_client

    def login(self, email: str, password: str):
        session = self.session_client.sign_in(email, password)
        if session is None:
            raise AuthServiceError("Invalid login credentials")
        logger.info(f"Sign-in succeeded for user {session.user.id}")
        return session

    def forgot_password(self, email: str, frontend_url: str = None) -> str:
        self.session_client.send_password_reset(email, password_reset_redirect_url(frontend_url))
        return RESET_EMAIL_SENT

    def update_password(
        self,
        password: str,
        confirm_password: str,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
    ) -> str:
        """Set a new password inside the recovery session opened by the emailed link."""
        validate_new_password(password, confirm_password)
        if access_token and refresh_token:
            self.session_client.set_session(access_token, refresh_token)
        elif self.session_client.get_session() is None:
            raise AuthServiceError("Password reset link is invalid or has expired")
        self.session_client.update_password(password)
        return PASSWORD_UPDATED
