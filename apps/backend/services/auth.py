"""
LinguaLens - Auth
=================
Sign-up, sign-in and session lookup against Supabase Auth, with public
profiles stored in the ``profiles`` table.
"""

import asyncio
from functools import lru_cache
from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from supabase import AuthError, Client, create_client
from supabase.lib.client_options import ClientOptions

from config import Settings, get_settings
from database.models import ProfileModel
from exceptions import AuthenticationError, ServiceNotConfiguredError, ValidationError
from logging_config import get_logger
from rate_limiter import LoginThrottle
from schemas import AuthSession, AuthUser
from validation import validate_email, validate_password, validate_username

logger = get_logger(__name__)

AUTH_ERROR_MESSAGES = {
    "Invalid login credentials": "Invalid email or password",
    "User already registered": "An account with this email already exists",
}


def map_auth_error(message: str) -> str:
    """Translate Supabase Auth messages into the wording shown to users."""
    for provider_message, user_message in AUTH_ERROR_MESSAGES.items():
        if provider_message.lower() in (message or "").lower():
            return user_message
    return message or "Authentication failed"


@lru_cache
def get_login_throttle() -> LoginThrottle:
    settings = get_settings()
    return LoginThrottle(
        max_attempts=settings.max_login_attempts,
        lockout_seconds=settings.login_lockout_seconds,
    )


def _default_client_factory(settings: Settings) -> Callable[[], Client]:
    def factory() -> Client:
        # supabase-py keeps session state on the client, so one client per call
        return create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=ClientOptions(persist_session=False, auto_refresh_token=False),
        )
    return factory


class AuthService:
    """
    Supabase Auth wrapper.

    supabase-py is synchronous, so every call runs in a worker thread.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        throttle: Optional[LoginThrottle] = None,
        client_factory: Optional[Callable[[], Client]] = None,
    ):
        self._session = session
        self.settings = settings or get_settings()
        self.throttle = throttle or get_login_throttle()
        self._client_factory = client_factory

    def _client(self) -> Client:
        if self._client_factory is None:
            if not self.settings.auth_enabled:
                raise ServiceNotConfiguredError("Authentication is not configured", service="supabase")
            self._client_factory = _default_client_factory(self.settings)
        return self._client_factory()

    async def _run(self, func: Callable[..., Any], *args) -> Any:
        return await asyncio.to_thread(func, *args)

    async def _profile(self, user_id: str) -> Optional[ProfileModel]:
        return await self._session.get(ProfileModel, user_id)

    async def _username_taken(self, username: str) -> bool:
        result = await self._session.execute(
            select(ProfileModel.id).where(ProfileModel.username == username)
        )
        return result.first() is not None

    @staticmethod
    def _to_session(response: Any, username: Optional[str]) -> AuthSession:
        user = response.user
        session = getattr(response, "session", None)
        return AuthSession(
            user=AuthUser(id=str(user.id), email=user.email, username=username),
            access_token=session.access_token if session else None,
            refresh_token=session.refresh_token if session else None,
            expires_at=getattr(session, "expires_at", None) if session else None,
        )

    # =========================================================================
    # Operations
    # =========================================================================

    async def sign_up(
        self,
        email: str,
        password: str,
        confirm_password: str,
        username: str,
    ) -> AuthSession:
        """
        Register a user and create their profile.

        Raises:
            ValidationError: Email, password or username rules
            AuthenticationError: Rejected by Supabase
        """
        email = (email or "").strip()
        username = (username or "").strip()

        if not validate_email(email):
            raise ValidationError("Please enter a valid email address", field="email")

        password_check = validate_password(password)
        if not password_check.is_valid:
            raise ValidationError(password_check.message, field="password")

        if password != confirm_password:
            raise ValidationError("Passwords do not match", field="confirm_password")

        if not username:
            raise ValidationError("Username is required", field="username")
        if len(username) < 3:
            raise ValidationError("Username must be at least 3 characters long", field="username")
        if not validate_username(username):
            raise ValidationError(
                "Username can only contain letters, numbers, hyphens and underscores",
                field="username",
            )
        if await self._username_taken(username):
            raise ValidationError("Username already taken", field="username", value=username)

        client = self._client()
        try:
            response = await self._run(client.auth.sign_up, {"email": email, "password": password})
        except AuthError as e:
            logger.warning("sign_up_rejected", email=email, error=e.message)
            raise AuthenticationError(map_auth_error(e.message), email=email, original_error=e) from e

        if response.user is None:
            raise AuthenticationError("Sign up failed", email=email)

        self._session.add(ProfileModel(id=str(response.user.id), username=username, email=email))
        await self._session.flush()

        logger.info("user_signed_up", user_id=str(response.user.id), username=username)
        return self._to_session(response, username)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Password sign-in.

        Raises:
            ValidationError: Malformed email or weak password
            AccountLockedError: Too many recent failures for this email
            AuthenticationError: Wrong credentials or other Supabase error
        """
        email = (email or "").strip()
        if not validate_email(email):
            raise ValidationError("Please enter a valid email address", field="email")
        password_check = validate_password(password)
        if not password_check.is_valid:
            raise ValidationError(password_check.message, field="password")

        self.throttle.check(email)

        client = self._client()
        try:
            response = await self._run(
                client.auth.sign_in_with_password,
                {"email": email, "password": password},
            )
        except AuthError as e:
            failures = self.throttle.record_failure(email)
            logger.warning("sign_in_failed", email=email, failures=failures)
            raise AuthenticationError(map_auth_error(e.message), email=email, original_error=e) from e

        self.throttle.record_success(email)
        profile = await self._profile(str(response.user.id))
        logger.info("user_signed_in", user_id=str(response.user.id))
        return self._to_session(response, profile.username if profile else None)

    async def get_user(self, access_token: str) -> AuthUser:
        """
        Resolve a bearer token to its user.

        Raises:
            AuthenticationError: Missing, expired or invalid token
        """
        if not access_token:
            raise AuthenticationError("Please sign in to continue")

        client = self._client()
        try:
            response = await self._run(client.auth.get_user, access_token)
        except AuthError as e:
            raise AuthenticationError(
                "Authentication error. Please try signing in again.",
                original_error=e,
            ) from e

        if response is None or response.user is None:
            raise AuthenticationError("Authentication error. Please try signing in again.")

        user = response.user
        profile = await self._profile(str(user.id))
        return AuthUser(id=str(user.id), email=user.email, username=profile.username if profile else None)

    async def sign_out(self, access_token: str) -> None:
        client = self._client()
        try:
            await self._run(client.auth.admin.sign_out, access_token)
        except AuthError as e:
            logger.info("sign_out_ignored", error=e.message)
