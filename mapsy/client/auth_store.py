"""
Client-side authentication state.

``AuthStore`` is an explicit state machine rather than ambient globals::

    UNINITIALIZED -> INITIALIZING -> AUTHENTICATED(user) | ANONYMOUS

``initialize()`` reads the stored token once and makes at most one
``/auth/me`` round-trip to verify it. Login, register and logout move between
AUTHENTICATED and ANONYMOUS afterwards. Failed actions leave a user-facing
message in ``error`` (shown as an inline banner) and re-raise.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

from mapsy.client.api_client import ApiError, MapsyApiClient
from mapsy.client.token_store import TokenStore

logger = logging.getLogger("auth_store")

LOGIN_FAILED = "No se pudo iniciar sesión. Intenta nuevamente."
REGISTER_FAILED = "No se pudo completar el registro. Intenta nuevamente."
INVALID_CREDENTIALS = "Email o contraseña inválidos."
ONBOARDING_FAILED = "No se pudo actualizar el estado de bienvenida."


class AuthStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class AuthState:
    status: AuthStatus = AuthStatus.UNINITIALIZED
    user: Optional[Dict[str, Any]] = None
    is_loading: bool = False
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == AuthStatus.AUTHENTICATED


def describe_error(error: Exception, default: str) -> str:
    if isinstance(error, ApiError):
        if error.is_validation_error and error.field_errors:
            return "\n".join(f"{e.get('field')}: {e.get('message')}" for e in error.field_errors)
        if error.is_auth_error:
            return INVALID_CREDENTIALS
        return error.message
    return default


class AuthStore:
    def __init__(self, api: MapsyApiClient, token_store: TokenStore):
        self.api = api
        self.token_store = token_store
        self.state = AuthState()

    def _set(self, **changes) -> AuthState:
        self.state = replace(self.state, **changes)
        return self.state

    def _authenticated(self, user: Dict[str, Any]) -> AuthState:
        return self._set(status=AuthStatus.AUTHENTICATED, user=user, is_loading=False, error=None)

    def _anonymous(self, error: Optional[str] = None) -> AuthState:
        return self._set(status=AuthStatus.ANONYMOUS, user=None, is_loading=False, error=error)

    async def initialize(self) -> AuthState:
        if self.state.status != AuthStatus.UNINITIALIZED:
            return self.state
        self._set(status=AuthStatus.INITIALIZING, is_loading=True)

        token = await self.token_store.get_token()
        if not token:
            return self._anonymous()

        try:
            response = await self.api.get_me()
        except ApiError as e:
            logger.warning(f"Stored token rejected during initialization: {e.message}")
            await self.token_store.clear()
            return self._anonymous()

        user = (response.get("data") or {}).get("user")
        if not response.get("success") or not user:
            await self.token_store.clear()
            return self._anonymous()

        await self.token_store.store_user(user)
        return self._authenticated(user)

    async def _sign_in(self, call, default_error: str) -> AuthState:
        self._set(is_loading=True, error=None)
        try:
            response = await call()
            data = response.get("data") or {}
            if not response.get("success") or not data.get("token"):
                raise ApiError(response.get("message") or default_error, 500, response)
        except Exception as e:
            self._anonymous(error=describe_error(e, default_error))
            raise

        await self.token_store.store_token(data["token"])
        await self.token_store.store_user(data["user"])
        return self._authenticated(data["user"])

    async def login(self, email: str, password: str) -> AuthState:
        return await self._sign_in(lambda: self.api.login(email, password), LOGIN_FAILED)

    async def register(self, email: str, password: str, name: str) -> AuthState:
        return await self._sign_in(lambda: self.api.register(email, password, name), REGISTER_FAILED)

    async def logout(self) -> AuthState:
        try:
            await self.api.logout()
        except ApiError as e:
            # local credentials are cleared even when the server is unreachable
            logger.warning(f"Logout request failed: {e.message}")
        await self.token_store.clear()
        return self._anonymous()

    async def update_onboarding(self, completed: bool) -> AuthState:
        try:
            response = await self.api.update_onboarding(completed)
        except ApiError as e:
            self._set(error=describe_error(e, ONBOARDING_FAILED))
            raise
        user = (response.get("data") or {}).get("user")
        if user:
            await self.token_store.store_user(user)
            self._set(user=user, error=None)
        return self.state

    def clear_error(self) -> AuthState:
        return self._set(error=None)
