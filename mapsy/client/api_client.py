import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from mapsy.client.token_store import InMemoryTokenStore, TokenStore

logger = logging.getLogger("mapsy_client")

DEFAULT_TIMEOUT = 15


class ApiError(Exception):
    def __init__(self, message: str, status: int, data: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.data = data

    @property
    def is_auth_error(self) -> bool:
        return self.status == 401

    @property
    def is_validation_error(self) -> bool:
        return self.status == 400

    @property
    def field_errors(self) -> list:
        return (self.data or {}).get("errors") or []


class MapsyApiClient:
    """Async client for the Mapsy HTTP API; returns the decoded response envelope."""

    def __init__(self, base_url: str, token_store: TokenStore = None, timeout: float = DEFAULT_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.token_store = token_store or InMemoryTokenStore()
        self.timeout = timeout

    async def _request(self, method: str, endpoint: str, json: Any = None,
                       data: aiohttp.FormData = None, params: Dict[str, Any] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        headers = {}
        token = await self.token_store.get_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.request(
                    method, url,
                    json=json,
                    data=data,
                    params=params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    try:
                        body = await response.json(content_type=None)
                    except ValueError:
                        body = None
                    if response.status >= 400:
                        if not isinstance(body, dict):
                            body = None
                        message = (body or {}).get("message") or f"Error {response.status}"
                        raise ApiError(message, response.status, body)
                    return body or {"success": True, "message": "OK"}
        except asyncio.TimeoutError:
            raise ApiError("Tiempo de espera agotado al contactar el servidor", 408)
        except aiohttp.ClientError as e:
            logger.error(f"API request {method} {url} failed: {e}")
            raise ApiError(
                "No se pudo conectar con el servidor. Verifica tu conexión y que el backend esté activo.",
                503,
            )

    @staticmethod
    def _image_form(image: bytes, filename: str, content_type: str) -> aiohttp.FormData:
        form = aiohttp.FormData()
        form.add_field("image", image, filename=filename, content_type=content_type)
        return form

    # auth

    async def register(self, email: str, password: str, name: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/register",
                                   json={"email": email, "password": password, "name": name})

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/login", json={"email": email, "password": password})

    async def get_me(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/me")

    async def update_onboarding(self, completed: bool) -> Dict[str, Any]:
        return await self._request("PATCH", "/auth/onboarding", json={"onboardingCompleted": completed})

    async def logout(self) -> Dict[str, Any]:
        return await self._request("POST", "/auth/logout")

    async def health_check(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")

    # chat

    async def create_session(self, country: str, city: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/chat/sessions", json={"country": country, "city": city})

    async def list_sessions(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return await self._request("GET", "/api/chat/sessions", params={"page": page, "limit": limit})

    async def get_messages(self, session_id: str, page: int = 1, limit: int = 50) -> Dict[str, Any]:
        return await self._request("GET", f"/api/chat/sessions/{session_id}/messages",
                                   params={"page": page, "limit": limit})

    async def send_message(self, session_id: str, content: str) -> Dict[str, Any]:
        return await self._request("POST", f"/api/chat/sessions/{session_id}/messages",
                                   json={"content": content})

    async def upload_image(self, session_id: str, image: bytes, filename: str = "photo.jpg",
                           content_type: str = "image/jpeg") -> Dict[str, Any]:
        return await self._request("POST", f"/api/chat/sessions/{session_id}/images",
                                   data=self._image_form(image, filename, content_type))

    async def get_recommendations(self, session_id: str, current_landmark: Optional[str] = None) -> Dict[str, Any]:
        body = {"currentLandmark": current_landmark} if current_landmark else {}
        return await self._request("POST", f"/api/chat/sessions/{session_id}/recommendations", json=body)

    async def update_session(self, session_id: str, is_active: Optional[bool] = None,
                             title: Optional[str] = None) -> Dict[str, Any]:
        body = {}
        if is_active is not None:
            body["isActive"] = is_active
        if title is not None:
            body["title"] = title
        return await self._request("PATCH", f"/api/chat/sessions/{session_id}", json=body)

    # vision

    async def detect_landmark(self, image: bytes, filename: str = "photo.jpg",
                              content_type: str = "image/jpeg") -> Dict[str, Any]:
        return await self._request("POST", "/api/vision/detect-landmark",
                                   data=self._image_form(image, filename, content_type))
