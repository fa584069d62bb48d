import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

logger = logging.getLogger("token_store")


class TokenStore(Protocol):
    async def get_token(self) -> Optional[str]: ...
    async def store_token(self, token: str) -> None: ...
    async def get_user(self) -> Optional[Dict[str, Any]]: ...
    async def store_user(self, user: Dict[str, Any]) -> None: ...
    async def clear(self) -> None: ...


class InMemoryTokenStore:
    def __init__(self, token: Optional[str] = None, user: Optional[Dict[str, Any]] = None):
        self.token = token
        self.user = user
        self.token_reads = 0

    async def get_token(self) -> Optional[str]:
        self.token_reads += 1
        return self.token

    async def store_token(self, token: str) -> None:
        self.token = token

    async def get_user(self) -> Optional[Dict[str, Any]]:
        return self.user

    async def store_user(self, user: Dict[str, Any]) -> None:
        self.user = user

    async def clear(self) -> None:
        self.token = None
        self.user = None


class FileTokenStore:
    """Token and cached user in a JSON file readable only by the owner."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.getenv("MAPSY_TOKEN_FILE", Path.home() / ".mapsy" / "auth.json"))

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.error(f"Error reading auth data from {self.path}: {e}")
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.chmod(self.path, 0o600)

    async def get_token(self) -> Optional[str]:
        return self._read().get("token")

    async def store_token(self, token: str) -> None:
        self._write({**self._read(), "token": token})

    async def get_user(self) -> Optional[Dict[str, Any]]:
        return self._read().get("user")

    async def store_user(self, user: Dict[str, Any]) -> None:
        self._write({**self._read(), "user": user})

    async def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
