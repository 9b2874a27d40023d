"""Local persistence of user preferences with async I/O"""

from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import orjson
from loguru import logger

from .config import DEFAULT_PREFS_FILE, PREF_ENDPOINT_KEY, PREF_USERNAME_KEY
from .models import Preferences
from .resolver import validate_endpoint


class PreferenceStore:
    """
    Key-value store for the user name and endpoint URL.
    Uses aiofiles for async I/O and orjson for serialization.
    """

    def __init__(self, path: Path = DEFAULT_PREFS_FILE):
        self.path = Path(path)

    async def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            async with aiofiles.open(self.path, "rb") as f:
                raw = await f.read()
            data = orjson.loads(raw)
        except (OSError, orjson.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable preferences file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring preferences file {self.path}: not a JSON object")
            return {}
        return data

    async def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, "wb") as f:
            await f.write(orjson.dumps(data, option=orjson.OPT_INDENT_2))
        logger.debug(f"💾 Saved preferences: {self.path}")

    async def load(self) -> Preferences:
        data = await self._read()
        return Preferences(
            username=_string_or_none(data.get(PREF_USERNAME_KEY)),
            endpoint=_string_or_none(data.get(PREF_ENDPOINT_KEY)),
        )

    async def save_endpoint(self, url: str) -> str:
        """
        Validate and persist the endpoint URL.

        Raises:
            InvalidEndpointError: If the URL is not an absolute http(s) URL
        """
        url = validate_endpoint(url)
        data = await self._read()
        data[PREF_ENDPOINT_KEY] = url
        await self._write(data)
        logger.info(f"Chat API URL configured: {url}")
        return url

    async def save_username(self, username: Optional[str]) -> None:
        data = await self._read()
        data[PREF_USERNAME_KEY] = (username or "").strip()
        await self._write(data)


def _string_or_none(value: Any) -> Optional[str]:
    """Keep non-empty strings, drop anything a hand-edited file may hold"""
    if isinstance(value, str) and value.strip():
        return value
    if value is not None and not isinstance(value, str):
        logger.warning(f"Ignoring non-string preference value: {value!r}")
    return None
