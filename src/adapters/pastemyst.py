"""PasteMyst adapter.

Implements the LanguageResolverPort and PasteSinkPort contracts against the
PasteMyst v2 REST API (https://paste.myst.rs).
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Optional, Sequence

from core.batch import AUTODETECT
from core.errors import PasteSubmissionError
from core.models import PasteUnit

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://paste.myst.rs"


class PasteMystClient:
    """Thin PasteMyst client for language lookups and paste creation."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        expires_in: str = "never",
        timeout: float = 10,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._expires_in = expires_in
        self._timeout = timeout
        # Language names rarely change, so lookups are cached for the process.
        self._languages: dict[tuple[str, str], str] = {}

    def _endpoint(self, path: str, query: Optional[dict[str, str]] = None) -> str:
        url = f"{self._base_url}/api/v2/{path}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"
        return url

    def paste_url(self, paste_id: str) -> str:
        return f"{self._base_url}/{paste_id}"

    def _request_json(self, url: str, payload: Optional[dict[str, Any]] = None) -> Any:
        data = None
        method = "GET"
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            method = "POST"
        request = urllib.request.Request(url, data=data, method=method)
        request.add_header("Accept", "application/json")
        if data is not None:
            request.add_header("Content-Type", "application/json")
        if self._token:
            request.add_header("Authorization", self._token)
        with urllib.request.urlopen(request, timeout=self._timeout) as response:
            return json.loads(response.read().decode("utf-8"))

    def _lookup(self, kind: str, value: Optional[str]) -> str:
        if value is None or not value.strip():
            return AUTODETECT
        value = value.strip()
        if kind == "languageExt":
            value = value.lstrip(".")
            if not value:
                return AUTODETECT
        key = (kind, value.lower())
        if key in self._languages:
            return self._languages[key]

        query_name = "extension" if kind == "languageExt" else "name"
        try:
            body = self._request_json(self._endpoint(f"data/{kind}", {query_name: value}))
            name = str(body.get("name") or AUTODETECT)
        except urllib.error.HTTPError as e:
            # 404 is the API's way of saying "unknown language".
            if e.code != 404:
                LOGGER.warning("Language lookup %s=%s failed with HTTP %s", query_name, value, e.code)
            name = AUTODETECT
        except (urllib.error.URLError, OSError, ValueError, AttributeError) as exc:
            LOGGER.warning("Language lookup %s=%s failed: %s", query_name, value, exc)
            # Transient failure: do not cache, try again next time.
            return AUTODETECT

        self._languages[key] = name
        return name

    def by_extension(self, extension: Optional[str]) -> str:
        """Return the language name for a file extension (with or without a dot)."""

        return self._lookup("languageExt", extension)

    def by_name(self, name: Optional[str]) -> str:
        """Return the canonical language name for a free-text language tag."""

        return self._lookup("language", name)

    def _create_paste_sync(self, title: str, units: Sequence[PasteUnit]) -> str:
        payload = {
            "title": title,
            "expiresIn": self._expires_in,
            "pasties": [
                {"title": unit.title, "language": unit.language, "code": unit.content}
                for unit in units
            ],
        }
        try:
            body = self._request_json(self._endpoint("paste"), payload)
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise PasteSubmissionError(f"PasteMyst error {e.code}: {detail}") from e
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise PasteSubmissionError(f"PasteMyst request failed: {e}") from e

        paste_id = body.get("_id") if isinstance(body, dict) else None
        if not paste_id:
            raise PasteSubmissionError("PasteMyst response did not include a paste id")
        return self.paste_url(str(paste_id))

    async def create_paste(self, author: str, title: str, units: Sequence[PasteUnit]) -> str:
        """Create a paste from the ordered units and return its URL."""

        if not units:
            raise PasteSubmissionError("Cannot submit an empty paste")
        LOGGER.info("Creating paste with %s pasties for %s", len(units), author)
        # urllib is blocking; keep it off the event loop.
        return await asyncio.to_thread(self._create_paste_sync, title, units)
