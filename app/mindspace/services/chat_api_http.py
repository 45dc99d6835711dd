"""
Purpose: Remote chat backend reached over HTTP.
Maps the ChatApi contract onto a small JSON API and translates transport
failures into the chat error taxonomy. Shapes are returned raw; the session
store and payload helpers validate them.

Routes:
- POST {base}/chat/sessions                    -> {"sessionId": ...}
- GET  {base}/chat/sessions                    -> [session summary, ...]
- GET  {base}/chat/sessions/{id}/history       -> [message, ...]
- POST {base}/chat/sessions/{id}/messages      -> reply payload

Testing: httpx.MockTransport; assert status/transport mapping.
"""

from __future__ import annotations
import json
from typing import Any, Optional

import httpx
from loguru import logger

from ..errors import FetchError, NotFoundError, ParseError


class HttpChatApi:
    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout_seconds: float = 30.0,
        connect_timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        session_id: Optional[str] = None,
        body: Optional[dict] = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, json=body)
        except httpx.TimeoutException as exc:
            raise FetchError(f"{method} {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code == 404 and session_id is not None:
            raise NotFoundError(session_id)
        if resp.is_error:
            raise FetchError(f"{method} {path} returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ParseError(f"{method} {path} returned invalid JSON") from exc

    async def create_session(self) -> str:
        data = await self._request("POST", "/chat/sessions")
        session_id = data.get("sessionId") if isinstance(data, dict) else None
        if not isinstance(session_id, str) or not session_id:
            raise ParseError(f"Create-session response without sessionId: {data!r}")
        logger.debug("Backend allocated session {}", session_id)
        return session_id

    async def list_sessions(self) -> Any:
        return await self._request("GET", "/chat/sessions")

    async def get_history(self, session_id: str) -> Any:
        return await self._request(
            "GET", f"/chat/sessions/{session_id}/history", session_id=session_id
        )

    async def send_message(self, session_id: str, text: str) -> Any:
        return await self._request(
            "POST",
            f"/chat/sessions/{session_id}/messages",
            session_id=session_id,
            body={"message": text},
        )
