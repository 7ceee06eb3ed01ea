"""DaydreamClient - HTTP client for the Daydream streams API.

Three control operations are exposed to the SessionController:
- create_session: POST /streams
- patch_parameters: PATCH /streams/{id} with a parameter document
- clear_parameters: PATCH /streams/{id} with null params (passthrough mode)

Every failure is raised as ServiceError carrying the status code and body.
Nothing is retried here; the controller decides what a failure means.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from .config import StreamConfig
from .errors import ServiceError
from .params import Dimensions, GenerationParameters, Session, StyleUpdate

logger = logging.getLogger(__name__)


class DispatchClient(Protocol):
    """Remote operations the controller depends on."""

    async def create_session(self, pipeline_id: str, dimensions: Dimensions) -> Session: ...

    async def patch_parameters(
        self, session: Session, params: GenerationParameters | StyleUpdate
    ) -> None: ...

    async def clear_parameters(self, session: Session) -> None: ...

    async def close(self) -> None: ...


class DaydreamClient:
    """aiohttp client for the Daydream streaming API.

    The underlying ClientSession is created on first use and reused until
    close(). All requests carry the bearer credential from the config and are
    bounded by config.request_timeout.
    """

    def __init__(self, config: StreamConfig):
        self.config = config
        self._http: aiohttp.ClientSession | None = None
        self._stats = {
            "requests_sent": 0,
            "requests_failed": 0,
            "sessions_created": 0,
        }

    async def __aenter__(self) -> DaydreamClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            self._http = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )
        return self._http

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        body: dict | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (or None).

        Raises:
            ServiceError: On non-2xx status, transport error or timeout
        """
        url = f"{self.config.base_url}/{path.lstrip('/')}"
        self._stats["requests_sent"] += 1
        logger.debug(f"[DAYDREAM] {method} {path}")

        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body

        try:
            async with self._get_http().request(method, url, **kwargs) as resp:
                # Error pages are not always UTF-8; never fail on decoding.
                text = (await resp.read()).decode("utf-8", errors="replace")
                if not resp.ok:
                    self._stats["requests_failed"] += 1
                    logger.error(f"[DAYDREAM] {operation} failed: {resp.status} {text}")
                    raise ServiceError(resp.status, text, operation)
        except ServiceError:
            raise
        except asyncio.TimeoutError:
            self._stats["requests_failed"] += 1
            logger.error(
                f"[DAYDREAM] {operation} timed out after {self.config.request_timeout}s"
            )
            raise ServiceError(
                None, f"timeout after {self.config.request_timeout}s", operation
            ) from None
        except aiohttp.ClientError as e:
            self._stats["requests_failed"] += 1
            logger.error(f"[DAYDREAM] {operation} transport error: {e}")
            raise ServiceError(None, str(e) or type(e).__name__, operation) from e

        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"[DAYDREAM] Non-JSON body for {operation}: {text[:80]}")
            return text

    async def create_session(
        self,
        pipeline_id: str | None = None,
        dimensions: Dimensions | None = None,
    ) -> Session:
        """Create a new stream.

        Args:
            pipeline_id: Pipeline to run; defaults to config.pipeline_id
            dimensions: Output size; defaults to the configured width/height

        Returns:
            The new Session
        """
        pipeline_id = pipeline_id or self.config.pipeline_id
        dimensions = dimensions or Dimensions(
            width=self.config.width, height=self.config.height
        )
        logger.info(f"[DAYDREAM] Creating stream (pipeline {pipeline_id})")

        data = await self._request(
            "POST",
            "/streams",
            "create stream",
            body={
                "pipeline_id": pipeline_id,
                "width": dimensions.width,
                "height": dimensions.height,
            },
        )
        if not isinstance(data, dict) or "id" not in data:
            raise ServiceError(200, f"unexpected response: {data!r}", "create stream")

        session = Session.from_response(data)
        self._stats["sessions_created"] += 1
        logger.info(
            f"[DAYDREAM] Stream created: {session.id} (playback {session.output_playback_id})"
        )
        return session

    async def patch_parameters(
        self,
        session: Session,
        params: GenerationParameters | StyleUpdate,
    ) -> None:
        """Apply parameters to a running stream."""
        await self._request(
            "PATCH",
            f"/streams/{session.id}",
            "update stream",
            body={"params": params.to_payload()},
        )
        logger.info(f"[DAYDREAM] Parameters applied to stream {session.id}")

    async def clear_parameters(self, session: Session) -> None:
        """Drop all generation parameters so the stream shows the raw input."""
        await self._request(
            "PATCH",
            f"/streams/{session.id}",
            "clear stream",
            body={"params": None},
        )
        logger.info(f"[DAYDREAM] Stream {session.id} returned to passthrough")

    async def get_stream(self, stream_id: str) -> dict:
        """Fetch the remote view of a stream."""
        data = await self._request("GET", f"/streams/{stream_id}", "get stream")
        return data if isinstance(data, dict) else {"raw": data}

    async def close(self) -> None:
        if self._http is not None and not self._http.closed:
            await self._http.close()
        self._http = None

    def get_stats(self) -> dict:
        return dict(self._stats)
