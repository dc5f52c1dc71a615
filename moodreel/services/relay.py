"""Credential-injecting relay for the generation API.

Browser clients call ``/api/luma`` without holding the upstream key; the relay
rewrites the path onto the upstream generations collection, attaches the
bearer credential from configuration and passes status and body back
untouched. Client ``Authorization`` headers are dropped, never forwarded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from moodreel.config.settings import LumaConfig
from moodreel.telemetry import record_relay

logger = logging.getLogger(__name__)


class RelayError(RuntimeError):
    """Raised when the upstream could not be reached at all."""

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class RelayResponse:
    status_code: int
    content: bytes
    media_type: str


class LumaRelay:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        upstream: str,
        path: str = "/dream-machine/v1/generations",
        api_key: Optional[str] = None,
        timeout: float = 300.0,
    ) -> None:
        self._http = http_client
        self._target = upstream.rstrip("/") + "/" + path.strip("/")
        self._api_key = api_key
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: LumaConfig, http_client: httpx.AsyncClient) -> "LumaRelay":
        return cls(
            http_client,
            upstream=config.relay_upstream,
            path=config.relay_path,
            api_key=config.api_key.get_secret_value() if config.api_key else None,
            timeout=config.request_timeout,
        )

    @property
    def key_configured(self) -> bool:
        return bool(self._api_key)

    def target_url(self, job_id: Optional[str] = None) -> str:
        return f"{self._target}/{job_id}" if job_id else self._target

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        else:
            logger.error("LUMA_API_KEY is not set; forwarding without credentials")
        return headers

    async def forward(
        self,
        method: str,
        *,
        job_id: Optional[str] = None,
        body: Optional[bytes] = None,
    ) -> RelayResponse:
        """Send one request upstream and return its status and raw body."""

        url = self.target_url(job_id)
        logger.info("Relay %s -> %s", method, url)
        try:
            response = await self._http.request(
                method,
                url,
                content=body or None,
                headers=self._headers(),
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            logger.error("Relay upstream error %s %s: %s", method, url, exc)
            record_relay(method, 500)
            raise RelayError(
                f"Upstream request failed: {str(exc) or exc.__class__.__name__}",
                code=exc.__class__.__name__,
            ) from exc

        logger.info("Relay upstream responded status=%s", response.status_code)
        record_relay(method, response.status_code)
        return RelayResponse(
            status_code=response.status_code,
            content=response.content,
            media_type=response.headers.get("content-type", "application/json"),
        )


__all__ = ["LumaRelay", "RelayError", "RelayResponse"]
