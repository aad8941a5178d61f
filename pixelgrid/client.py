"""
Pixel grid client - talks to the animation service over HTTP.

This module handles:
- Fetching the animation metadata
- Fetching raw frame data
- Uploading the full animation state
"""

import logging
from typing import List, Mapping, Optional, Sequence

import httpx

from pixelgrid.models import Metadata, ReplaceResult
from pixelgrid.transfer import (
    AnimationDraft,
    decode_frame_response,
    decode_metadata_response,
    encode_state,
)

logger = logging.getLogger(__name__)


class PixelGridClient:
    """Async client for the animation service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the service.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )

    async def ping(self) -> bool:
        async with self._client() as client:
            response = await client.get("/ping")
            return response.status_code == 200 and response.json() == "pong"

    async def fetch_metadata(self) -> List[Metadata]:
        """
        Fetch the metadata of every animation.

        Raises:
            httpx.HTTPStatusError: on a non-2xx response.
        """
        async with self._client() as client:
            logger.debug(f"GET request for metadata from {self.base_url}/metadata")
            response = await client.get("/metadata")
            response.raise_for_status()
            metadata = decode_metadata_response(response.json())

        logger.debug(f"Metadata received for {len(metadata)} animations")
        return metadata

    async def fetch_frame(self, frame_id: str, hardware_order: bool = False) -> bytes:
        """
        Fetch the raw data of one frame.

        Raises:
            httpx.HTTPStatusError: on a non-2xx response (404 if unknown).
            UnexpectedContentType: if the body is not an octet stream.
        """
        params = {"layout": "hardware"} if hardware_order else None
        async with self._client() as client:
            logger.debug(f"GET request for frame data {frame_id}")
            response = await client.get(f"/frameData/{frame_id}", params=params)
            response.raise_for_status()
            return decode_frame_response(
                response.headers.get("content-type"), response.content
            )

    async def send_state(
        self,
        animations: Sequence[AnimationDraft],
        frame_data: Mapping[str, bytes],
    ) -> ReplaceResult:
        """
        Upload the full animation state, replacing everything on the server.

        Raises:
            httpx.HTTPStatusError: if the server rejects or fails to store
                the upload.
        """
        payload = encode_state(animations, frame_data)
        async with self._client() as client:
            response = await client.post(
                "/data", data=payload.data, files=payload.files
            )
            if response.status_code >= 400:
                logger.error(
                    f"Failed to send state to server: {response.status_code} "
                    f"{response.text}"
                )
            response.raise_for_status()
            return ReplaceResult.model_validate(response.json())
