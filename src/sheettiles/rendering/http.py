"""Client for an external page-rendering service."""

from __future__ import annotations

from typing import Optional

import requests

from sheettiles.core.errors import RenderError
from sheettiles.core.models import SourceImage
from sheettiles.logging import get_logger

from .vips import decode_image

LOGGER = get_logger(__name__)


class HttpRasterizer:
    """POST the document to ``endpoint`` and decode the returned image."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: int = 120,
        scale: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout = timeout
        self._scale = scale
        self._session = session or requests.Session()

    def render(self, document: bytes) -> SourceImage:
        if not document:
            raise RenderError("Empty document")
        params = {"scale": self._scale} if self._scale is not None else None
        try:
            response = self._session.post(
                self._endpoint,
                data=document,
                params=params,
                headers={"Content-Type": "application/pdf", "Accept": "image/png"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise RenderError(f"Render service request failed: {exc}") from exc
        if response.status_code != 200:
            raise RenderError(
                f"Render service returned {response.status_code}: {response.text[:200]}"
            )
        LOGGER.debug("render service responded", extra={"bytes": len(response.content)})
        return decode_image(response.content)
