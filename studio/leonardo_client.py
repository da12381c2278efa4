import json
import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import settings

from .errors import HttpError, MalformedResponseError, NetworkError, ValidationError

logger = logging.getLogger(__name__)


class LeonardoClient:
    """
    Thin async wrapper around the Leonardo REST API.
    Every call carries the bearer key + JSON headers; transport failures become
    NetworkError, anything else unusable becomes HttpError (MalformedResponseError
    for a 2xx body that is not JSON). Nothing is retried.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not api_key.strip():
            raise ValidationError("Leonardo API key is required.")
        self.api_key = api_key.strip()
        self.base_url = (base_url or settings.LEONARDO_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "accept": "application/json",
        }

    async def send(self, endpoint: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{endpoint}"
        content = json.dumps(body) if body is not None else None
        logger.debug("[LeonardoClient] %s %s body=%s", method, url, content)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.request(method, url, headers=self._headers(), content=content)
        except httpx.RequestError as e:
            logger.error("[LeonardoClient] %s %s did not complete: %r", method, url, e)
            raise NetworkError(e) from e

        if not r.is_success:
            logger.error("[LeonardoClient] ERROR: %s %s returned %s", method, url, r.status_code)
            logger.error("[LeonardoClient] Response: %s", r.text[:500])
            raise HttpError(r.status_code, r.text)

        try:
            return r.json()
        except ValueError as e:
            logger.error("[LeonardoClient] %s %s returned a non-JSON body: %s", method, url, r.text[:500])
            raise MalformedResponseError(r.status_code, r.text) from e

    async def generate_image(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """POST /generations -> {"sdGenerationJob": {"generationId": ...}}"""
        return await self.send("/generations", "POST", params)

    async def get_generation(self, generation_id: str) -> Dict[str, Any]:
        """GET /generations/{id} -> {"generations_by_pk": {...}}"""
        return await self.send(f"/generations/{generation_id}")

    async def get_init_image_upload_url(self, extension: str) -> Dict[str, Any]:
        """POST /init-image -> {"uploadInitImage": {"id", "fields", "key", "url"}}"""
        return await self.send("/init-image", "POST", {"extension": extension})
