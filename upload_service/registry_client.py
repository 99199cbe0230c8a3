from typing import Any, Dict, List, Type
from urllib.parse import quote

import httpx

from upload_service.exceptions import RegistrationError, RegistryUnavailableError
from upload_service.logging_config import get_logger
from upload_service.schemas import FileRecordPayload

logger = get_logger(__name__)

class RegistryClient:
    def __init__(self, base_url: str, client: httpx.AsyncClient):
        self.base_url = base_url.rstrip("/")
        self._client = client

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[RegistryUnavailableError] = RegistryUnavailableError,
        **kwargs
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Registry error for {method} {url}. Status: {e.response.status_code}, Response: {e.response.text}")
            raise error_cls(f"API error: {e.response.status_code} {e.response.reason_phrase}") from e
        except httpx.RequestError as e:
            logger.error(f"Registry request {method} {url} failed: {str(e)}")
            raise error_cls(f"Registry unreachable: {str(e) or type(e).__name__}") from e

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Registry returned a non-JSON body for {method} {url}")
            raise error_cls("Registry returned an unreadable response") from e

    async def register(self, payload: FileRecordPayload) -> Dict[str, Any]:
        logger.info(f"Registering '{payload.stored_name}' for owner '{payload.owner_key}'")
        body = await self._request("POST", "/files", RegistrationError, json=payload.to_json())
        if not isinstance(body, dict) or not body.get("id"):
            raise RegistrationError("Registry response did not include a record id")
        logger.info(f"Registered '{payload.stored_name}' as {body['id']}")
        return body

    async def list_files(self, owner_key: str) -> List[Dict[str, Any]]:
        body = await self._request("GET", f"/owners/{quote(owner_key, safe='')}/files")
        return body.get("files", []) if isinstance(body, dict) else []
