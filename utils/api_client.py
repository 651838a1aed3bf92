import logging
from typing import Any, Dict, List, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """An API call failed; carries the server's message when there is one."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details
        self.error = error


class BookApiClient:
    """Synchronous client for the /api/books endpoints."""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 http_client: Optional[httpx.Client] = None) -> None:
        if http_client is not None:
            self._client = http_client
            self._owns_client = False
        else:
            self._client = httpx.Client(
                base_url=base_url or settings.api_url,
                timeout=httpx.Timeout(timeout or settings.api_timeout, connect=5.0),
                headers={"Content-Type": "application/json"},
            )
            self._owns_client = True

    def list_books(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/books")

    def get_book(self, book_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/books/{book_id}")

    def create_book(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/books", json=data)

    def update_book(self, book_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("PUT", f"/api/books/{book_id}", json=data)

    def delete_book(self, book_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/books/{book_id}")

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/health")

    def _request(self, method: str, path: str, **kwargs) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ApiError("Connection timed out. The server might be starting up, please try again in a minute.") from e
        except httpx.RequestError as e:
            raise ApiError("Unable to connect to the server. Please check your connection and try again.") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise ApiError(
                body.get("message") or f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                details=body.get("details"),
                error=body.get("error"),
            )
        return response.json()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
