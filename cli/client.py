from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from cli.config import ClientConfig

_PROTECTED_PREFIX = "/api/thresholds"


@dataclass(frozen=True)
class RequestContext:
    """Per-call auth context handed to every request."""

    token: Optional[str] = None


ANONYMOUS = RequestContext()


class ApiError(Exception):
    """The service answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Request failed with status {status_code}: {message}")


class BackendUnavailable(Exception):
    """The service could not be reached or did not answer in time."""


class ApiClient:
    """Minimal HTTP client for the temperature monitor service."""

    def __init__(self, config: ClientConfig, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_readings(self, context: RequestContext = ANONYMOUS) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/readings", context)

    def get_readings_page(
        self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        return self._request("GET", "/api/readings/paginated", context, params={"page": page, "limit": limit})

    def latest_reading(self, context: RequestContext = ANONYMOUS) -> Optional[Dict[str, Any]]:
        return self._request("GET", "/api/readings/latest", context)

    def create_reading(
        self,
        context: RequestContext,
        temperature: float,
        threshold_value: Optional[float] = None,
    ) -> Dict[str, Any]:
        body = {"temperature": temperature, "threshold_value": threshold_value}
        return self._request("POST", "/api/readings", context, json=body)

    def get_thresholds(self, context: RequestContext = ANONYMOUS) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/thresholds", context)

    def get_thresholds_page(
        self, context: RequestContext = ANONYMOUS, page: int = 1, limit: int = 10
    ) -> Dict[str, Any]:
        return self._request("GET", "/api/thresholds/paginated", context, params={"page": page, "limit": limit})

    def latest_threshold(self, context: RequestContext = ANONYMOUS) -> Optional[Dict[str, Any]]:
        return self._request("GET", "/api/thresholds/latest", context)

    def create_threshold(
        self, context: RequestContext, value: float, note: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._request("POST", "/api/thresholds", context, json={"value": value, "note": note})

    def _request(self, method: str, path: str, context: RequestContext, **kwargs: Any) -> Any:
        headers = {"Content-Type": "application/json"}
        if context.token and path.startswith(_PROTECTED_PREFIX):
            headers["Authorization"] = f"Bearer {context.token}"
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TransportError as exc:
            raise BackendUnavailable(f"{method} {path} failed: {exc}") from exc
        if response.is_error:
            raise ApiError(response.status_code, self._error_detail(response))
        if response.status_code == 204:
            return None
        return response.json()

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text.strip() or "no detail provided."
        if isinstance(data, dict):
            detail = data.get("error") or data.get("detail")
            if detail:
                return str(detail)
        return response.text.strip() or "no detail provided."
