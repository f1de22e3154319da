"""
HTTP Client

Thin wrapper over ``requests`` used for every call to the spa REST backend.

Handles, uniformly for all endpoints:
- the client-side timeout
- 401 interception through the explicit ``SessionContext``
- bounded retries with linear backoff when the backend is cold-starting
  (HTML placeholder page) or unreachable
- conversion of error bodies ``{"message": ...}`` into ``ApiError``
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from spa_turnos.api.errors import (
    GENERIC_ERROR_MESSAGE,
    ApiError,
    ApiRejectedError,
    ApiTimeoutError,
    AuthenticationError,
    TransientApiError,
)
from spa_turnos.api.session import SessionContext
from spa_turnos.config import settings

logger = logging.getLogger(__name__)

# Token placement differs per backend endpoint
AUTH_QUERY = "query"
AUTH_BEARER = "bearer"

RetryCallback = Callable[[int, float, str], None]


def _log_retry(attempt: int, delay: float, message: str) -> None:
    logger.warning(f"{message} (intento {attempt}, reintento en {delay:g}s)")


def _is_html(response: requests.Response) -> bool:
    return "text/html" in response.headers.get("Content-Type", "").lower()


def _error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, str) and message:
            return message
    return None


class ApiClient:
    """
    Client for the spa REST backend bound to one session.

    Example:
        >>> client = ApiClient(SessionContext(token="abc"))
        >>> services = client.get(settings.services_url)
    """

    def __init__(
        self,
        session: SessionContext,
        http: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        html_retry_step: Optional[float] = None,
        network_retry_step: Optional[float] = None,
        on_retry: Optional[RetryCallback] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize ApiClient.

        Args:
            session: Session context whose token is attached to requests
            http: Underlying requests session (a new one by default)
            timeout: Per-request timeout in seconds
            max_retries: Retries for transient failures
            html_retry_step: Backoff step for cold-start HTML responses
            network_retry_step: Backoff step for connection failures
            on_retry: Callback receiving (attempt, delay, user-facing message)
            sleep: Sleep function used between retries
        """
        self.session = session
        self.http = http or requests.Session()
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.max_retries
        self.html_retry_step = (
            html_retry_step if html_retry_step is not None else settings.html_retry_step_seconds
        )
        self.network_retry_step = (
            network_retry_step
            if network_retry_step is not None
            else settings.network_retry_step_seconds
        )
        self.on_retry = on_retry or _log_retry
        self._sleep = sleep

    def _auth(
        self,
        auth: Optional[str],
        params: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> Optional[Dict[str, Any]]:
        if auth is None:
            return params
        token = self.session.require_token()
        if auth == AUTH_QUERY:
            return {**(params or {}), "token": token}
        if auth == AUTH_BEARER:
            headers["Authorization"] = f"Bearer {token}"
            return params
        raise ValueError(f"Unknown auth placement: {auth}")

    def _wait(self, attempt: int, step: float, message: str) -> None:
        delay = attempt * step
        self.on_retry(attempt, delay, message)
        if delay > 0:
            self._sleep(delay)

    def request(
        self,
        method: str,
        url: str,
        auth: Optional[str] = None,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method
            url: Absolute endpoint URL
            auth: ``"query"``, ``"bearer"`` or None for public endpoints
            json: Request body
            params: Query parameters

        Returns:
            Decoded JSON payload (None for empty bodies)

        Raises:
            AuthenticationError: Missing token or 401 response
            ApiTimeoutError: Request exceeded the timeout
            TransientApiError: Retries exhausted on network/cold-start failures
            ApiRejectedError: Non-2xx response
            ApiError: 2xx response with an unreadable body
        """
        headers = {"Accept": "application/json"}
        params = self._auth(auth, params, headers)
        attempt = 0

        while True:
            try:
                response = self.http.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=headers,
                    timeout=self.timeout,
                )
            except requests.exceptions.Timeout as e:
                logger.error(f"{method} {url} timed out after {self.timeout}s")
                raise ApiTimeoutError("La solicitud tomó demasiado tiempo") from e
            except requests.exceptions.ConnectionError as e:
                if attempt < self.max_retries:
                    attempt += 1
                    self._wait(
                        attempt,
                        self.network_retry_step,
                        "El servidor parece estar inaccesible. Reintentando",
                    )
                    continue
                logger.error(f"Cannot connect to backend at {url}: {e}")
                raise TransientApiError(
                    "No se pudo conectar con el servidor. Intentá nuevamente."
                ) from e

            if response.status_code == 401:
                self.session.handle_unauthorized()
                raise AuthenticationError()

            if _is_html(response):
                if attempt < self.max_retries:
                    attempt += 1
                    self._wait(
                        attempt,
                        self.html_retry_step,
                        "El servidor está iniciando. Reintentando",
                    )
                    continue
                logger.error(f"{method} {url} kept answering HTML instead of JSON")
                raise TransientApiError(
                    "El servidor respondió con HTML en lugar de JSON",
                    status_code=response.status_code,
                )

            payload = self._decode(response)

            if not response.ok:
                message = _error_message(payload) or GENERIC_ERROR_MESSAGE
                logger.error(f"{method} {url} failed with {response.status_code}: {message}")
                raise ApiRejectedError(message, status_code=response.status_code)

            logger.debug(f"{method} {url} -> {response.status_code}")
            return payload

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            if not response.ok:
                return None
            raise ApiError(
                "La respuesta del servidor no es un JSON válido",
                status_code=response.status_code,
            ) from e

    def get(self, url: str, auth: Optional[str] = None, params: Optional[Dict[str, Any]] = None) -> Any:
        return self.request("GET", url, auth=auth, params=params)

    def post(self, url: str, json: Any = None, auth: Optional[str] = None) -> Any:
        return self.request("POST", url, auth=auth, json=json)

    def put(self, url: str, json: Any = None, auth: Optional[str] = None) -> Any:
        return self.request("PUT", url, auth=auth, json=json)

    def delete(self, url: str, auth: Optional[str] = None) -> Any:
        return self.request("DELETE", url, auth=auth)
