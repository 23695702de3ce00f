"""Marketo REST API client with token management and bounded concurrency."""

import asyncio
import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from core.auth.token_cache import TokenCache
from core.logging.context import get_log_context
from core.types import ErrorCategory
from marketo.schemas import MarketoError, MarketoResponse, TokenResponse

logger = logging.getLogger(__name__)

# Marketo error codes that mean the bearer token must be replaced
TOKEN_ERROR_CODES = frozenset({"601", "602"})

# (label, category, retryable) per Marketo error code
_MARKETO_CODE_MAP: dict[str, tuple[str, ErrorCategory, bool]] = {
    "601": ("Access token invalid", ErrorCategory.AUTH, True),
    "602": ("Access token expired", ErrorCategory.AUTH, True),
    "603": ("Access denied", ErrorCategory.PERMANENT, False),
    "604": ("Request timed out", ErrorCategory.TRANSIENT, True),
    "606": ("Rate limit exceeded", ErrorCategory.TRANSIENT, True),
    "607": ("Daily quota reached", ErrorCategory.PERMANENT, False),
    "608": ("API temporarily unavailable", ErrorCategory.TRANSIENT, True),
    "615": ("Concurrent access limit reached", ErrorCategory.TRANSIENT, True),
}


class MarketoApiError(Exception):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        category: ErrorCategory = ErrorCategory.TRANSIENT,
        is_retryable: bool = True,
        should_refresh_auth: bool = False,
        errors: list[MarketoError] | None = None,
        request_id: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.category = category
        self.is_retryable = is_retryable
        self.should_refresh_auth = should_refresh_auth
        self.errors = list(errors or [])
        self.request_id = request_id

    @property
    def error_codes(self) -> list[str]:
        return [error.code for error in self.errors]


# (label, category, retryable, should_refresh_auth) per status code
_STATUS_MAP: dict[int, tuple[str, ErrorCategory, bool, bool]] = {
    401: ("Unauthorized", ErrorCategory.AUTH, True, True),
    403: ("Forbidden", ErrorCategory.PERMANENT, False, False),
    404: ("Not found", ErrorCategory.PERMANENT, False, False),
    413: ("Request too large", ErrorCategory.PERMANENT, False, False),
    414: ("URI too long", ErrorCategory.PERMANENT, False, False),
    429: ("Rate limited", ErrorCategory.TRANSIENT, True, False),
    500: ("Server error", ErrorCategory.TRANSIENT, True, False),
    502: ("Server error", ErrorCategory.TRANSIENT, True, False),
    503: ("Server error", ErrorCategory.TRANSIENT, True, False),
    504: ("Server error", ErrorCategory.TRANSIENT, True, False),
}


def classify_api_error(status: int, url: str) -> MarketoApiError:
    """Classify HTTP status codes into error categories with appropriate retry/category flags."""
    entry = _STATUS_MAP.get(status)
    if entry:
        label, category, retryable, refresh = entry
        return MarketoApiError(
            f"{label} ({status}): {url}",
            status_code=status,
            category=category,
            is_retryable=retryable,
            should_refresh_auth=refresh,
        )

    # Fallback: remaining 4xx are permanent, everything else is transient
    if 400 <= status < 500:
        return MarketoApiError(
            f"Client error ({status}): {url}",
            status_code=status,
            category=ErrorCategory.PERMANENT,
            is_retryable=False,
        )

    return MarketoApiError(
        f"HTTP error ({status}): {url}",
        status_code=status,
        category=ErrorCategory.TRANSIENT,
        is_retryable=True,
    )


def classify_marketo_errors(
    errors: list[MarketoError], request_id: str | None = None
) -> MarketoApiError:
    """Build an error for a ``success: false`` envelope from its first error code.

    Codes outside the known table are record or request level problems and
    are permanent for this call.
    """
    first = errors[0] if errors else MarketoError(code="", message="Unknown error")
    label, category, retryable = _MARKETO_CODE_MAP.get(
        first.code, ("Marketo error", ErrorCategory.PERMANENT, False)
    )
    message = "; ".join(
        f"{error.code}: {error.message}" if error.code else error.message
        for error in errors
    ) or label
    return MarketoApiError(
        message,
        category=category,
        is_retryable=retryable,
        should_refresh_auth=first.code in TOKEN_ERROR_CODES,
        errors=errors,
        request_id=request_id,
    )


def ensure_success(body: dict[str, Any]) -> dict[str, Any]:
    """Return body unchanged when ``success`` is true, otherwise raise MarketoApiError."""
    try:
        response = MarketoResponse.model_validate(body)
    except ValidationError as e:
        raise MarketoApiError(
            f"Malformed Marketo response: {e.error_count()} validation error(s)",
            category=ErrorCategory.PERMANENT,
            is_retryable=False,
        ) from e
    if response.success:
        return body
    raise classify_marketo_errors(response.errors, response.request_id)


class MarketoApiClient:
    """Async client for the Marketo REST API with cached bearer tokens."""

    def __init__(
        self,
        endpoint: str,
        client_id: str,
        client_secret: str,
        timeout_seconds: int = 30,
        max_concurrent: int = 10,
        partner_id: str = "",
        token_cache: TokenCache | None = None,
    ):
        self.endpoint = endpoint.rstrip("/") if endpoint else ""

        if not self.endpoint:
            raise ValueError(
                "MarketoApiClient requires 'endpoint'. "
                "Set MARKETO_ENDPOINT environment variable or configure marketo.connection.endpoint in config."
            )

        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(
                f"MarketoApiClient endpoint must start with http:// or https://, got: {self.endpoint!r}. "
                "Set MARKETO_ENDPOINT environment variable or configure marketo.connection.endpoint in config."
            )

        if not client_id or not client_secret:
            raise ValueError("MarketoApiClient requires 'client_id' and 'client_secret'")

        self.rest_url = f"{self.endpoint}/rest"
        self.identity_url = f"{self.endpoint}/identity"
        self._client_id = client_id
        self._client_secret = client_secret
        self.partner_id = partner_id
        self.timeout_seconds = timeout_seconds
        self.max_concurrent = max_concurrent

        self._token_cache = token_cache or TokenCache()
        self._token_lock = asyncio.Lock()
        self._session: aiohttp.ClientSession | None = None
        self._semaphore: asyncio.Semaphore | None = None
        self._closed = False

        logger.info(
            "MarketoApiClient initialized",
            extra={
                "api_url": self.rest_url,
                "timeout_seconds": self.timeout_seconds,
                "max_concurrent": self.max_concurrent,
            },
        )

    @classmethod
    def from_config(cls, config, token_cache: TokenCache | None = None) -> "MarketoApiClient":
        """Build a client from a MarketoConfig."""
        return cls(
            endpoint=config.endpoint,
            client_id=config.client_id,
            client_secret=config.client_secret,
            timeout_seconds=config.timeout_seconds,
            max_concurrent=config.max_concurrent_requests,
            partner_id=config.partner_id,
            token_cache=token_cache,
        )

    async def __aenter__(self) -> "MarketoApiClient":
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _ensure_session(self) -> None:
        if self._closed:
            raise RuntimeError("MarketoApiClient is closed, cannot create new session")
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_concurrent,
                limit_per_host=self.max_concurrent,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
            self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def close(self) -> None:
        self._closed = True
        if self._session and not self._session.closed:
            await self._session.close()
            await asyncio.sleep(0)
            self._session = None

    @staticmethod
    def _get_context_ids() -> dict[str, str]:
        """Extract non-empty context IDs (scenario_id, request_id, etc.) for log enrichment."""
        return {k: v for k, v in get_log_context().items() if v}

    # =========================================================================
    # Authentication
    # =========================================================================

    async def _fetch_token(self) -> TokenResponse:
        """Run the client credentials grant against the identity service."""
        await self._ensure_session()
        url = f"{self.identity_url}/oauth/token"
        params = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        if self.partner_id:
            params["partner_id"] = self.partner_id

        try:
            async with self._session.request(
                "GET",
                url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            ) as response:
                if response.status != 200:
                    error = classify_api_error(response.status, url)
                    error.category = ErrorCategory.AUTH
                    error.should_refresh_auth = False
                    raise error
                data = await response.json()
        except (TimeoutError, aiohttp.ClientError) as e:
            raise MarketoApiError(
                f"Identity request failed: {e}",
                category=ErrorCategory.TRANSIENT,
                is_retryable=True,
            ) from e

        try:
            return TokenResponse.model_validate(data)
        except ValidationError as e:
            raise MarketoApiError(
                f"Identity service returned no access token: {data.get('error_description', data)}",
                category=ErrorCategory.AUTH,
                is_retryable=False,
            ) from e

    async def _access_token(self, force_refresh: bool = False) -> str:
        async with self._token_lock:
            if force_refresh:
                self._token_cache.clear(self.endpoint)
            token = self._token_cache.get(self.endpoint)
            if token:
                return token

            token_response = await self._fetch_token()
            self._token_cache.set(
                self.endpoint,
                token_response.access_token,
                expires_in=token_response.expires_in,
            )
            logger.debug(
                "Marketo access token acquired",
                extra={"ttl_seconds": token_response.expires_in},
            )
            return token_response.access_token

    # =========================================================================
    # Transport
    # =========================================================================

    async def _handle_error_response(
        self, response, url: str, endpoint: str, method: str, duration: float
    ) -> None:
        """Read error body, classify error, and raise."""
        try:
            response_body = await response.text()
            response_body_log = (
                response_body[:500] + "..." if len(response_body) > 500 else response_body
            )
        except Exception:
            response_body_log = "<unable to read response body>"

        error = classify_api_error(response.status, url)
        logger.warning(
            "API request failed",
            extra={
                **self._get_context_ids(),
                "api_endpoint": endpoint,
                "api_method": method,
                "api_url": url,
                "http_status": response.status,
                "error_category": error.category.value,
                "is_retryable": error.is_retryable,
                "response_body": response_body_log,
                "duration_ms": round(duration * 1000, 2),
            },
        )
        raise error

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        json_body: dict[str, Any] | None = None,
        _auth_retry: bool = False,
    ) -> dict[str, Any]:
        await self._ensure_session()

        url = f"{self.rest_url}/{endpoint.lstrip('/')}"

        ctx = self._get_context_ids()

        logger.debug(
            "API request starting",
            extra={
                **ctx,
                "api_endpoint": endpoint,
                "api_method": method,
                "api_url": url,
            },
        )

        token = await self._access_token(force_refresh=_auth_retry)
        request_headers = {"Authorization": f"Bearer {token}"}

        async with self._semaphore:
            start_time = asyncio.get_event_loop().time()
            try:
                if self._session is None:
                    raise RuntimeError(
                        "HTTP session not initialized - call _ensure_session() first"
                    )
                async with self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    headers=request_headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    duration = asyncio.get_event_loop().time() - start_time

                    if response.status == 401 and not _auth_retry:
                        logger.info(
                            "Access token rejected, refreshing",
                            extra={**ctx, "api_endpoint": endpoint, "http_status": 401},
                        )
                        refresh = True
                    else:
                        if response.status != 200:
                            await self._handle_error_response(
                                response, url, endpoint, method, duration
                            )
                        data = await response.json()
                        refresh = False

                    if not refresh:
                        log_level = logging.INFO if duration > 2.0 else logging.DEBUG
                        log_msg = "Slow API request" if duration > 2.0 else "API request succeeded"
                        logger.log(
                            log_level,
                            log_msg,
                            extra={
                                **ctx,
                                "api_endpoint": endpoint,
                                "api_method": method,
                                "http_status": response.status,
                                "duration_ms": round(duration * 1000, 2),
                            },
                        )

            except TimeoutError as e:
                duration = asyncio.get_event_loop().time() - start_time
                error = MarketoApiError(
                    f"Timeout after {self.timeout_seconds}s: {url}",
                    category=ErrorCategory.TRANSIENT,
                    is_retryable=True,
                )
                logger.warning(
                    "API request timeout",
                    extra={
                        **ctx,
                        "api_endpoint": endpoint,
                        "api_method": method,
                        "api_url": url,
                        "duration_ms": round(duration * 1000, 2),
                        "error_category": "transient",
                        "is_retryable": True,
                    },
                )
                raise error from e

            except aiohttp.ClientError as e:
                duration = asyncio.get_event_loop().time() - start_time
                error = MarketoApiError(
                    f"Connection error: {e}",
                    category=ErrorCategory.TRANSIENT,
                    is_retryable=True,
                )
                logger.error(
                    "API connection error",
                    exc_info=True,
                    extra={
                        **ctx,
                        "api_endpoint": endpoint,
                        "api_method": method,
                        "api_url": url,
                        "duration_ms": round(duration * 1000, 2),
                        "error_category": "transient",
                        "is_retryable": True,
                    },
                )
                raise error from e

        if refresh:
            return await self._request(method, endpoint, params, json_body, _auth_retry=True)

        # Marketo reports token problems inside a 200 envelope
        if (
            not _auth_retry
            and isinstance(data, dict)
            and not data.get("success", True)
            and any(
                str(error.get("code")) in TOKEN_ERROR_CODES
                for error in data.get("errors") or []
            )
        ):
            logger.info(
                "Access token expired, refreshing",
                extra={**ctx, "api_endpoint": endpoint},
            )
            return await self._request(method, endpoint, params, json_body, _auth_retry=True)

        return data

    async def get(
        self,
        endpoint: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return await self._request("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
    ) -> dict[str, Any]:
        return await self._request("POST", endpoint, params=params, json_body=json_body)

    async def delete(
        self,
        endpoint: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        return await self._request("DELETE", endpoint, params=params, json_body=json_body)


__all__ = [
    "MarketoApiClient",
    "MarketoApiError",
    "TOKEN_ERROR_CODES",
    "classify_api_error",
    "classify_marketo_errors",
    "ensure_success",
]
