"""
Authenticated REST transport for the Vlossom API.

The backend authenticates with an httpOnly session cookie and protects
state-changing calls with a double-submit CSRF token: the server sets the
`vlossom_csrf` cookie and expects the same value back in `X-CSRF-Token`.
An expired access token answers 401 with code TOKEN_EXPIRED; the transport
refreshes the session once and replays the request once.
"""

from typing import Any, Dict, Optional
from urllib.parse import unquote

import requests

from ..config.settings import CSRF_COOKIE_NAME, CSRF_HEADER_NAME, Settings
from ..utils.logger import get_logger, mask_token
from .exceptions import ApiError, AuthenticationError, NetworkError, NotFoundError

logger = get_logger(__name__)

STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
TOKEN_EXPIRED = "TOKEN_EXPIRED"
REFRESH_PATH = "/auth/refresh"


def extract_error(payload: Any, default: str) -> tuple[str, Optional[str]]:
    """
    Pull (message, code) out of an error body.

    The backend is not consistent: `{"error": "msg"}`,
    `{"error": {"message": "msg", "code": "X"}}` and `{"message": "msg"}`
    all occur.
    """
    if not isinstance(payload, dict):
        return default, None

    code = payload.get("code")
    error = payload.get("error")
    if isinstance(error, dict):
        code = error.get("code", code)
        message = error.get("message") or payload.get("message") or default
    elif isinstance(error, str) and error:
        message = error
    else:
        message = payload.get("message") or default

    return str(message), code


class ApiClient:
    """
    Thin wrapper around requests.Session for the versioned REST API.

    The session's cookie jar carries both the session cookie and the CSRF
    cookie, so logging in through this client is enough to authorise later
    calls.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize API client.

        Args:
            settings: Client settings (base URL, timeout)
            session: Optional pre-built session (tests pass a Mock)
        """
        self.settings = settings or Settings()
        self.session = session or requests.Session()
        self.timeout = self.settings.timeout_seconds

    # ------------------------------------------------------------------ #
    # CSRF / session helpers
    # ------------------------------------------------------------------ #
    def csrf_token(self) -> Optional[str]:
        """Read the CSRF token from the cookie jar (URL-decoded)."""
        value = self.session.cookies.get(CSRF_COOKIE_NAME)
        return unquote(value) if value else None

    def is_authenticated(self) -> bool:
        """The CSRF cookie is only issued alongside a session, so its presence is the signal."""
        return bool(self.csrf_token())

    def build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.settings.api_root}{path}"

    def _headers(self, method: str, has_json_body: bool) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if has_json_body:
            headers["Content-Type"] = "application/json"
        if method.upper() in STATE_CHANGING_METHODS:
            token = self.csrf_token()
            if token:
                headers[CSRF_HEADER_NAME] = token
        return headers

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #
    def _send(
        self,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        # Re-read headers on every send so a refreshed CSRF cookie is picked up
        headers = self._headers(method, has_json_body=json is not None and files is None)
        try:
            return self.session.request(
                method,
                url,
                headers=headers,
                json=json,
                params=params,
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(
                "Request failed before a response was received",
                operation="http_request",
                context={"method": method, "url": url},
                error=str(e),
            )
            raise NetworkError(f"Could not reach Vlossom API: {e}") from e

    @staticmethod
    def _is_token_expired(response: requests.Response) -> bool:
        if response.status_code != 401:
            return False
        try:
            payload = response.json()
        except ValueError:
            return False
        _, code = extract_error(payload, "")
        return code == TOKEN_EXPIRED

    def refresh(self) -> bool:
        """
        Exchange the refresh cookie for a new session.

        Returns:
            True when the backend accepted the refresh; never raises
        """
        try:
            response = self.session.request(
                "POST",
                self.build_url(REFRESH_PATH),
                headers=self._headers("POST", has_json_body=False),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Session refresh failed", operation="refresh_session", error=str(e))
            return False

        ok = 200 <= response.status_code < 300
        logger.info(
            "Session refresh completed" if ok else "Session refresh rejected",
            operation="refresh_session",
            context={"status": response.status_code, "csrf": mask_token(self.csrf_token())},
        )
        return ok

    def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        error_message: str = "Request failed",
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Args:
            method: HTTP method
            path: Path under /api/v1 (or an absolute URL)
            json: JSON body
            params: Query parameters (None values are dropped)
            files: Multipart files; disables the JSON content type
            error_message: Message used when the error body has none

        Returns:
            Parsed JSON, or None for empty responses

        Raises:
            NotFoundError, AuthenticationError, ApiError, NetworkError
        """
        method = method.upper()
        url = self.build_url(path)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        response = self._send(method, url, json=json, params=params, files=files)

        if self._is_token_expired(response):
            logger.info(
                "Access token expired; refreshing session",
                operation="http_request",
                context={"method": method, "path": path},
            )
            if self.refresh():
                response = self._send(method, url, json=json, params=params, files=files)

        return self._handle_response(response, error_message)

    @staticmethod
    def _handle_response(response: requests.Response, error_message: str) -> Any:
        status = response.status_code
        if 200 <= status < 300:
            if status == 204 or not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise ApiError("Invalid JSON in API response", status) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        default = error_message if payload is not None else (response.reason or error_message)
        message, code = extract_error(payload, default)

        logger.warning(
            "API request returned an error",
            operation="http_request",
            context={"status": status, "code": code, "url": response.url},
            error=message,
        )

        if status == 404:
            raise NotFoundError(message, status, code)
        if status in (401, 403):
            raise AuthenticationError(message, status, code)
        raise ApiError(message, status, code)

    # ------------------------------------------------------------------ #
    # Verb helpers
    # ------------------------------------------------------------------ #
    def get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> Any:
        return self.request("GET", path, params=params, **kwargs)

    def post(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("POST", path, json=json, **kwargs)

    def put(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("PUT", path, json=json, **kwargs)

    def patch(self, path: str, json: Any = None, **kwargs) -> Any:
        return self.request("PATCH", path, json=json, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        return self.request("DELETE", path, **kwargs)
