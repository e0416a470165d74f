"""HTTP transport for the KeyEnv REST API.

Wraps a single pooled ``httpx.Client`` that carries the bearer token and
client identification headers, and turns every failure into a
:class:`~keyenv.errors.KeyEnvError`.
"""

import json
import logging
from typing import Any, Optional

import httpx

from keyenv import __version__
from keyenv.audit.logger import AuditLogger
from keyenv.errors import KeyEnvError

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
USER_AGENT = f"keyenv-python/{__version__}"

_AUDIT_ACTIONS = {
    "GET": "get",
    "POST": "create",
    "PUT": "update",
    "DELETE": "delete",
}


def error_from_response(response: httpx.Response) -> KeyEnvError:
    """Build the error for a non-2xx response.

    The API reports failures as ``{"error": "...", "code": "..."}``. Bodies
    that are not JSON are used verbatim as the message.
    """
    status = response.status_code
    body = response.text
    code = None

    try:
        payload = json.loads(body)
    except ValueError:
        message = body if body else f"HTTP {status}"
    else:
        message = "Unknown error"
        if isinstance(payload, dict):
            if payload.get("error") is not None:
                message = str(payload["error"])
            if payload.get("code") is not None:
                code = str(payload["code"])

    return KeyEnvError(message, status=status, code=code)


class Transport:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float,
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.audit_logger = audit_logger
        self._client = httpx.Client(
            base_url=self.base_url + API_PREFIX,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
        )

    def get(self, path: str) -> str:
        return self.request("GET", path)

    def post(self, path: str, body: Any, audit_metadata: Optional[dict[str, Any]] = None) -> str:
        return self.request("POST", path, body, audit_metadata)

    def put(self, path: str, body: Any) -> str:
        return self.request("PUT", path, body)

    def delete(self, path: str) -> str:
        return self.request("DELETE", path)

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        audit_metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """Send one request and return the response body text.

        Args:
            method: HTTP verb
            path: Path below the ``/api/v1`` prefix, including any query
            body: JSON-serializable request body, if any
            audit_metadata: Extra context for the audit entry, never secret values

        Returns:
            Raw response body

        Raises:
            KeyEnvError: On any non-2xx status or network failure
        """
        content = None
        if body is not None:
            content = json.dumps(body)

        try:
            response = self._client.request(method, path, content=content)
        except httpx.TransportError as e:
            logger.debug("%s %s failed: %s", method, path, e)
            error = KeyEnvError(f"Network error: {e}")
            self._audit(method, path, 0, error, audit_metadata)
            raise error from e

        logger.debug("%s %s -> %d", method, path, response.status_code)

        if not response.is_success:
            error = error_from_response(response)
            self._audit(method, path, response.status_code, error, audit_metadata)
            raise error

        self._audit(method, path, response.status_code, metadata=audit_metadata)
        return response.text

    def _audit(
        self,
        method: str,
        path: str,
        status: int,
        error: Optional[KeyEnvError] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        if self.audit_logger is None:
            return
        self.audit_logger.log(
            _AUDIT_ACTIONS.get(method, method.lower()),
            path,
            status=status,
            success=error is None,
            error=error.message if error is not None else None,
            metadata=metadata,
        )

    def close(self) -> None:
        self._client.close()
