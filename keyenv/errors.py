from typing import Optional


class KeyEnvError(Exception):
    """Error raised for every failed KeyEnv operation.

    ``status`` is the HTTP status code of the failed response, or 0 when the
    failure happened before a response was received (network errors, bad
    configuration, unparseable payloads).
    """

    def __init__(self, message: str, status: int = 0, code: Optional[str] = None) -> None:
        self.message = message
        self.status = status
        self.code = code
        super().__init__(self._format())

    def _format(self) -> str:
        if self.status == 0:
            return f"keyenv: {self.message}"
        if self.code:
            return f"keyenv: {self.message} (status={self.status}, code={self.code})"
        return f"keyenv: {self.message} (status={self.status})"

    @property
    def is_unauthorized(self) -> bool:
        return self.status == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status == 403

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_conflict(self) -> bool:
        return self.status == 409

    @property
    def is_rate_limited(self) -> bool:
        return self.status == 429

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status < 600
