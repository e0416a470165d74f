"""KeyEnv API client.

Example:
    >>> import os
    >>> from keyenv import KeyEnv
    >>> with KeyEnv(os.environ["KEYENV_TOKEN"], cache_ttl=300) as client:
    ...     secrets = client.export_secrets_as_map("my-project", "production")
    ...     client.set_secret("my-project", "production", "API_KEY", "sk_live_123")

Every operation has an ``*_async`` counterpart that runs the blocking call on
a worker thread and can be awaited from asyncio code.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, MutableMapping, Optional, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from keyenv.audit.logger import AuditLogger
from keyenv.cache import TTLCache, export_cache_key, scope_prefix
from keyenv.config import ConfigManager
from keyenv.errors import KeyEnvError
from keyenv.models import (
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
    BulkImportResult,
    ClientConfig,
    CurrentUserResponse,
    DefaultPermission,
    Environment,
    MyPermissionsResponse,
    Permission,
    PermissionInput,
    Project,
    SecretHistory,
    SecretInput,
    SecretWithInheritance,
    SecretWithValue,
    SecretWithValueAndInheritance,
)
from keyenv.transport import Transport
from keyenv.utils.envfile import parse_env, render_env

logger = logging.getLogger(__name__)

_current_user_adapter = TypeAdapter(CurrentUserResponse)


def _parse_failure(detail: Any) -> KeyEnvError:
    return KeyEnvError(f"Failed to parse response: {detail}")


def _unwrap(payload: Any, resource: Optional[str] = None) -> Any:
    """Strip the ``{"data": ...}`` or ``{"<resource>": ...}`` envelope, if any."""
    if isinstance(payload, dict):
        if "data" in payload:
            return payload["data"]
        if resource is not None and resource in payload:
            return payload[resource]
    return payload


def _extract_list(payload: Any, key: str) -> Any:
    if isinstance(payload, dict):
        if key in payload:
            return payload[key]
        data = payload.get("data")
        if isinstance(data, dict) and key in data:
            return data[key]
    raise _parse_failure(f"missing '{key}' in response")


def _invalid_request(detail: Any) -> KeyEnvError:
    return KeyEnvError(f"Invalid request: {detail}")


def _dump(items: Iterable[Any], model: type[BaseModel]) -> list[dict[str, Any]]:
    try:
        return [model.model_validate(item).model_dump(exclude_none=True) for item in items]
    except ValidationError as e:
        raise _invalid_request(e) from e


class KeyEnv:
    """Client for the KeyEnv secrets API.

    Args:
        token: Service token or user token (required)
        base_url: API base URL, a trailing slash is ignored
        timeout: Per-request timeout in seconds
        cache_ttl: Seconds to keep exported secrets in memory, 0 disables caching
        audit_logger: Optional audit trail receiving one entry per request
        clock: Monotonic time source in seconds for cache expiry, defaults to
            ``time.monotonic``

    Raises:
        KeyEnvError: If ``token`` is empty or ``cache_ttl`` is negative
    """

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        cache_ttl: float = 0.0,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if not token:
            raise KeyEnvError("Token is required")
        if cache_ttl < 0:
            raise KeyEnvError("Cache TTL cannot be negative")

        self._transport = Transport(base_url, token, timeout, audit_logger)
        self._cache = TTLCache(cache_ttl, clock=clock)

    @classmethod
    def from_config(cls, config: ClientConfig) -> "KeyEnv":
        audit_logger = None
        if config.audit.enabled:
            audit_logger = AuditLogger(config.audit.path, log_reads=config.audit.log_reads)

        return cls(
            config.token,
            base_url=config.base_url,
            timeout=config.timeout,
            cache_ttl=config.cache_ttl,
            audit_logger=audit_logger,
        )

    @classmethod
    def from_config_file(cls, path: Optional[Union[str, Path]] = None) -> "KeyEnv":
        """Build a client from a YAML config file.

        Without ``path``, looks for ``.keyenv/config.yaml`` in the working
        directory and its parents.
        """
        return cls.from_config(ConfigManager(config_path=path).load_config())

    @property
    def base_url(self) -> str:
        return self._transport.base_url

    @property
    def cache_ttl(self) -> float:
        return self._cache.ttl

    def close(self) -> None:
        self._transport.close()

    def __enter__(self) -> "KeyEnv":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # Decoding

    def _parse(self, body: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise _parse_failure(e) from e

    def _decode(self, adapter: Union[type[BaseModel], TypeAdapter], data: Any) -> Any:
        try:
            if isinstance(adapter, TypeAdapter):
                return adapter.validate_python(data)
            return adapter.model_validate(data)
        except ValidationError as e:
            raise _parse_failure(e) from e

    def _decode_list(self, model: type[BaseModel], body: str, key: str) -> list[Any]:
        items = _extract_list(self._parse(body), key)
        return self._decode(TypeAdapter(list[model]), items)

    # Paths

    @staticmethod
    def _environment_path(project_id: str, environment: str) -> str:
        return f"/projects/{project_id}/environments/{environment}"

    def _secrets_path(self, project_id: str, environment: str) -> str:
        return f"{self._environment_path(project_id, environment)}/secrets"

    def _secret_path(self, project_id: str, environment: str, key: str) -> str:
        return f"{self._secrets_path(project_id, environment)}/{key}"

    def _permissions_path(self, project_id: str, environment: str) -> str:
        return f"{self._environment_path(project_id, environment)}/permissions"

    # Cache

    def clear_cache(self, project_id: str, environment: str) -> None:
        """Drop cached exports for one project/environment pair."""
        self._cache.invalidate_prefix(scope_prefix(project_id, environment))

    def clear_all_cache(self) -> None:
        self._cache.invalidate_all()

    # Users

    def get_current_user(self) -> CurrentUserResponse:
        """Return the principal the token authenticates as, a user or a service token."""
        payload = _unwrap(self._parse(self._transport.get("/users/me")))
        return self._decode(_current_user_adapter, payload)

    def validate_token(self) -> CurrentUserResponse:
        return self.get_current_user()

    # Projects

    def list_projects(self) -> list[Project]:
        return self._decode_list(Project, self._transport.get("/projects"), "projects")

    def get_project(self, project_id: str) -> Project:
        payload = _unwrap(self._parse(self._transport.get(f"/projects/{project_id}")), "project")
        return self._decode(Project, payload)

    def create_project(self, team_id: str, name: str, description: Optional[str] = None) -> Project:
        body = {"team_id": team_id, "name": name}
        if description is not None:
            body["description"] = description
        payload = _unwrap(self._parse(self._transport.post("/projects", body)), "project")
        return self._decode(Project, payload)

    def delete_project(self, project_id: str) -> None:
        self._transport.delete(f"/projects/{project_id}")

    # Environments

    def list_environments(self, project_id: str) -> list[Environment]:
        body = self._transport.get(f"/projects/{project_id}/environments")
        return self._decode_list(Environment, body, "environments")

    def create_environment(
        self, project_id: str, name: str, inherits_from: Optional[str] = None
    ) -> Environment:
        body = {"name": name}
        if inherits_from is not None:
            body["inherits_from"] = inherits_from
        response = self._transport.post(f"/projects/{project_id}/environments", body)
        return self._decode(Environment, _unwrap(self._parse(response), "environment"))

    def delete_environment(self, project_id: str, environment: str) -> None:
        self._transport.delete(self._environment_path(project_id, environment))

    # Secrets

    def list_secrets(self, project_id: str, environment: str) -> list[SecretWithInheritance]:
        """List secret keys and metadata, without values."""
        body = self._transport.get(self._secrets_path(project_id, environment))
        return self._decode_list(SecretWithInheritance, body, "secrets")

    def export_secrets(
        self, project_id: str, environment: str
    ) -> list[SecretWithValueAndInheritance]:
        """Fetch every secret in an environment with its value, inherited ones included.

        This is the only cached read. Results are served from memory for
        ``cache_ttl`` seconds and dropped whenever a secret in the same
        environment is changed through this client.
        """
        cache_key = export_cache_key(project_id, environment)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return list(cached)

        body = self._transport.get(f"{self._secrets_path(project_id, environment)}/export")
        secrets = self._decode_list(SecretWithValueAndInheritance, body, "secrets")
        self._cache.put(cache_key, tuple(secrets))
        return secrets

    def export_secrets_as_map(self, project_id: str, environment: str) -> dict[str, str]:
        return {s.key: s.value for s in self.export_secrets(project_id, environment)}

    def get_secret(self, project_id: str, environment: str, key: str) -> SecretWithValue:
        body = self._transport.get(self._secret_path(project_id, environment, key))
        return self._decode(SecretWithValue, _unwrap(self._parse(body), "secret"))

    def set_secret(
        self,
        project_id: str,
        environment: str,
        key: str,
        value: str,
        description: Optional[str] = None,
    ) -> None:
        """Create or update a secret.

        Tries an update first and falls back to creating the secret only when
        the update reports 404. Any other error is raised as is. This is not
        atomic: concurrent callers creating the same key race at the server.
        """
        body = {"value": value}
        if description is not None:
            body["description"] = description

        try:
            self._transport.put(self._secret_path(project_id, environment, key), body)
        except KeyEnvError as e:
            if not e.is_not_found:
                raise
            logger.info("Secret %s not found in %s/%s, creating it", key, project_id, environment)
            self._transport.post(
                self._secrets_path(project_id, environment),
                {"key": key, **body},
                audit_metadata={"upsert_fallback": True},
            )

        self.clear_cache(project_id, environment)

    def delete_secret(self, project_id: str, environment: str, key: str) -> None:
        self._transport.delete(self._secret_path(project_id, environment, key))
        self.clear_cache(project_id, environment)

    def bulk_import(
        self,
        project_id: str,
        environment: str,
        secrets: Iterable[Union[SecretInput, dict[str, Any]]],
        overwrite: bool = False,
    ) -> BulkImportResult:
        """Import many secrets in one request.

        Existing keys are skipped unless ``overwrite`` is set, in which case
        they are updated.
        """
        body = {"secrets": _dump(secrets, SecretInput), "overwrite": overwrite}
        response = self._transport.post(
            f"{self._secrets_path(project_id, environment)}/bulk",
            body,
            audit_metadata={"count": len(body["secrets"]), "overwrite": overwrite},
        )
        self.clear_cache(project_id, environment)
        return self._decode(BulkImportResult, _unwrap(self._parse(response)))

    def import_env_file(
        self,
        project_id: str,
        environment: str,
        file_path: Union[str, Path],
        overwrite: bool = False,
    ) -> BulkImportResult:
        """Bulk import the ``KEY=value`` pairs of a ``.env`` file."""
        with open(file_path, "r", encoding="utf-8") as f:
            secrets = parse_env(f.read())

        if not secrets:
            return BulkImportResult()

        return self.bulk_import(project_id, environment, secrets, overwrite=overwrite)

    def load_env(
        self,
        project_id: str,
        environment: str,
        target: Optional[MutableMapping[str, str]] = None,
    ) -> dict[str, str]:
        """Resolve an environment's secrets into a ``{key: value}`` mapping.

        Nothing global is modified unless a ``target`` is passed, e.g.
        ``client.load_env(p, "production", os.environ)``.
        """
        values = self.export_secrets_as_map(project_id, environment)
        if target is not None:
            target.update(values)
        return values

    def generate_env_file(self, project_id: str, environment: str) -> str:
        return render_env(self.export_secrets(project_id, environment))

    def get_secret_history(
        self, project_id: str, environment: str, key: str
    ) -> list[SecretHistory]:
        body = self._transport.get(f"{self._secret_path(project_id, environment, key)}/history")
        return self._decode_list(SecretHistory, body, "history")

    # Permissions

    def list_permissions(self, project_id: str, environment: str) -> list[Permission]:
        body = self._transport.get(self._permissions_path(project_id, environment))
        return self._decode_list(Permission, body, "permissions")

    def set_permission(self, project_id: str, environment: str, user_id: str, role: str) -> None:
        """Set a user's role (none, read, write or admin) on an environment."""
        try:
            body = PermissionInput(user_id=user_id, role=role).model_dump(include={"role"})
        except ValidationError as e:
            raise _invalid_request(e) from e
        self._transport.put(f"{self._permissions_path(project_id, environment)}/{user_id}", body)

    def delete_permission(self, project_id: str, environment: str, user_id: str) -> None:
        self._transport.delete(f"{self._permissions_path(project_id, environment)}/{user_id}")

    def bulk_set_permissions(
        self,
        project_id: str,
        environment: str,
        permissions: Iterable[Union[PermissionInput, dict[str, Any]]],
    ) -> None:
        body = {"permissions": _dump(permissions, PermissionInput)}
        self._transport.put(self._permissions_path(project_id, environment), body)

    def get_my_permissions(self, project_id: str) -> MyPermissionsResponse:
        body = self._transport.get(f"/projects/{project_id}/my-permissions")
        return self._decode(MyPermissionsResponse, _unwrap(self._parse(body)))

    def get_project_defaults(self, project_id: str) -> list[DefaultPermission]:
        body = self._transport.get(f"/projects/{project_id}/permissions/defaults")
        return self._decode_list(DefaultPermission, body, "defaults")

    def set_project_defaults(
        self,
        project_id: str,
        defaults: Iterable[Union[DefaultPermission, dict[str, Any]]],
    ) -> None:
        body = {"defaults": _dump(defaults, DefaultPermission)}
        self._transport.put(f"/projects/{project_id}/permissions/defaults", body)

    # Async wrappers

    async def get_current_user_async(self) -> CurrentUserResponse:
        return await asyncio.to_thread(self.get_current_user)

    async def validate_token_async(self) -> CurrentUserResponse:
        return await asyncio.to_thread(self.validate_token)

    async def list_projects_async(self) -> list[Project]:
        return await asyncio.to_thread(self.list_projects)

    async def get_project_async(self, project_id: str) -> Project:
        return await asyncio.to_thread(self.get_project, project_id)

    async def create_project_async(
        self, team_id: str, name: str, description: Optional[str] = None
    ) -> Project:
        return await asyncio.to_thread(self.create_project, team_id, name, description)

    async def delete_project_async(self, project_id: str) -> None:
        await asyncio.to_thread(self.delete_project, project_id)

    async def list_environments_async(self, project_id: str) -> list[Environment]:
        return await asyncio.to_thread(self.list_environments, project_id)

    async def create_environment_async(
        self, project_id: str, name: str, inherits_from: Optional[str] = None
    ) -> Environment:
        return await asyncio.to_thread(self.create_environment, project_id, name, inherits_from)

    async def delete_environment_async(self, project_id: str, environment: str) -> None:
        await asyncio.to_thread(self.delete_environment, project_id, environment)

    async def list_secrets_async(
        self, project_id: str, environment: str
    ) -> list[SecretWithInheritance]:
        return await asyncio.to_thread(self.list_secrets, project_id, environment)

    async def export_secrets_async(
        self, project_id: str, environment: str
    ) -> list[SecretWithValueAndInheritance]:
        return await asyncio.to_thread(self.export_secrets, project_id, environment)

    async def export_secrets_as_map_async(
        self, project_id: str, environment: str
    ) -> dict[str, str]:
        return await asyncio.to_thread(self.export_secrets_as_map, project_id, environment)

    async def get_secret_async(
        self, project_id: str, environment: str, key: str
    ) -> SecretWithValue:
        return await asyncio.to_thread(self.get_secret, project_id, environment, key)

    async def set_secret_async(
        self,
        project_id: str,
        environment: str,
        key: str,
        value: str,
        description: Optional[str] = None,
    ) -> None:
        await asyncio.to_thread(self.set_secret, project_id, environment, key, value, description)

    async def delete_secret_async(self, project_id: str, environment: str, key: str) -> None:
        await asyncio.to_thread(self.delete_secret, project_id, environment, key)

    async def bulk_import_async(
        self,
        project_id: str,
        environment: str,
        secrets: Iterable[Union[SecretInput, dict[str, Any]]],
        overwrite: bool = False,
    ) -> BulkImportResult:
        return await asyncio.to_thread(
            self.bulk_import, project_id, environment, list(secrets), overwrite
        )

    async def import_env_file_async(
        self,
        project_id: str,
        environment: str,
        file_path: Union[str, Path],
        overwrite: bool = False,
    ) -> BulkImportResult:
        return await asyncio.to_thread(
            self.import_env_file, project_id, environment, file_path, overwrite
        )

    async def load_env_async(
        self,
        project_id: str,
        environment: str,
        target: Optional[MutableMapping[str, str]] = None,
    ) -> dict[str, str]:
        return await asyncio.to_thread(self.load_env, project_id, environment, target)

    async def generate_env_file_async(self, project_id: str, environment: str) -> str:
        return await asyncio.to_thread(self.generate_env_file, project_id, environment)

    async def get_secret_history_async(
        self, project_id: str, environment: str, key: str
    ) -> list[SecretHistory]:
        return await asyncio.to_thread(self.get_secret_history, project_id, environment, key)

    async def list_permissions_async(self, project_id: str, environment: str) -> list[Permission]:
        return await asyncio.to_thread(self.list_permissions, project_id, environment)

    async def set_permission_async(
        self, project_id: str, environment: str, user_id: str, role: str
    ) -> None:
        await asyncio.to_thread(self.set_permission, project_id, environment, user_id, role)

    async def delete_permission_async(
        self, project_id: str, environment: str, user_id: str
    ) -> None:
        await asyncio.to_thread(self.delete_permission, project_id, environment, user_id)

    async def bulk_set_permissions_async(
        self,
        project_id: str,
        environment: str,
        permissions: Iterable[Union[PermissionInput, dict[str, Any]]],
    ) -> None:
        await asyncio.to_thread(
            self.bulk_set_permissions, project_id, environment, list(permissions)
        )

    async def get_my_permissions_async(self, project_id: str) -> MyPermissionsResponse:
        return await asyncio.to_thread(self.get_my_permissions, project_id)

    async def get_project_defaults_async(self, project_id: str) -> list[DefaultPermission]:
        return await asyncio.to_thread(self.get_project_defaults, project_id)

    async def set_project_defaults_async(
        self,
        project_id: str,
        defaults: Iterable[Union[DefaultPermission, dict[str, Any]]],
    ) -> None:
        await asyncio.to_thread(self.set_project_defaults, project_id, list(defaults))
