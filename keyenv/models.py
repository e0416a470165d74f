from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://api.keyenv.dev"
DEFAULT_TIMEOUT = 30.0

EnvironmentRole = Literal["none", "read", "write", "admin"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    auth_type: Optional[str] = None
    team_id: Optional[str] = None
    created_at: Optional[datetime] = None


class Team(BaseModel):
    id: str
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Environment(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    project_id: Optional[str] = None
    inherits_from_id: Optional[str] = Field(
        default=None, description="ID of the parent environment unset keys are inherited from"
    )
    order: int = Field(default=0, description="Display order within the project")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Project(BaseModel):
    id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    team_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    environments: list[Environment] = Field(default_factory=list)


class Secret(BaseModel):
    id: Optional[str] = None
    key: str = Field(..., description="Secret name (e.g., DATABASE_URL)")
    environment_id: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SecretWithInheritance(Secret):
    inherited_from: Optional[str] = Field(
        default=None, description="Environment the secret was resolved from, if not set locally"
    )

    @property
    def is_inherited(self) -> bool:
        return bool(self.inherited_from)


class SecretWithValue(Secret):
    value: str = Field(..., description="Decrypted secret value")


class SecretWithValueAndInheritance(SecretWithValue):
    inherited_from: Optional[str] = None

    @property
    def is_inherited(self) -> bool:
        return bool(self.inherited_from)


class SecretInput(BaseModel):
    key: str
    value: str
    description: Optional[str] = None


class SecretHistory(BaseModel):
    id: str
    secret_id: Optional[str] = None
    key: Optional[str] = None
    version: int
    changed_by: Optional[str] = None
    change_type: Optional[str] = None
    created_at: Optional[datetime] = None


class Permission(BaseModel):
    id: Optional[str] = None
    user_id: str
    user_email: Optional[str] = None
    environment_id: Optional[str] = None
    environment_name: Optional[str] = None
    role: str
    can_write: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PermissionInput(BaseModel):
    user_id: str
    role: EnvironmentRole


class DefaultPermission(BaseModel):
    environment_name: str
    default_role: str


class MyPermissionsResponse(BaseModel):
    permissions: list[Permission] = Field(default_factory=list)
    is_team_admin: bool = False


class ServiceToken(BaseModel):
    id: str
    name: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    permissions: list[str] = Field(default_factory=list)
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return _utcnow() > expires_at


class UserPrincipal(BaseModel):
    type: Literal["user"] = "user"
    user: User

    @property
    def is_user(self) -> bool:
        return True

    @property
    def is_service_token(self) -> bool:
        return False


class ServiceTokenPrincipal(BaseModel):
    type: Literal["service_token"] = "service_token"
    service_token: ServiceToken

    @property
    def is_user(self) -> bool:
        return False

    @property
    def is_service_token(self) -> bool:
        return True


CurrentUserResponse = Annotated[
    Union[UserPrincipal, ServiceTokenPrincipal], Field(discriminator="type")
]


class BulkImportResult(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped


class AuditEntry(BaseModel):
    timestamp: datetime = Field(default_factory=_utcnow)
    action: str = Field(..., description="Action performed (get, create, update, delete)")
    path: str = Field(..., description="API path the request was sent to")
    status: int = Field(default=0, description="HTTP status, 0 if no response was received")
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional metadata")


class AuditConfig(BaseModel):
    enabled: bool = Field(default=False, description="Whether request audit logging is enabled")
    path: str = Field(default=".keyenv/audit.log", description="Path to audit log")
    log_reads: bool = Field(default=False, description="Whether to log read requests")


class ClientConfig(BaseModel):
    token: str = Field(default="", description="Service token or user token")
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API base URL")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Per-request timeout in seconds")
    cache_ttl: float = Field(default=0.0, ge=0, description="Export cache TTL in seconds, 0 disables")
    audit: AuditConfig = Field(default_factory=AuditConfig)
