"""KeyEnv Python SDK - Secrets management for development teams."""

__version__ = "1.0.0"

from keyenv.errors import KeyEnvError
from keyenv.models import (
    DEFAULT_BASE_URL,
    BulkImportResult,
    ClientConfig,
    CurrentUserResponse,
    DefaultPermission,
    Environment,
    MyPermissionsResponse,
    Permission,
    PermissionInput,
    Project,
    Secret,
    SecretHistory,
    SecretInput,
    SecretWithInheritance,
    SecretWithValue,
    SecretWithValueAndInheritance,
    ServiceToken,
    ServiceTokenPrincipal,
    Team,
    User,
    UserPrincipal,
)
from keyenv.client import KeyEnv

__all__ = [
    'KeyEnv',
    'KeyEnvError',
    'DEFAULT_BASE_URL',
    'BulkImportResult',
    'ClientConfig',
    'CurrentUserResponse',
    'DefaultPermission',
    'Environment',
    'MyPermissionsResponse',
    'Permission',
    'PermissionInput',
    'Project',
    'Secret',
    'SecretHistory',
    'SecretInput',
    'SecretWithInheritance',
    'SecretWithValue',
    'SecretWithValueAndInheritance',
    'ServiceToken',
    'ServiceTokenPrincipal',
    'Team',
    'User',
    'UserPrincipal',
]
