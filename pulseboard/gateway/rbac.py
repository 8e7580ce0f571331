"""
Pulseboard - Role-Based Access Control (RBAC)

Permission grants per role, loaded from policies.yaml.

Security:
- Deny-by-default: a permission must be listed for the role
- Role hierarchy is NOT inherited (explicit grants only)
- Every route gate resolves through require_permission
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Set, Union

import yaml


logger = logging.getLogger(__name__)

DEFAULT_POLICY_PATH = Path(__file__).parent / "policies.yaml"


class Permission(str, Enum):
    """Granular permissions, resource:action."""
    # Metrics
    READ_METRICS = "read:metrics"
    WRITE_METRICS = "write:metrics"

    # AI model registry
    READ_MODELS = "read:models"
    MANAGE_MODELS = "manage:models"
    DELETE_MODELS = "delete:models"

    # Configuration
    READ_CONFIG = "read:config"
    MANAGE_CONFIG = "manage:config"

    # Audit and export
    READ_AUDIT = "read:audit"
    EXPORT_DATA = "export:data"

    # User management
    READ_USERS = "read:users"
    MANAGE_USERS = "manage:users"


class RBACPolicy:
    """
    Manages role-to-permission mappings loaded from policies.yaml.

    The default policy is shared process-wide; pass a path to load a
    different file (tests).
    """

    _instance: Optional["RBACPolicy"] = None

    def __init__(self, policy_path: Path = DEFAULT_POLICY_PATH):
        self._policies: Dict[str, Set[str]] = self._load_policies(policy_path)

    @classmethod
    def default(cls) -> "RBACPolicy":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @staticmethod
    def _load_policies(policy_path: Path) -> Dict[str, Set[str]]:
        """Load policies from YAML configuration file."""
        if not policy_path.exists():
            logger.warning("Policy file %s not found; denying all permissions", policy_path)
            return {}

        with open(policy_path, "r") as f:
            config = yaml.safe_load(f) or {}

        return {
            role: set(perms or [])
            for role, perms in config.get("roles", {}).items()
        }

    def has_permission(self, role: Union[str, Enum], permission: Permission) -> bool:
        """
        Check if a role has a specific permission.

        Args:
            role: User's role (name or Role member)
            permission: Required permission

        Returns:
            True if permitted, False otherwise
        """
        role_name = role.value if isinstance(role, Enum) else role
        return permission.value in self._policies.get(role_name, set())

    def get_role_permissions(self, role: str) -> Set[str]:
        """Get all permissions for a role."""
        return set(self._policies.get(role, set()))
