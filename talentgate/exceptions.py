"""Exception hierarchy for TalentGate."""


class TalentGateError(Exception):
    """Base exception for all TalentGate errors."""


class ConfigError(TalentGateError):
    """Raised when configuration or the route table is invalid."""


class StorageError(TalentGateError):
    """Raised when storage operations fail."""


class RoleLookupError(TalentGateError):
    """Raised when the tenant/role source of truth cannot be reached."""


class TenantScopeError(TalentGateError):
    """Raised when a data-access object is built without a tenant id."""


class InviteError(TalentGateError):
    """Raised when an invite is missing, used, expired or addressed to someone else."""
