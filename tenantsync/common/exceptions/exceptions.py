# tenantsync/common/exceptions/exceptions.py
# =============================================================================
# Custom exceptions for TenantSync
# =============================================================================


class TenantSyncException(Exception):
    """Base exception for TenantSync"""
    pass


class ValidationError(TenantSyncException):
    """Raised when an event is malformed (missing tenant id, kind or required field).

    Always raised before any store or cache I/O happens.
    """
    pass


class NotFoundError(TenantSyncException):
    """Raised when an update/delete/get references an unknown email, id or tenant slice"""
    pass


class StoreError(TenantSyncException):
    """Raised for store failures: constraint violations, connection loss, timeouts.

    The surrounding transaction has been rolled back when this surfaces.
    """
    pass


class CacheError(TenantSyncException):
    """Raised by the cache layer on any Redis I/O failure"""
    pass


class SignatureError(TenantSyncException):
    """Raised when an upstream webhook signature is missing or does not match"""
    pass


# =============================================================================
# EOF
# =============================================================================
