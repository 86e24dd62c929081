"""
Custom exception hierarchy for the catalog sync backend.

Exceptions are categorized as:
- RetryableError: Transient errors that should trigger Celery retry
- NonRetryableError: Permanent errors that should fail immediately

This categorization allows Celery tasks to use:
- autoretry_for=(RetryableError,)
- dont_autoretry_for=(NonRetryableError,)

The pipeline itself never lets these escape to the host process: the
sync coordinator converts them into result objects.
"""
from typing import Optional


class CatalogSyncException(Exception):
    """Base exception for the catalog sync backend."""
    pass


# ============================================
# RETRYABLE ERRORS - Will trigger Celery retry
# ============================================
class RetryableError(CatalogSyncException):
    """
    Base class for errors that should trigger retry.

    Use this for transient errors where retrying might succeed:
    - Network timeouts
    - Concurrent-access rejections (with backoff)
    - Temporary service unavailability
    """
    pass


class ExternalAPIError(RetryableError):
    """
    Error from the ERP API.

    Typically transient - the external service might recover.
    """
    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} API error: {message}")


class RemoteServerError(ExternalAPIError):
    """Remote returned a 5xx status."""
    pass


class NetworkError(ExternalAPIError):
    """Connection, DNS or timeout failure before a response arrived."""
    pass


class RateLimitedError(RetryableError):
    """
    Remote rejected the request because another request is in flight.

    Should retry after the specified delay.
    """
    def __init__(self, service: str, retry_after: float = 60):
        self.service = service
        self.retry_after = retry_after
        super().__init__(f"{service} rejected concurrent access. Retry after {retry_after}s")


class StorefrontUnavailableError(RetryableError):
    """Storefront database could not be queried."""
    pass


class DatabaseTransientError(RetryableError):
    """
    Transient database error on the local store.

    Examples: connection pool exhausted, deadlock, temporary unavailability
    """
    pass


# ============================================
# NON-RETRYABLE ERRORS - No automatic retry
# ============================================
class NonRetryableError(CatalogSyncException):
    """
    Base class for errors that should NOT trigger retry.

    Use this for permanent errors where retrying won't help:
    - Missing endpoint or credential
    - Authentication errors (need config fix)
    - Bad data for a single item
    """
    pass


class ConfigurationError(NonRetryableError):
    """Endpoint or credential is missing or invalid."""
    pass


class RemoteRequestError(NonRetryableError):
    """Remote refused the request with a 4xx status."""
    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} API error: {message}")


class RemoteAuthError(RemoteRequestError):
    """Credential rejected (401)."""
    pass


class RemoteForbiddenError(RemoteRequestError):
    """Credential lacks access (403)."""
    pass


class RemoteNotFoundError(RemoteRequestError):
    """Endpoint or object not found (404)."""
    pass


class PartialItemError(NonRetryableError):
    """Failure scoped to a single SKU; logged, counted and skipped."""
    def __init__(self, sku: Optional[str], message: str):
        self.sku = sku
        super().__init__(f"{sku}: {message}" if sku else message)
