"""
Unit tests for the exception hierarchy.

Tests cover:
- Retryable vs non-retryable split used by Celery autoretry
- HTTP error subclasses keep service and status code
- RateLimitedError carries retry_after
- PartialItemError prefixes the SKU

Version: 1.0.0
"""
import pytest

from catalog_sync.core.exceptions import (
    CatalogSyncException,
    ConfigurationError,
    DatabaseTransientError,
    ExternalAPIError,
    NetworkError,
    NonRetryableError,
    PartialItemError,
    RateLimitedError,
    RemoteAuthError,
    RemoteForbiddenError,
    RemoteNotFoundError,
    RemoteRequestError,
    RemoteServerError,
    RetryableError,
    StorefrontUnavailableError,
)


@pytest.mark.unit
class TestHierarchy:

    @pytest.mark.parametrize("exc_class", [
        ExternalAPIError, RemoteServerError, NetworkError,
        RateLimitedError, StorefrontUnavailableError, DatabaseTransientError,
    ])
    def test_retryable(self, exc_class):
        assert issubclass(exc_class, RetryableError)
        assert not issubclass(exc_class, NonRetryableError)

    @pytest.mark.parametrize("exc_class", [
        ConfigurationError, RemoteRequestError, RemoteAuthError,
        RemoteForbiddenError, RemoteNotFoundError, PartialItemError,
    ])
    def test_non_retryable(self, exc_class):
        assert issubclass(exc_class, NonRetryableError)
        assert not issubclass(exc_class, RetryableError)

    def test_everything_derives_from_base(self):
        assert issubclass(RetryableError, CatalogSyncException)
        assert issubclass(NonRetryableError, CatalogSyncException)


@pytest.mark.unit
class TestMessages:

    def test_remote_error_keeps_status(self):
        exc = RemoteAuthError("ERP", "bad key", 401)
        assert exc.status_code == 401
        assert exc.service == "ERP"
        assert str(exc) == "ERP API error: bad key"

    def test_server_error_message(self):
        exc = RemoteServerError("ERP", "server error HTTP 502", 502)
        assert "502" in str(exc)
        assert exc.status_code == 502

    def test_rate_limited_retry_after(self):
        exc = RateLimitedError("ERP", retry_after=2.5)
        assert exc.retry_after == 2.5
        assert "Retry after 2.5s" in str(exc)

    def test_partial_item_prefixes_sku(self):
        assert str(PartialItemError("A100", "not found")) == "A100: not found"

    def test_partial_item_without_sku(self):
        assert str(PartialItemError(None, "not found")) == "not found"
