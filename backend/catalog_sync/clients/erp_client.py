"""
ERP HTTP client — versioned, keyed JSON requests to the ERP API.

Every request is a POST of the envelope
    {version, key, action, params}
to a single endpoint. The key and endpoint come from the config
loader; ensure_ready() is the barrier every public method awaits
before a request is built.

Responses arrive as a bare array, {data|rows|result|items: [...]},
or a single object; normalize_to_array() turns all of them into a list.

Id lists longer than the batch limit are split into sequential
chunks with a short pause between them. A chunk that fails with a
transient or request-scoped error is logged and skipped; auth,
configuration and concurrent-access failures stop the whole call.
Version: 1.0.0
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

import httpx

from catalog_sync.core.config import Settings
from catalog_sync.core.constants.erp import (
    ACTION_GET_OBJECT,
    ACTION_REQUEST,
    API_VERSION,
    CONCURRENT_ACCESS_SIGNATURE,
    DOCUMENT_SEARCH_LIMIT,
    ERP_SERVICE_NAME,
    ERP_TIMEZONE,
    OPERATOR_EQUALS,
    OPERATOR_IN_LIST,
)
from catalog_sync.core.exceptions import (
    CatalogSyncException,
    ConfigurationError,
    ExternalAPIError,
    NetworkError,
    RateLimitedError,
    RemoteAuthError,
    RemoteForbiddenError,
    RemoteNotFoundError,
    RemoteRequestError,
    RemoteServerError,
)
from catalog_sync.schemas.catalog import ErpConfig
from catalog_sync.services.config_loader import ConfigLoader, mask_key, validate_config

logger = logging.getLogger("erp_client")

# Errors that abort a chunked call instead of skipping the chunk
_FATAL_CHUNK_ERRORS = (ConfigurationError, RemoteAuthError, RemoteForbiddenError, RateLimitedError)


def normalize_to_array(data: Any) -> List[Any]:
    """Coerce any ERP response shape into a list."""
    if isinstance(data, list):
        return data
    if data is None:
        return []
    if isinstance(data, dict):
        for key in ("data", "rows", "result", "items"):
            candidate = data.get(key)
            if isinstance(candidate, list):
                return candidate
        return [data]
    return []


def chunk_list(items: Sequence[Any], size: int) -> List[List[Any]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def erp_date(tz_name: str = ERP_TIMEZONE) -> str:
    """Current local time in the ERP's register date format."""
    return datetime.now(ZoneInfo(tz_name)).strftime("%Y-%m-%d %H:%M:%S")


def classify_http_error(status_code: int, body: str, retry_after: float = 60) -> CatalogSyncException:
    """Map an HTTP failure onto the client error taxonomy."""
    snippet = (body or "")[:300]
    if status_code == 429 or CONCURRENT_ACCESS_SIGNATURE in (body or ""):
        return RateLimitedError(ERP_SERVICE_NAME, retry_after=retry_after)
    if status_code == 401:
        return RemoteAuthError(ERP_SERVICE_NAME, "authentication failed, check the API key", status_code)
    if status_code == 403:
        return RemoteForbiddenError(ERP_SERVICE_NAME, "access forbidden for this API key", status_code)
    if status_code == 404:
        return RemoteNotFoundError(ERP_SERVICE_NAME, "endpoint or object not found", status_code)
    if status_code >= 500:
        return RemoteServerError(ERP_SERVICE_NAME, f"server error HTTP {status_code}: {snippet}", status_code)
    return RemoteRequestError(ERP_SERVICE_NAME, f"HTTP {status_code}: {snippet}", status_code)


class ErpClient:
    def __init__(
        self,
        config_loader: ConfigLoader,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config_loader = config_loader
        self._timeout = settings.erp_request_timeout
        self._max_ids = settings.erp_max_ids_per_request
        self._chunk_delay = settings.erp_chunk_delay_ms / 1000
        self._rate_limit_retries = settings.erp_rate_limit_retries
        self._backoff_base = settings.erp_rate_limit_backoff_seconds
        self._backoff_max = settings.erp_rate_limit_backoff_max_seconds
        self._transport = transport
        self._sleep = sleep

        self._ready: Optional[asyncio.Task] = None
        self._ready_loop: Optional[asyncio.AbstractEventLoop] = None

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    async def ensure_ready(self) -> ErpConfig:
        """Wait until configuration is loaded; returns the loaded config.

        The load runs once per event loop. Celery's run_async creates a
        fresh loop per task, so a task bound to a closed loop is replaced.
        A load that failed is retried on the next call.
        """
        loop = asyncio.get_running_loop()
        failed = (
            self._ready is not None
            and self._ready.done()
            and not self._ready.cancelled()
            and self._ready.exception() is not None
        )
        if self._ready is None or self._ready_loop is not loop or failed:
            self._ready = loop.create_task(self._config_loader.get_config())
            self._ready_loop = loop
        return await asyncio.shield(self._ready)

    async def reload_config(self) -> ErpConfig:
        """Drop cached configuration and load it again before the next request."""
        logger.info("reloading ERP configuration")
        self._config_loader.invalidate()
        self._ready = None
        config = await self.ensure_ready()
        logger.info("ERP configuration reloaded key=%s", mask_key(config.api_key))
        return config

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, action: str, params: Dict[str, Any]) -> Any:
        await self.ensure_ready()
        # after the first load the loader serves its TTL cache
        config = await self._config_loader.get_config()
        if not config.api_url or not config.api_key:
            raise ConfigurationError(
                f"ERP API is not configured: {', '.join(validate_config(config))}"
            )

        payload = {
            "version": API_VERSION,
            "key": config.api_key,
            "action": action,
            "params": params,
        }

        attempt = 0
        while True:
            try:
                return await self._send(config.api_url, payload)
            except RateLimitedError:
                if attempt >= self._rate_limit_retries:
                    logger.warning(
                        "ERP concurrent-access rejection persisted after %d retries", attempt
                    )
                    raise
                delay = min(self._backoff_base * (2 ** attempt), self._backoff_max)
                attempt += 1
                logger.warning(
                    "ERP rejected concurrent access action=%s retry=%d/%d in %.1fs",
                    action, attempt, self._rate_limit_retries, delay,
                )
                await self._sleep(delay)

    async def _send(self, url: str, payload: Dict[str, Any]) -> Any:
        logger.debug("ERP request action=%s", payload["action"])
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
        except httpx.TransportError as e:
            raise NetworkError(ERP_SERVICE_NAME, f"network failure: {e}") from e

        if resp.status_code != 200:
            logger.warning("ERP error response status=%s body=%s", resp.status_code, resp.text[:300])
            raise classify_http_error(resp.status_code, resp.text, retry_after=self._backoff_base)

        try:
            data = resp.json()
        except ValueError as e:
            raise ExternalAPIError(ERP_SERVICE_NAME, "response is not valid JSON", resp.status_code) from e

        if isinstance(data, dict) and data.get("error"):
            error_text = str(data["error"])
            if CONCURRENT_ACCESS_SIGNATURE in error_text:
                raise RateLimitedError(ERP_SERVICE_NAME, retry_after=self._backoff_base)
            raise RemoteRequestError(ERP_SERVICE_NAME, error_text, resp.status_code)

        return data

    async def _request_chunked(
        self,
        ids: Sequence[str],
        build_params: Callable[[List[str]], Dict[str, Any]],
        label: str,
    ) -> List[Any]:
        """Run one request per id chunk, pausing between chunks; failed chunks are skipped."""
        chunks = chunk_list(ids, self._max_ids)
        results: List[Any] = []
        for index, chunk in enumerate(chunks):
            try:
                response = await self._request(ACTION_REQUEST, build_params(chunk))
                results.extend(normalize_to_array(response))
            except _FATAL_CHUNK_ERRORS:
                raise
            except CatalogSyncException as e:
                logger.error(
                    "ERP %s chunk %d/%d failed, skipping size=%d error=%s",
                    label, index + 1, len(chunks), len(chunk), e,
                )
            if index < len(chunks) - 1:
                await self._sleep(self._chunk_delay)
        return results

    # ------------------------------------------------------------------
    # Typed operations
    # ------------------------------------------------------------------

    async def get_prices_for_skus(self, skus: Sequence[str]) -> List[Dict[str, Any]]:
        """Latest price slice rows (one per product per price tier)."""
        await self.ensure_ready()
        if not skus:
            return []

        def params(chunk: List[str]) -> Dict[str, Any]:
            return {
                "from": {"type": "sliceLast", "register": "goodsPrices", "date": erp_date()},
                "fields": {
                    "good": "id",
                    "good.productNum": "sku",
                    "good.parent": "parent",
                    "priceType": "priceType",
                    "price": "price",
                },
                "filters": [{"alias": "sku", "operator": OPERATOR_IN_LIST, "value": chunk}],
            }

        rows = await self._request_chunked(list(skus), params, "prices")
        logger.info("ERP prices fetched skus=%d rows=%d", len(skus), len(rows))
        return rows

    async def get_catalog_for_skus(self, skus: Sequence[str]) -> List[Dict[str, Any]]:
        """Goods catalog rows with display names."""
        await self.ensure_ready()
        if not skus:
            return []

        def params(chunk: List[str]) -> Dict[str, Any]:
            return {
                "from": "catalogs.goods",
                "fields": {"id": "id", "productNum": "sku", "parent": "parent", "id__pr": "name"},
                "filters": [{"alias": "sku", "operator": OPERATOR_IN_LIST, "value": chunk}],
            }

        rows = await self._request_chunked(list(skus), params, "catalog")
        logger.info("ERP catalog fetched skus=%d rows=%d", len(skus), len(rows))
        return rows

    async def get_object_detail(self, object_id: str) -> Dict[str, Any]:
        """Full object (header + table parts) for one ERP id."""
        await self.ensure_ready()
        response = await self._request(ACTION_GET_OBJECT, {"id": object_id})
        return response if isinstance(response, dict) else {}

    async def get_stock_balance(self, skus: Sequence[str]) -> List[Dict[str, Any]]:
        """Per-warehouse balance rows {id, sku, storage, qty}."""
        await self.ensure_ready()
        if not skus:
            return []

        def params(chunk: List[str]) -> Dict[str, Any]:
            return {
                "from": {
                    "type": "balance",
                    "register": "goods",
                    "date": erp_date(),
                    "dimensions": ["good", "storage"],
                },
                "fields": {"good": "id", "good.productNum": "sku", "storage": "storage", "qty": "qty"},
                "filters": [{"alias": "sku", "operator": OPERATOR_IN_LIST, "value": chunk}],
            }

        rows = await self._request_chunked(list(skus), params, "stock")
        logger.info("ERP stock balance fetched skus=%d rows=%d", len(skus), len(rows))
        return rows

    async def search_documents(
        self,
        document_type: str,
        value: str | Sequence[str],
        filter_alias: str = "number",
        fields: Optional[Dict[str, Any]] = None,
        with_details: bool = False,
    ) -> List[Dict[str, Any]]:
        """Find documents by a header field.

        A single value uses an equality filter with a small result limit;
        a list of values uses chunked "in list" filters. With with_details,
        each found document gets its full object under "details",
        fetched one at a time.
        """
        await self.ensure_ready()
        fields = fields or {"id": "id", "number": "number", "date": "date"}

        if isinstance(value, str):
            response = await self._request(ACTION_REQUEST, {
                "from": document_type,
                "fields": fields,
                "filters": [{"alias": filter_alias, "operator": OPERATOR_EQUALS, "value": value}],
                "limit": DOCUMENT_SEARCH_LIMIT,
            })
            documents = normalize_to_array(response)
        else:
            documents = await self._request_chunked(
                list(value),
                lambda chunk: {
                    "from": document_type,
                    "fields": fields,
                    "filters": [{"alias": filter_alias, "operator": OPERATOR_IN_LIST, "value": chunk}],
                },
                f"documents {document_type}",
            )

        if not with_details:
            return documents

        detailed = []
        for document in documents:
            document_id = document.get("id") if isinstance(document, dict) else None
            if not document_id:
                detailed.append(document)
                continue
            try:
                details = await self.get_object_detail(str(document_id))
                detailed.append({**document, "details": details})
            except _FATAL_CHUNK_ERRORS:
                raise
            except CatalogSyncException as e:
                logger.warning("document details fetch failed id=%s error=%s", document_id, e)
                detailed.append(document)
        return detailed

    async def test_connection(self) -> bool:
        """One-row catalog request; raises on failure so callers see the cause."""
        await self._request(ACTION_REQUEST, {
            "from": "catalogs.goods",
            "fields": {"id": "id"},
            "filters": [],
            "limit": 1,
        })
        return True
