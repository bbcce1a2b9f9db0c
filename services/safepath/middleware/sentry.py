"""
Sentry instrumentation for the FastAPI service.
Server-side only. Strips sensitive headers and the maps API key from events
and transactions.

The httpx integration records outgoing query strings under "http.query" on
breadcrumbs and span data. Every Google Maps call carries key=<api key>, so
both hooks rewrite that parameter before anything leaves the process.
"""

from typing import Any
from urllib.parse import parse_qsl, urlencode

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.safepath.config import settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}
SENSITIVE_QUERY_PARAMS = {"key"}
FILTERED = "[FILTERED]"


def _filter_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = FILTERED


def _filter_query(query: str) -> str:
    pairs = parse_qsl(query, keep_blank_values=True)
    if not any(name in SENSITIVE_QUERY_PARAMS for name, _ in pairs):
        return query
    return urlencode(
        [(name, FILTERED if name in SENSITIVE_QUERY_PARAMS else value) for name, value in pairs],
        safe="[]",
    )


def _filter_http_data(data: Any) -> None:
    """Scrub one breadcrumb/span data dict in place."""
    if not isinstance(data, dict):
        return
    _filter_headers(data.get("headers", {}))

    query = data.get("http.query")
    if isinstance(query, str) and query:
        data["http.query"] = _filter_query(query)

    url = data.get("url")
    if isinstance(url, str) and "?" in url:
        base, _, query = url.partition("?")
        data["url"] = f"{base}?{_filter_query(query)}"


def _filter_breadcrumbs(event: dict[str, Any]) -> None:
    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict):
        for breadcrumb in breadcrumbs.get("values", []):
            _filter_http_data(breadcrumb.get("data"))


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: strip auth headers, cookies and maps keys from breadcrumbs."""
    _filter_breadcrumbs(event)
    request = event.get("request", {})
    if isinstance(request, dict):
        _filter_headers(request.get("headers", {}))
    return event


def _strip_sensitive_transaction(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send_transaction hook: same scrubbing for span data."""
    for span in event.get("spans", []):
        if isinstance(span, dict):
            _filter_http_data(span.get("data"))
    return _strip_sensitive_data(event, hint)


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        before_send_transaction=_strip_sensitive_transaction,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
