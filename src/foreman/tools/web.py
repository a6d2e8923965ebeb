"""Web tools: HTTP fetch and web search."""

from __future__ import annotations

import os
import re
from typing import Any
from urllib.parse import urlparse

import httpx

from foreman.tools.base import BaseTool
from foreman.types.tools import ToolDef, ToolParam

MAX_CONTENT_LENGTH = 50_000
MAX_SEARCH_RESULTS = 10
USER_AGENT = "Foreman/0.1"
SEARCH_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
SEARCH_KEY_ENV = "SEARCH_API_KEY"
SEARCH_ENGINE_ENV = "SEARCH_ENGINE_ID"

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.DOTALL | re.IGNORECASE)

_FETCH_DEFINITION = ToolDef(
    name="WebFetch",
    description=(
        "Fetch a URL and return its text (HTML is converted to plain text). "
        "Useful for documentation, APIs, and web pages."
    ),
    parameters=(
        ToolParam(
            name="url",
            type="string",
            description="The http:// or https:// URL to fetch.",
        ),
        ToolParam(
            name="prompt",
            type="string",
            description="What you are looking for in the page; echoed back with the content.",
            required=False,
        ),
        ToolParam(
            name="max_length",
            type="integer",
            description=f"Maximum content length to return (default {MAX_CONTENT_LENGTH}).",
            required=False,
            default=MAX_CONTENT_LENGTH,
        ),
    ),
)

_SEARCH_DEFINITION = ToolDef(
    name="WebSearch",
    description=(
        "Search the web and return titles, URLs and snippets. Needs "
        f"{SEARCH_KEY_ENV} and {SEARCH_ENGINE_ENV} (Google Custom Search)."
    ),
    parameters=(
        ToolParam(
            name="query",
            type="string",
            description="The search query.",
        ),
        ToolParam(
            name="allowed_domains",
            type="array",
            description="Only include results from these domains.",
            required=False,
        ),
        ToolParam(
            name="blocked_domains",
            type="array",
            description="Never include results from these domains.",
            required=False,
        ),
    ),
)


def html_to_text(html: str) -> str:
    """Strip tags and decode common entities."""
    text = re.sub(r"<(script|style|noscript)[^>]*>.*?</\1>", "", html, flags=re.DOTALL | re.IGNORECASE)
    text = re.sub(r"<(br|p|div|h[1-6]|li|tr)[^>]*>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    for entity, char in (("&lt;", "<"), ("&gt;", ">"), ("&quot;", '"'),
                         ("&#39;", "'"), ("&nbsp;", " "), ("&amp;", "&")):
        text = text.replace(entity, char)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n\s*\n\s*\n+", "\n\n", text)
    return text.strip()


def _domain_matches(domain: str, patterns: list[str]) -> bool:
    return any(domain == p or domain.endswith("." + p) for p in patterns)


class WebFetchTool(BaseTool):
    """Fetches a URL with httpx."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__()
        self._transport = transport

    @property
    def definition(self) -> ToolDef:
        return _FETCH_DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        url = str(self._require(params, "url"))
        if not url.startswith(("http://", "https://")):
            self._fail("URL must start with http:// or https://")
        try:
            max_length = int(params.get("max_length") or MAX_CONTENT_LENGTH)
        except (TypeError, ValueError):
            max_length = MAX_CONTENT_LENGTH

        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                timeout=30.0,
                headers={"User-Agent": USER_AGENT},
                transport=self._transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._fail(f"HTTP {exc.response.status_code} fetching {url}")
        except httpx.HTTPError as exc:
            self._fail(f"Fetch failed: {type(exc).__name__}: {exc}")

        content_type = resp.headers.get("content-type", "")
        body = resp.text
        title = None
        if "html" in content_type:
            match = _TITLE_RE.search(body)
            title = html_to_text(match.group(1)) if match else None
            body = html_to_text(body)

        total = len(body)
        truncated = total > max_length
        if truncated:
            body = body[:max_length] + f"\n\n[Truncated; {total} chars total]"

        result: dict[str, Any] = {
            "url": str(resp.url),
            "status_code": resp.status_code,
            "content_type": content_type,
            "title": title,
            "content": body,
            "truncated": truncated,
        }
        if params.get("prompt"):
            result["prompt"] = params["prompt"]
        return result


class WebSearchTool(BaseTool):
    """Google Custom Search through httpx.

    Credentials come from the constructor or, at call time, from
    ``SEARCH_API_KEY`` and ``SEARCH_ENGINE_ID``.
    """

    def __init__(
        self,
        api_key: str | None = None,
        engine_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._api_key = api_key
        self._engine_id = engine_id
        self._transport = transport

    @property
    def definition(self) -> ToolDef:
        return _SEARCH_DEFINITION

    async def execute(self, params: dict[str, Any]) -> dict[str, Any]:
        query = str(self._require(params, "query")).strip()
        if len(query) < 2:
            self._fail("query must be at least 2 characters")
        allowed = [str(d).lower() for d in params.get("allowed_domains") or ()]
        blocked = [str(d).lower() for d in params.get("blocked_domains") or ()]

        api_key = self._api_key or os.environ.get(SEARCH_KEY_ENV)
        engine_id = self._engine_id or os.environ.get(SEARCH_ENGINE_ENV)
        if not api_key or not engine_id:
            self._fail(
                f"Web search is not configured; set {SEARCH_KEY_ENV} and {SEARCH_ENGINE_ENV}. "
                "Use WebFetch to read a known URL instead."
            )

        try:
            async with httpx.AsyncClient(timeout=30.0, transport=self._transport) as client:
                resp = await client.get(
                    SEARCH_ENDPOINT,
                    params={"key": api_key, "cx": engine_id, "q": query, "num": MAX_SEARCH_RESULTS},
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            self._fail(f"Search failed: HTTP {exc.response.status_code}")
        except (httpx.HTTPError, ValueError) as exc:
            self._fail(f"Search failed: {type(exc).__name__}: {exc}")

        results: list[dict[str, str]] = []
        for item in data.get("items") or ():
            link = item.get("link", "")
            domain = (urlparse(link).hostname or "").lower()
            if allowed and not _domain_matches(domain, allowed):
                continue
            if blocked and _domain_matches(domain, blocked):
                continue
            results.append({
                "title": item.get("title", ""),
                "url": link,
                "snippet": item.get("snippet", ""),
                "domain": domain,
            })

        results = results[:MAX_SEARCH_RESULTS]
        return {"query": query, "results": results, "count": len(results)}
