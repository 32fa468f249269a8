"""
Web Search Tool

Internet lookups through the DuckDuckGo Instant Answer API. No API key is
needed; results are the instant answer abstract plus related topics and
direct results.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import aiohttp

from .base import Tool

logger = logging.getLogger(__name__)

DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
USER_AGENT = "agentflow/0.1 (multi-agent workflow engine)"
RESULT_MARKER = "[WEB SEARCH RESULT]"


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str
    source: str


def _split_text(text: str):
    # Topic text reads "Title - Description"
    title, _, rest = text.partition(" - ")
    return title or text[:100], rest or text


class WebSearchTool(Tool):
    """Search the web and return formatted results."""

    def __init__(self, max_results: int = 10, region: str = "us-en", timeout: float = 15.0):
        self.max_results = max_results
        self.region = region
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "web_search"

    @property
    def description(self) -> str:
        return "Search the internet for current information (DuckDuckGo)"

    @property
    def input_schema(self) -> Dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query"},
            },
            "required": ["query"],
        }

    async def execute_tool(self, arguments: Dict[str, Any]) -> str:
        query = str(arguments.get("query", "")).strip()
        if not query:
            raise ValueError("web_search requires a non-empty 'query'")
        results = await self.search(query)
        return self.format_results(results)

    async def search(self, query: str) -> List[SearchResult]:
        """
        Run a search.

        Raises:
            RuntimeError: If the request fails
        """
        logger.info(f"Web search: {query}")
        try:
            data = await self._fetch(query)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RuntimeError(f"Web search failed: {str(e) or type(e).__name__}") from e

        results = self.parse_response(data)
        logger.info(f"Web search found {len(results)} results")
        return results

    async def _fetch(self, query: str) -> Dict[str, Any]:
        params = {
            "q": query,
            "format": "json",
            "no_html": "1",
            "skip_disambig": "1",
            "kl": self.region,
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(
                DUCKDUCKGO_URL, params=params, headers={"User-Agent": USER_AGENT}
            ) as response:
                response.raise_for_status()
                # The API answers with a javascript content type
                return await response.json(content_type=None)

    def parse_response(self, data: Dict[str, Any]) -> List[SearchResult]:
        """Turn an Instant Answer payload into at most ``max_results`` results."""
        results: List[SearchResult] = []

        if data.get("AbstractText"):
            results.append(
                SearchResult(
                    title=data.get("Heading") or "Definition/Abstract",
                    url=data.get("AbstractURL") or "",
                    snippet=f"{RESULT_MARKER} {data['AbstractText']}",
                    source="DuckDuckGo Instant Answer",
                )
            )

        for key, source in (
            ("RelatedTopics", "DuckDuckGo Related Topics"),
            ("Results", "DuckDuckGo Direct Results"),
        ):
            for item in data.get(key) or []:
                if len(results) >= self.max_results:
                    return results
                if not isinstance(item, dict):
                    continue
                text, url = item.get("Text"), item.get("FirstURL")
                if not text or not url:
                    continue
                title, snippet = _split_text(text)
                results.append(
                    SearchResult(
                        title=title,
                        url=url,
                        snippet=f"{RESULT_MARKER} {snippet}",
                        source=source,
                    )
                )

        return results[: self.max_results]

    @staticmethod
    def format_results(results: List[SearchResult]) -> str:
        if not results:
            return "[INTERNET SEARCH] No relevant results found for the search query."

        lines = [f"Web Search Results ({len(results)} found):", ""]
        for index, result in enumerate(results, start=1):
            lines.append(f"{index}. {result.title}")
            lines.append(f"   URL: {result.url}")
            lines.append(f"   Snippet: {result.snippet}")
            lines.append(f"   Source: {result.source}")
            lines.append("")
        return "\n".join(lines).strip()
