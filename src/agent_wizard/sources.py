"""Input sources: the organization description as typed text, a file, or a web page."""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
from bs4 import BeautifulSoup

from agent_wizard.models.enums import SourceType

logger = logging.getLogger(__name__)

PRIMARY_SELECTORS = ["main", "article", ".content", "#content"]
STRIP_SELECTORS = ["nav", "footer", "header", ".sidebar", "script", "style", "noscript"]
MAX_CHARS = 60_000


def read_text(text: str) -> str:
    return text.strip()


def read_file(path: Path) -> str:
    """Read a description file; XML is passed through as text for the extractor."""
    return path.read_text(encoding="utf-8").strip()


XML_SUFFIXES = (".xml", ".archimate", ".bpmn")


def source_type_for(path: Path) -> SourceType:
    return SourceType.XML if path.suffix.lower() in XML_SUFFIXES else SourceType.FILE


def html_to_text(html: str) -> str:
    """Extract readable text from a page, preferring its main content area."""
    soup = BeautifulSoup(html, "html.parser")
    for selector in STRIP_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""

    body = ""
    for selector in PRIMARY_SELECTORS:
        elements = soup.select(selector)
        if elements:
            body = "\n\n".join(el.get_text(separator="\n", strip=True) for el in elements)
            break
    if not body:
        container = soup.find("body") or soup
        body = container.get_text(separator="\n", strip=True)

    return f"{title}\n\n{body}".strip() if title else body


async def fetch_page(
    url: str,
    *,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Fetch one page and return its text content.

    Raises httpx.HTTPError on transport failures and non-2xx responses, and
    ValueError when the response is not HTML or carries no text.
    """
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=timeout,
        headers={"User-Agent": "agent-wizard/0.1"},
        transport=transport,
    ) as client:
        resp = await client.get(url)
        resp.raise_for_status()

    content_type = resp.headers.get("content-type", "")
    if "text/html" not in content_type and "text/plain" not in content_type:
        raise ValueError(f"{url} returned unsupported content type {content_type!r}")

    text = html_to_text(resp.text) if "text/html" in content_type else resp.text.strip()
    if not text:
        raise ValueError(f"{url} contains no readable text")
    if len(text) > MAX_CHARS:
        logger.warning("Page text truncated from %d to %d characters", len(text), MAX_CHARS)
        text = text[:MAX_CHARS]
    return text
