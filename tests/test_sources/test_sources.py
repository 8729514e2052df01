"""Tests for description sources: text, files and web pages."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from agent_wizard.models.enums import SourceType
from agent_wizard.sources import (
    MAX_CHARS,
    fetch_page,
    html_to_text,
    read_file,
    read_text,
    source_type_for,
)

_PAGE = """
<html>
  <head><title>Acme Service Desk</title><style>body { color: red; }</style></head>
  <body>
    <nav>Home | About</nav>
    <main><h1>What we do</h1><p>We resolve incidents within four hours.</p></main>
    <footer>Copyright Acme</footer>
  </body>
</html>
"""


def _transport(body: str, content_type: str = "text/html", status: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, headers={"content-type": content_type}, text=body)

    return httpx.MockTransport(handler)


class TestLocalSources:
    def test_read_text_strips(self) -> None:
        assert read_text("  We run a desk.\n") == "We run a desk."

    def test_read_file(self, tmp_path: Path) -> None:
        path = tmp_path / "org.md"
        path.write_text("# Acme\n\nWe run a desk.\n", encoding="utf-8")
        assert read_file(path) == "# Acme\n\nWe run a desk."

    def test_source_type_for(self) -> None:
        assert source_type_for(Path("model.xml")) == SourceType.XML
        assert source_type_for(Path("flow.BPMN")) == SourceType.XML
        assert source_type_for(Path("notes.txt")) == SourceType.FILE


class TestHtmlToText:
    def test_prefers_main_content_and_strips_chrome(self) -> None:
        text = html_to_text(_PAGE)
        assert text.startswith("Acme Service Desk")
        assert "We resolve incidents within four hours." in text
        assert "Home | About" not in text
        assert "Copyright" not in text
        assert "color: red" not in text

    def test_falls_back_to_body(self) -> None:
        text = html_to_text("<html><body><div>Plain body text</div></body></html>")
        assert text == "Plain body text"


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_fetch_html(self) -> None:
        text = await fetch_page("https://acme.test", transport=_transport(_PAGE))
        assert "We resolve incidents" in text

    @pytest.mark.asyncio
    async def test_fetch_plain_text(self) -> None:
        transport = _transport("  Plain description.  ", content_type="text/plain")
        assert await fetch_page("https://acme.test/a.txt", transport=transport) == (
            "Plain description."
        )

    @pytest.mark.asyncio
    async def test_fetch_truncates_long_pages(self) -> None:
        transport = _transport("x" * (MAX_CHARS + 10), content_type="text/plain")
        assert len(await fetch_page("https://acme.test", transport=transport)) == MAX_CHARS

    @pytest.mark.asyncio
    async def test_fetch_rejects_binary_content(self) -> None:
        transport = _transport("%PDF-1.7", content_type="application/pdf")
        with pytest.raises(ValueError, match="unsupported content type"):
            await fetch_page("https://acme.test/doc.pdf", transport=transport)

    @pytest.mark.asyncio
    async def test_fetch_raises_on_http_error(self) -> None:
        transport = _transport("missing", status=404)
        with pytest.raises(httpx.HTTPStatusError):
            await fetch_page("https://acme.test/missing", transport=transport)
