from __future__ import annotations

import httpx
import pytest

from kbloader.acquisition.site_adaptors import (
    SiteAdaptors,
    clean_markdown,
    is_wikipedia_url,
    split_reader_preamble,
    to_github_raw,
    wikipedia_plain_url,
)


def _adaptors(handler, **kwargs) -> SiteAdaptors:
    return SiteAdaptors(httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)


def test_clean_markdown_strips_structure_markers() -> None:
    assert clean_markdown("# Title\n- **bold** and *it*\n* __strong__ _em_") == "Title\nbold and it\nstrong em"


def test_split_reader_preamble_extracts_title() -> None:
    text = "Title: Page\nURL Source: https://example.com/a\n\nMarkdown Content:\nBody text"

    assert split_reader_preamble(text) == ("Page", "Body text")
    assert split_reader_preamble("No preamble here") == ("", "No preamble here")


def test_github_blob_urls_map_to_raw_host() -> None:
    assert (
        to_github_raw("https://github.com/owner/repo/blob/main/docs/guide.md")
        == "https://raw.githubusercontent.com/owner/repo/main/docs/guide.md"
    )
    assert to_github_raw("https://github.com/owner/repo") is None
    assert to_github_raw("https://gitlab.com/owner/repo/blob/main/a.md") is None


def test_wikipedia_plain_endpoint_keeps_language_and_escapes_title() -> None:
    url = "https://de.wikipedia.org/wiki/Python_(Programmiersprache)"

    assert is_wikipedia_url(url)
    assert wikipedia_plain_url(url) == "https://de.wikipedia.org/api/rest_v1/page/plain/Python_%28Programmiersprache%29"
    assert wikipedia_plain_url("https://example.com/wiki/Python") is None
    assert not is_wikipedia_url("https://en.wikipedia.org/wiki/")


def test_wikipedia_match_requires_the_real_domain() -> None:
    assert not is_wikipedia_url("https://notwikipedia.org/wiki/Python")
    assert wikipedia_plain_url("https://notwikipedia.org/wiki/Python") is None
    assert wikipedia_plain_url("https://wikipedia.org/wiki/Python") == "https://en.wikipedia.org/api/rest_v1/page/plain/Python"
    assert wikipedia_plain_url("https://www.wikipedia.org/wiki/Python") == "https://en.wikipedia.org/api/rest_v1/page/plain/Python"
    assert wikipedia_plain_url("https://fr.m.wikipedia.org/wiki/Python").startswith("https://fr.wikipedia.org/")


def test_dynamic_site_matching_uses_host_suffix() -> None:
    adaptors = _adaptors(lambda request: httpx.Response(200))

    assert adaptors.is_dynamic_render_site("https://www.zhihu.com/question/1")
    assert adaptors.is_dynamic_render_site("https://mp.weixin.qq.com/s/abc")
    assert not adaptors.is_dynamic_render_site("https://notzhihu.com/")
    assert not adaptors.is_dynamic_render_site("https://example.com/zhihu.com")


def test_dynamic_site_list_is_injectable() -> None:
    adaptors = _adaptors(lambda request: httpx.Response(200), dynamic_sites=frozenset({"spa.example.org"}))

    assert adaptors.is_dynamic_render_site("https://app.spa.example.org/")
    assert not adaptors.is_dynamic_render_site("https://www.zhihu.com/")


def test_reader_base_url_must_be_http() -> None:
    with pytest.raises(ValueError, match="reader_base_url"):
        _adaptors(lambda request: httpx.Response(200), reader_base_url="ftp://reader")


def test_build_reader_url_keeps_query() -> None:
    adaptors = _adaptors(lambda request: httpx.Response(200))

    assert adaptors.build_reader_url("https://example.com/a?b=1") == "https://r.jina.ai/https://example.com/a?b=1"


def test_fetch_with_reader_returns_cleaned_markdown() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            text="Title: Page\nURL Source: https://example.com/a\n\nMarkdown Content:\n# Heading\n\nSome **bold** text",
        )

    result = _adaptors(handler).fetch_with_reader("https://example.com/a", "test-agent", 5.0)

    assert result.success
    assert result.title == "Page"
    assert result.content == "Heading\n\nSome bold text"
    assert seen[0].url.host == "r.jina.ai"
    assert seen[0].headers["X-Return-Format"] == "markdown"
    assert seen[0].headers["User-Agent"] == "test-agent"


def test_fetch_with_reader_rejects_short_error_pages() -> None:
    result = _adaptors(lambda request: httpx.Response(200, text="Error: 422 cannot render")).fetch_with_reader(
        "https://example.com/a", "agent", 5.0
    )

    assert not result.success
    assert result.error == "reader proxy could not render the page"


def test_fetch_with_reader_reports_http_errors() -> None:
    result = _adaptors(lambda request: httpx.Response(500)).fetch_with_reader("https://example.com/a", "agent", 5.0)

    assert not result.success
    assert result.error == "reader proxy failed: HTTP error: 500 Internal Server Error"


def test_fetch_wikipedia_plain_returns_none_on_failure() -> None:
    adaptors = _adaptors(lambda request: httpx.Response(404))

    assert adaptors.fetch_wikipedia_plain("https://en.wikipedia.org/wiki/Nothing", "agent", 5.0) is None
    assert adaptors.fetch_wikipedia_plain("https://example.com/page", "agent", 5.0) is None
