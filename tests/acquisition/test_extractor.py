from __future__ import annotations

from kbloader.acquisition.extractor import (
    clean_html,
    extract_main_content,
    html_to_text,
    remove_noise,
    score_region,
)

_ARTICLE_WORDS = " ".join(f"word{index}" for index in range(300))


def test_article_wins_over_navigation_and_ads() -> None:
    html = (
        "<html><body>"
        "<nav>Home About Contact Pricing</nav>"
        '<div class="ad">Buy cheap watches now</div>'
        f"<article><p>{_ARTICLE_WORDS}</p></article>"
        "</body></html>"
    )

    text = html_to_text(extract_main_content(html))

    assert text.startswith("word0 word1")
    assert text.endswith("word299")
    assert "Buy cheap watches" not in text
    assert "Home About" not in text


def test_noise_matches_class_words_not_substrings() -> None:
    html = (
        '<div class="sidebar-widgets">menu</div>'
        '<div class="comments">spam</div>'
        '<div id="share">share me</div>'
        '<div class="loading badge">kept text</div>'
        "<footer>copyright</footer>"
    )

    cleaned = remove_noise(html)

    assert "menu" not in cleaned
    assert "spam" not in cleaned
    assert "share me" not in cleaned
    assert "copyright" not in cleaned
    assert "kept text" in cleaned


def test_higher_weight_region_beats_generic_container() -> None:
    body = " ".join(["sentence"] * 40)
    html = f'<div class="content"><p>{body}</p></div><main><p>{body}</p></main>'

    main_score, _ = score_region(f"<p>{body}</p>", 95)
    generic_score, _ = score_region(f"<p>{body}</p>", 70)

    assert main_score > generic_score
    assert extract_main_content(html) == f"<p>{body}</p>"


def test_short_pages_fall_back_to_body() -> None:
    html = "<html><body><p>Tiny page</p><nav>menu</nav></body></html>"

    assert extract_main_content(html) == "<p>Tiny page</p>"


def test_html_to_text_maps_block_tags_to_line_breaks() -> None:
    html = "<h1>Title</h1><p>One &amp; two</p><ul><li>a</li><li>b</li></ul>"

    assert html_to_text(html) == "Title\n\nOne & two\n\n• a\n\n• b"


def test_html_to_text_flattens_table_cells_and_spaces() -> None:
    html = "<table><tr><td>a</td><td>b</td></tr></table><p>x    y</p><br><br><br><p>z</p>"

    assert html_to_text(html) == "a b\n\nx y\n\nz"


def test_clean_html_returns_title_content_and_meta() -> None:
    html = (
        "<html><head><title>Guide</title>"
        '<meta name="description" content="How to"></head>'
        f"<body><script>var x = 1;</script><article>{_ARTICLE_WORDS}</article></body></html>"
    )

    processed = clean_html(html)

    assert processed.title == "Guide"
    assert processed.meta.description == "How to"
    assert processed.content.startswith("word0")
    assert "var x" not in processed.content


def test_clean_html_without_extraction_keeps_whole_document_text() -> None:
    html = "<body><nav>Menu</nav><p>Body text</p></body>"

    processed = clean_html(html, extract_content=False)

    assert "Menu" in processed.content
    assert "Body text" in processed.content
