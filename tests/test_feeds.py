"""
Tests for corpus feeds: HTML parsing, fetch behaviour and seeding into the corpus index.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from src.core.config import FEED_USER_AGENT
from src.core.errors import FeedError
from src.core.feeds import (
    AMENDMENTS_11_27_URL, BILL_OF_RIGHTS_URL, CONSTITUTION_URL, FRCP_BASE_URL, FRCP_INDEX_URL,
    ConstitutionFeed, CorpusFeed, FrcpFeed, JsonFileFeed,
    parse_amendments, parse_constitution, parse_rule_links, parse_rule_page,
    roman_to_int, seed_corpus,
)


RULE_12_HTML = """
<html><body>
<h2 class="title node-title">Rule 12. Defenses and Objections: When and How Presented</h2>
<div class="field-item even" property="content:encoded">
  <p>(a) <strong>Time to Serve a Responsive Pleading.</strong></p>
  <p>Unless another time is specified by <a href="/uscode/text/28">statute</a>, the time is:</p>
  <ul>
    <li>within 21 days after being served;</li>
    <li><em>if</em> it has timely waived service, within 60 days.</li>
  </ul>
</div>
</body></html>
"""

INDEX_HTML = """
<ul>
  <li><a href="/rules/frcp/rule_1">Rule 1</a></li>
  <li><a href="/rules/frcp/rule_12">Rule 12</a></li>
  <li><a href="/rules/frcp/rule_1">Rule 1 (again)</a></li>
  <li><a href="/rules/frcp/rule_4.1">Rule 4.1</a></li>
</ul>
"""

CONSTITUTION_HTML = """
<html><body><div id="block-hamilton-content" class="block block-hamilton">
<h2>Preamble</h2>
<p>We the People of the United States, in Order to form a more perfect Union,</p>
<h2>Article I</h2>
<h3>Article. I.</h3>
<p>Section. 1.</p>
<p>All legislative Powers herein granted shall be vested in a Congress.</p>
<h3>Article. II.</h3>
<p>The executive Power shall be vested in a President.</p>
</div></body></html>
"""

BILL_OF_RIGHTS_HTML = """
<div id="block-hamilton-content" class="block block-hamilton">
<h3>Amendment I</h3>
<p>Congress shall make no law respecting an establishment of religion.</p>
<h3>Amendment IV</h3>
<p>The right of the people to be secure in their persons.</p>
</div>
"""

LATER_AMENDMENTS_HTML = """
<div id="block-hamilton-content" class="block block-hamilton">
<h3>Amendment 14</h3>
<p>All persons born or naturalized in the United States.</p>
<h3>Note</h3>
<p>Not an amendment.</p>
</div>
"""


def _response(text, status=200):
    response = MagicMock()
    response.text = text
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


def _session(pages):
    """A requests session double serving pages by URL; unknown URLs fail to connect."""
    session = MagicMock()
    session.headers = {}

    def get(url, timeout=None):
        if url not in pages:
            raise requests.ConnectionError(f"cannot reach {url}")
        page = pages[url]
        return page if isinstance(page, MagicMock) else _response(page)

    session.get.side_effect = get
    return session


class StaticFeed(CorpusFeed):
    name = "static"

    def __init__(self, items):
        self.items = items

    def fetch(self, on_progress=None):
        self._report(on_progress, f"Loaded {len(self.items)} items")
        return self.items


class BrokenFeed(CorpusFeed):
    name = "broken"

    def fetch(self, on_progress=None):
        raise FeedError("Could not parse rule URLs from the index page.")


class TestParsers:
    """Test HTML parsing helpers."""

    def test_rule_links_are_unique_and_ordered(self):
        assert parse_rule_links(INDEX_HTML) == ["/rules/frcp/rule_1", "/rules/frcp/rule_12", "/rules/frcp/rule_4.1"]

    def test_parse_rule_page(self):
        item = parse_rule_page(RULE_12_HTML)

        assert item["citation"] == "FRCP Rule 12"
        assert item["sectionId"] == "12"
        assert item["title"] == "Defenses and Objections: When and How Presented"
        assert item["source"] == "Rule"
        assert item["jurisdiction"] == "Federal"
        assert item["strategicNotes"].startswith("Rule 12 is a primary procedural gateway")

    def test_rule_text_keeps_light_markup(self):
        text = parse_rule_page(RULE_12_HTML)["text"]

        assert "**Time to Serve a Responsive Pleading.**" in text
        assert "by statute, the time is:" in text
        assert "- within 21 days after being served;" in text
        assert "- *if* it has timely waived service" in text
        assert "<" not in text

    def test_rule_without_strategic_note(self):
        html = RULE_12_HTML.replace("Rule 12.", "Rule 3.")
        item = parse_rule_page(html)
        assert item["citation"] == "FRCP Rule 3"
        assert item["strategicNotes"] is None

    def test_unparseable_rule_page(self):
        assert parse_rule_page("<html><body><h1>Page not found</h1></body></html>") is None

    def test_parse_constitution(self):
        items = parse_constitution(CONSTITUTION_HTML)

        assert [i["citation"] for i in items] == [
            "U.S. Const. preamble", "U.S. Const. ArticleI", "U.S. Const. ArticleII",
        ]
        assert items[0]["text"].startswith("We the People")
        assert "All legislative Powers" in items[1]["text"]
        assert "executive Power" not in items[1]["text"]
        assert items[2]["sectionId"] == "II"

    def test_parse_amendments_roman_and_arabic(self):
        items = parse_amendments(BILL_OF_RIGHTS_HTML) + parse_amendments(LATER_AMENDMENTS_HTML)

        assert [i["citation"] for i in items] == [
            "U.S. Const. amend. 1", "U.S. Const. amend. 4", "U.S. Const. amend. 14",
        ]
        assert items[1]["title"] == "Amendment IV"
        assert all(i["source"] == "Constitution" for i in items)

    def test_roman_to_int(self):
        assert roman_to_int("IV") == 4
        assert roman_to_int("XIV") == 14
        assert roman_to_int("XXVII") == 27


class TestFrcpFeed:
    """Test the FRCP feed against a fake session."""

    def test_fetch_skips_failed_rules(self):
        session = _session({
            FRCP_INDEX_URL: INDEX_HTML,
            f"{FRCP_BASE_URL}/rules/frcp/rule_12": RULE_12_HTML,
            f"{FRCP_BASE_URL}/rules/frcp/rule_4.1": "<html>no rule here</html>",
        })
        messages = []

        items = FrcpFeed(session=session).fetch(messages.append)

        assert [i["citation"] for i in items] == ["FRCP Rule 12"]
        assert any(m.startswith("- ERROR fetching /rules/frcp/rule_1") for m in messages)
        assert "- WARN: Failed to parse /rules/frcp/rule_4.1. Skipping." in messages

    def test_missing_index_links_is_fatal(self):
        session = _session({FRCP_INDEX_URL: "<html>maintenance</html>"})
        with pytest.raises(FeedError, match="Could not parse rule URLs"):
            FrcpFeed(session=session).fetch()

    def test_unreachable_index_is_fatal(self):
        with pytest.raises(FeedError):
            FrcpFeed(session=_session({})).fetch()

    def test_http_error_status_raises_feed_error(self):
        session = _session({FRCP_INDEX_URL: _response("", status=503)})
        with pytest.raises(FeedError, match="503"):
            FrcpFeed(session=session).fetch()

    def test_sets_user_agent_and_timeout(self):
        session = _session({FRCP_INDEX_URL: INDEX_HTML})
        feed = FrcpFeed(session=session, timeout=7)

        feed.get_html(FRCP_INDEX_URL)

        assert session.headers["User-Agent"] == FEED_USER_AGENT
        assert session.get.call_args.kwargs["timeout"] == 7


class TestConstitutionFeed:
    """Test the Constitution feed against a fake session."""

    def test_fetch_collects_all_pages(self):
        session = _session({
            CONSTITUTION_URL: CONSTITUTION_HTML,
            BILL_OF_RIGHTS_URL: BILL_OF_RIGHTS_HTML,
            AMENDMENTS_11_27_URL: LATER_AMENDMENTS_HTML,
        })

        items = ConstitutionFeed(session=session).fetch()

        assert len(items) == 6
        assert items[-1]["citation"] == "U.S. Const. amend. 14"

    def test_unreachable_page_is_fatal(self):
        session = _session({CONSTITUTION_URL: CONSTITUTION_HTML})
        with pytest.raises(FeedError):
            ConstitutionFeed(session=session).fetch()


class TestJsonFileFeed:
    """Test local JSON corpus files."""

    def test_list_file(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps([{"citation": "A"}]))
        assert JsonFileFeed(str(path)).fetch() == [{"citation": "A"}]

    def test_items_wrapper(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps({"items": [{"citation": "A"}]}))
        assert JsonFileFeed(str(path)).fetch() == [{"citation": "A"}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FeedError):
            JsonFileFeed(str(tmp_path / "missing.json")).fetch()

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text("{not json")
        with pytest.raises(FeedError):
            JsonFileFeed(str(path)).fetch()

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps({"rules": []}))
        with pytest.raises(FeedError, match="must hold a list"):
            JsonFileFeed(str(path)).fetch()


class TestSeedCorpus:
    """Test seeding a corpus index from a feed."""

    @pytest.mark.asyncio
    async def test_seed_and_reseed_is_idempotent(self, corpus):
        feed = StaticFeed([parse_rule_page(RULE_12_HTML)])
        messages = []

        first = await seed_corpus(corpus, feed, messages.append)
        second = await seed_corpus(corpus, feed)

        assert first.success and second.success
        assert first.count == 1
        assert first.report.added == 1
        assert second.report.updated == 1
        assert await corpus.count() == 1
        assert messages[0] == "Starting static seeding process..."
        assert "Loaded 1 items" in messages
        assert messages[-1] == "static seeding process completed successfully."

    @pytest.mark.asyncio
    async def test_seed_reports_rejected_items(self, corpus):
        feed = StaticFeed([
            parse_rule_page(RULE_12_HTML),
            {"citation": "", "source": "Rule", "jurisdiction": "Federal", "title": "t", "text": "x"},
        ])
        messages = []

        result = await seed_corpus(corpus, feed, messages.append)

        assert result.success
        assert result.count == 1
        assert len(result.report.failures) == 1
        assert any(m.startswith("- WARN: item 1") for m in messages)

    @pytest.mark.asyncio
    async def test_fatal_feed_error_is_reported(self, corpus):
        messages = []
        result = await seed_corpus(corpus, BrokenFeed(), messages.append)

        assert not result.success
        assert result.count == 0
        assert "Could not parse rule URLs" in result.error
        assert messages[-1].startswith("FATAL:")
        assert await corpus.count() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported(self, store, corpus):
        await store.open()
        await store.read(lambda conn: conn.execute("PRAGMA query_only = ON"))
        messages = []

        result = await seed_corpus(corpus, StaticFeed([parse_rule_page(RULE_12_HTML)]), messages.append)

        assert not result.success
        assert "write failed" in result.error
        assert messages[-1].startswith("FATAL:")

    @pytest.mark.asyncio
    async def test_empty_feed(self, corpus):
        result = await seed_corpus(corpus, StaticFeed([]))
        assert result.success
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_seed_from_json_file(self, corpus, tmp_path):
        path = tmp_path / "statutes.json"
        path.write_text(json.dumps([
            {"source": "Statute", "jurisdiction": "Federal", "citation": "15 U.S.C. § 1692g",
             "title": "Validation of debts", "text": "Within five days..."},
        ]))

        result = await seed_corpus(corpus, JsonFileFeed(str(path)))

        assert result.success
        assert (await corpus.get_by_citation("15 U.S.C. § 1692g")).title == "Validation of debts"
