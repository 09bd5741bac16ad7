"""
Corpus feeds - fetch legal reference material and funnel it into the corpus index.

Every feed returns plain dicts shaped like CorpusItem; seed_corpus() hands them to
CorpusIndex.add_items(), so re-seeding the same source updates rows in place.
"""

import asyncio
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests
from bs4 import BeautifulSoup, Tag

from util.logging import logger
from .config import FEED_REQUEST_TIMEOUT_SEC, FEED_USER_AGENT
from .corpus import CorpusIndex, IngestReport
from .errors import FeedError, StoreError
from .schema import CorpusSource, Jurisdiction

ProgressCallback = Callable[[str], None]

FRCP_BASE_URL = 'https://www.law.cornell.edu'
FRCP_INDEX_URL = f'{FRCP_BASE_URL}/rules/frcp'
CONSTITUTION_URL = 'https://www.archives.gov/founding-docs/constitution-transcript'
BILL_OF_RIGHTS_URL = 'https://www.archives.gov/founding-docs/bill-of-rights-transcript'
AMENDMENTS_11_27_URL = 'https://www.archives.gov/founding-docs/amendments-11-27'

RULE_LINK_PATTERN = re.compile(r'/rules/frcp/rule_\d+(?:\.\d+)?')
RULE_NUMBER_PATTERN = re.compile(r'Rule (\d+(?:\.\d+)?)')
ARTICLE_PATTERN = re.compile(r'^Article\.?\s*([IVXLCDM]+)\b')
AMENDMENT_PATTERN = re.compile(r'^Amendment\s+(\d+|[IVXLCDM]+)\b')

STRATEGIC_NOTES = {
    "12": "Rule 12 is a primary procedural gateway. Motions under 12(b)(1) for lack of subject-matter "
          "jurisdiction and 12(b)(6) for failure to state a claim are fundamental challenges to an "
          "opponent's case.",
    "8": "Rule 8 sets the general rules of pleading. A claim for relief must contain a short and plain "
         "statement of the grounds for the court's jurisdiction and the claim showing the pleader is "
         "entitled to relief.",
    "56": "Governs summary judgment. This is a motion made after discovery, arguing there is no genuine "
          "dispute as to any material fact and the movant is entitled to judgment as a matter of law.",
}

_ROMAN_VALUES = {'I': 1, 'V': 5, 'X': 10, 'L': 50, 'C': 100, 'D': 500, 'M': 1000}


def roman_to_int(numeral: str) -> int:
    total = 0
    previous = 0
    for char in reversed(numeral.upper()):
        value = _ROMAN_VALUES[char]
        total = total - value if value < previous else total + value
        previous = max(previous, value)
    return total


def _normalize_text(text: str) -> str:
    lines = [re.sub(r'[ \t\r\f\v]+', ' ', line).strip() for line in text.split('\n')]
    return re.sub(r'\n{3,}', '\n\n', '\n'.join(lines)).strip()


def html_to_text(element: Tag) -> str:
    """
    Flatten a rule body to light markdown: paragraphs become blank-line breaks,
    list items become '- ' lines, strong/em become **bold**/*italic*, links keep their text.
    """
    for string in element.find_all(string=True):
        string.replace_with(re.sub(r'\s+', ' ', str(string)))
    for link in element.find_all('a'):
        link.unwrap()
    for tag in element.find_all(['strong', 'b']):
        tag.replace_with(f"**{tag.get_text()}**")
    for tag in element.find_all(['em', 'i']):
        tag.replace_with(f"*{tag.get_text()}*")
    for paragraph in element.find_all('p'):
        paragraph.insert_before('\n\n')
    for item in element.find_all('li'):
        item.insert_before('\n- ')
    return _normalize_text(element.get_text())


# ---------------------------------------------------------------------------
# Parsers
# ---------------------------------------------------------------------------

def parse_rule_links(html: str) -> List[str]:
    """Unique rule page paths in first-seen order."""
    return list(dict.fromkeys(RULE_LINK_PATTERN.findall(html)))


def parse_rule_page(html: str) -> Optional[Dict[str, Any]]:
    """Parse one FRCP rule page; None when the page lacks a title or body."""
    soup = BeautifulSoup(html, 'html.parser')

    heading = soup.select_one('h2.title.node-title')
    body = soup.select_one('div.field-item.even[property="content:encoded"]')
    if heading is None or body is None:
        return None

    title_text = _normalize_text(heading.get_text(' '))
    number_match = RULE_NUMBER_PATTERN.search(title_text)
    rule_number = number_match.group(1) if number_match else 'Unknown'
    title = title_text.replace(f'Rule {rule_number}.', '', 1).strip()

    return {
        'source': CorpusSource.RULE.value,
        'jurisdiction': Jurisdiction.FEDERAL.value,
        'citation': f'FRCP Rule {rule_number}',
        'sectionId': rule_number,
        'title': title,
        'text': html_to_text(body),
        'strategicNotes': STRATEGIC_NOTES.get(rule_number),
    }


def _content_root(soup: BeautifulSoup) -> Tag:
    return soup.select_one('#block-hamilton-content') or soup.body or soup


def _section_text(heading: Tag) -> str:
    """Text of the siblings following a heading, up to the next h2/h3."""
    parts = []
    for sibling in heading.next_siblings:
        if isinstance(sibling, Tag):
            if sibling.name in ('h2', 'h3'):
                break
            text = sibling.get_text(' ', strip=True)
        else:
            text = str(sibling).strip()
        if text:
            parts.append(re.sub(r'\s+', ' ', text))
    return '\n\n'.join(parts)


def parse_constitution(html: str) -> List[Dict[str, Any]]:
    """Preamble and articles from the Constitution transcript page."""
    root = _content_root(BeautifulSoup(html, 'html.parser'))
    items = []

    for heading in root.find_all(['h2', 'h3']):
        heading_text = _normalize_text(heading.get_text(' '))

        if heading.name == 'h2' and heading_text.lower() == 'preamble':
            items.append({
                'source': CorpusSource.CONSTITUTION.value,
                'jurisdiction': Jurisdiction.FEDERAL.value,
                'citation': 'U.S. Const. preamble',
                'sectionId': 'Preamble',
                'title': 'Preamble',
                'text': _section_text(heading),
            })
            continue

        match = ARTICLE_PATTERN.match(heading_text)
        if heading.name == 'h3' and match:
            numeral = match.group(1)
            items.append({
                'source': CorpusSource.CONSTITUTION.value,
                'jurisdiction': Jurisdiction.FEDERAL.value,
                'citation': f'U.S. Const. Article{numeral}',
                'sectionId': numeral,
                'title': heading_text,
                'text': _section_text(heading),
            })

    return items


def parse_amendments(html: str) -> List[Dict[str, Any]]:
    """Amendments from a transcript page; roman or arabic headings both yield 'amend. N'."""
    root = _content_root(BeautifulSoup(html, 'html.parser'))
    items = []

    for heading in root.find_all('h3'):
        heading_text = _normalize_text(heading.get_text(' '))
        match = AMENDMENT_PATTERN.match(heading_text)
        if not match:
            continue
        label = match.group(1)
        number = str(int(label)) if label.isdigit() else str(roman_to_int(label))
        items.append({
            'source': CorpusSource.CONSTITUTION.value,
            'jurisdiction': Jurisdiction.FEDERAL.value,
            'citation': f'U.S. Const. amend. {number}',
            'sectionId': number,
            'title': heading_text,
            'text': _section_text(heading),
        })

    return items


# ---------------------------------------------------------------------------
# Feeds
# ---------------------------------------------------------------------------

class CorpusFeed(ABC):
    """A source of corpus items. fetch() raises FeedError when the whole source is unusable."""

    name = "feed"

    @abstractmethod
    def fetch(self, on_progress: ProgressCallback = None) -> List[Dict[str, Any]]:
        pass

    @staticmethod
    def _report(on_progress: Optional[ProgressCallback], message: str) -> None:
        if on_progress:
            on_progress(message)


class HttpFeed(CorpusFeed):
    """Base for feeds scraped over HTTP."""

    def __init__(self, session: requests.Session = None, timeout: int = None):
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": FEED_USER_AGENT})
        self.timeout = timeout or FEED_REQUEST_TIMEOUT_SEC

    def get_html(self, url: str) -> str:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedError(f"Failed to fetch {url}: {e}") from e
        return response.text


class FrcpFeed(HttpFeed):
    """Federal Rules of Civil Procedure from the Cornell LII rule pages."""

    name = "FRCP"

    def fetch(self, on_progress: ProgressCallback = None) -> List[Dict[str, Any]]:
        self._report(on_progress, f"Fetching rule index from {FRCP_INDEX_URL}...")
        index_html = self.get_html(FRCP_INDEX_URL)

        self._report(on_progress, "Parsing rule index...")
        rule_paths = parse_rule_links(index_html)
        if not rule_paths:
            raise FeedError("Could not parse rule URLs from the index page.")

        self._report(on_progress, f"Found {len(rule_paths)} unique rule links. Fetching content...")
        items = []
        for path in rule_paths:
            self._report(on_progress, f"Fetching {path}...")
            try:
                item = parse_rule_page(self.get_html(f"{FRCP_BASE_URL}{path}"))
            except FeedError as e:
                self._report(on_progress, f"- ERROR fetching {path}: {e}. Skipping.")
                continue
            if item is None:
                self._report(on_progress, f"- WARN: Failed to parse {path}. Skipping.")
                continue
            items.append(item)
        return items


class ConstitutionFeed(HttpFeed):
    """The U.S. Constitution: preamble, articles and all amendments from archives.gov."""

    name = "Constitution"

    def fetch(self, on_progress: ProgressCallback = None) -> List[Dict[str, Any]]:
        items = []

        self._report(on_progress, f"Fetching from {CONSTITUTION_URL}...")
        items.extend(parse_constitution(self.get_html(CONSTITUTION_URL)))

        for url in (BILL_OF_RIGHTS_URL, AMENDMENTS_11_27_URL):
            self._report(on_progress, f"Fetching from {url}...")
            parsed = parse_amendments(self.get_html(url))
            if not parsed:
                self._report(on_progress, f"- WARN: No amendments found at {url}.")
            items.extend(parsed)

        return items


class JsonFileFeed(CorpusFeed):
    """Corpus items from a local JSON file: a list of items or {"items": [...]}."""

    def __init__(self, path: str):
        self.path = Path(path)
        self.name = self.path.name

    def fetch(self, on_progress: ProgressCallback = None) -> List[Dict[str, Any]]:
        self._report(on_progress, f"Reading {self.path}...")
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FeedError(f"Cannot read corpus file {self.path}: {e}") from e

        if isinstance(data, dict):
            data = data.get("items")
        if not isinstance(data, list):
            raise FeedError(f"Corpus file {self.path} must hold a list of items")
        return data


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

@dataclass
class SeedResult:
    success: bool
    count: int
    error: Optional[str] = None
    report: Optional[IngestReport] = None


async def seed_corpus(index: CorpusIndex, feed: CorpusFeed,
                      on_progress: ProgressCallback = None) -> SeedResult:
    """
    Fetch a feed and upsert everything it yields.

    Fatal feed or storage failures are reported in the result rather than raised.
    Progress callbacks always run on the calling event loop.

    Returns:
        SeedResult with the number of committed (added + updated) items
    """
    loop = asyncio.get_running_loop()

    def progress(message: str) -> None:
        logger.log_feed_progress(feed.name, message)
        if on_progress:
            on_progress(message)

    def progress_from_worker(message: str) -> None:
        loop.call_soon_threadsafe(progress, message)

    progress(f"Starting {feed.name} seeding process...")
    try:
        items = await asyncio.to_thread(feed.fetch, progress_from_worker)

        report = IngestReport()
        if items:
            progress(f"Storing {len(items)} parsed items in the database...")
            report = await index.add_items(items)
            for failure in report.failures:
                progress(f"- WARN: item {failure.position} ({failure.citation}) rejected: {failure.reason}")
    except (FeedError, StoreError) as e:
        progress(f"FATAL: {e}")
        logger.log_operation("corpus.seed", "failed", {"feed": feed.name, "error": str(e)})
        return SeedResult(success=False, count=0, error=str(e))

    progress(f"{feed.name} seeding process completed successfully.")
    logger.log_operation("corpus.seed", "success", {"feed": feed.name, "count": report.committed})
    return SeedResult(success=True, count=report.committed, report=report)
