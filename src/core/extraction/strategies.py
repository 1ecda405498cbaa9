#!/usr/bin/env python3
"""
Extraction Strategies

Provides the ordered strategies used to recover structured records from
free-form upstream text using the Strategy pattern. Each strategy returns
None when it does not apply, so the extractor can move on to the next one.
"""

import re
import json
import logging
from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional

logger = logging.getLogger(__name__)

# Keys under which a response may wrap its list of records
CONTAINER_KEYS = ('articles', 'results', 'items', 'news')

# Keys that mark a bare object as a single article record
RECORD_HINT_KEYS = ('title', 'headline', 'url', 'link')


def parse_json(text: str) -> Optional[Any]:
    """Parse JSON, returning None instead of raising on malformed input."""
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def accept_document(document: Any, single_object: bool) -> Optional[List[Any]]:
    """
    Check a parsed document against the expected shape.

    In container mode the document must be an array, an object holding an
    array under a known container key, or a single article object. In
    single-object mode any JSON object is accepted as one record.
    """
    if single_object:
        if isinstance(document, dict):
            return [document]
        if isinstance(document, list) and document and isinstance(document[0], dict):
            return [document[0]]
        return None

    if isinstance(document, list):
        return document

    if isinstance(document, dict):
        for key in CONTAINER_KEYS:
            value = document.get(key)
            if isinstance(value, list):
                return value
        if any(key in document for key in RECORD_HINT_KEYS):
            return [document]

    return None


class ExtractionStrategy(ABC):
    """Abstract base class for extraction strategies."""

    @abstractmethod
    def get_name(self) -> str:
        """Get short name of this strategy, used in logs and reports."""
        pass

    @abstractmethod
    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        """
        Try to recover records from text.

        Args:
            text: Raw upstream response text
            single_object: Expect one object instead of a list of records

        Returns:
            List of records on success, None if this strategy does not apply
        """
        pass


class DirectJsonStrategy(ExtractionStrategy):
    """Parse the trimmed text as-is."""

    def get_name(self) -> str:
        return "direct"

    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        document = parse_json(text.strip())
        if document is None:
            return None
        return accept_document(document, single_object)


class FencedBlockStrategy(ExtractionStrategy):
    """Strip a markdown code fence and parse its body."""

    LEADING_FENCE = re.compile(r'^```[\w+-]*[ \t]*\n?')
    TRAILING_FENCE = re.compile(r'\n?```\s*$')
    EMBEDDED_BLOCK = re.compile(r'```[\w+-]*[ \t]*\n(.*?)```', re.DOTALL)

    def get_name(self) -> str:
        return "fenced"

    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        stripped = text.strip()

        if stripped.startswith('```'):
            body = self.LEADING_FENCE.sub('', stripped, count=1)
            body = self.TRAILING_FENCE.sub('', body, count=1)
        else:
            match = self.EMBEDDED_BLOCK.search(stripped)
            if not match:
                return None
            body = match.group(1)

        document = parse_json(body.strip())
        if document is None:
            return None
        return accept_document(document, single_object)


class BraceSliceStrategy(ExtractionStrategy):
    """Slice from the first opening brace to the last closing brace."""

    def get_name(self) -> str:
        return "brace_slice"

    def _slice(self, text: str, opening: str, closing: str) -> Optional[str]:
        start = text.find(opening)
        end = text.rfind(closing)
        if start == -1 or end == -1 or start >= end:
            return None
        return text[start:end + 1]

    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        candidates = []

        # A bare array wrapped in prose only slices cleanly on brackets
        first_bracket = text.find('[')
        first_brace = text.find('{')
        if not single_object and first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
            candidates.append(self._slice(text, '[', ']'))

        candidates.append(self._slice(text, '{', '}'))

        for candidate in candidates:
            if candidate is None:
                continue
            document = parse_json(candidate)
            if document is None:
                continue
            records = accept_document(document, single_object)
            if records is not None:
                return records

        return None


class LineScanStrategy(ExtractionStrategy):
    """Collect lines from the first '{' line to the first '}' line."""

    def get_name(self) -> str:
        return "line_scan"

    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        collected = []
        collecting = False

        for line in text.splitlines():
            trimmed = line.strip()
            if not collecting and trimmed.startswith('{'):
                collecting = True
            if collecting:
                collected.append(line)
                if trimmed.endswith('}'):
                    break

        if not collected:
            return None

        document = parse_json('\n'.join(collected))
        if document is None:
            return None
        return accept_document(document, single_object)


class MarkdownRecordStrategy(ExtractionStrategy):
    """
    Heuristic reader for markdown article lists.

    Runs only when the text has heading markers or bold labels. Sections
    start at headings, numbered items and title/headline labels; each
    section yields one record if it has a title or a url.
    """

    HEADING = re.compile(r'^\s{0,3}#{1,6}\s+(.*)$')
    NUMBERED = re.compile(r'^\s*\d+[.)]\s+(.*)$')
    BOLD_LABEL = re.compile(r'\*\*[^*\n]+\*\*\s*:|\*\*[^*\n]+:\*\*')
    LABEL = re.compile(
        r'^\s*(?:(?:[-*+]|\d+[.)])\s+)?\**\s*(title|headline|url|link|summary|description|source)\s*\**\s*:\s*\**\s*(.*?)\s*\**\s*$',
        re.IGNORECASE
    )
    LINK = re.compile(r'\[([^\]]+)\]\((https?://[^)\s]+)\)')
    BARE_URL = re.compile(r'https?://[^\s)>\]]+')

    FIELD_NAMES = {
        'title': 'title',
        'headline': 'title',
        'url': 'url',
        'link': 'url',
        'summary': 'summary',
        'description': 'summary',
        'source': 'source',
    }

    def get_name(self) -> str:
        return "markdown"

    def applies_to(self, text: str) -> bool:
        """True when the text shows heading or bold-label structure."""
        if self.BOLD_LABEL.search(text):
            return True
        return any(self.HEADING.match(line) for line in text.splitlines())

    def extract(self, text: str, single_object: bool = False) -> Optional[List[Any]]:
        if single_object or not self.applies_to(text):
            return None

        records = []
        for section in self._split_sections(text):
            record = self._read_section(section)
            if record.get('title') or record.get('url'):
                records.append(record)

        return records or None

    def _is_title_label(self, line: str) -> bool:
        label = self.LABEL.match(line)
        return bool(label and self.FIELD_NAMES[label.group(1).lower()] == 'title')

    def _split_sections(self, text: str) -> List[List[str]]:
        sections = []
        current = []
        has_title_label = False

        for line in text.splitlines():
            is_marker = bool(self.HEADING.match(line) or self.NUMBERED.match(line))
            is_title_label = self._is_title_label(line)

            # A title label opens a new record only once the current one has its own
            if current and (is_marker or (is_title_label and has_title_label)):
                sections.append(current)
                current = []
                has_title_label = False

            if line.strip():
                current.append(line)
                has_title_label = has_title_label or is_title_label

        if current:
            sections.append(current)
        return sections

    def _read_section(self, lines: List[str]) -> Dict[str, str]:
        record = {}
        heading_text = None
        first_link = None

        for index, line in enumerate(lines):
            link = self.LINK.search(line)
            label = self.LABEL.match(line)
            field = self.FIELD_NAMES[label.group(1).lower()] if label else None

            if link and first_link is None and field != 'source':
                first_link = link

            if label:
                value = label.group(2).strip()
                if link and field == 'url':
                    value = link.group(2)
                elif link and field == 'title':
                    record.setdefault('url', link.group(2))
                    value = link.group(1)
                elif link and field == 'source':
                    value = link.group(1)
                if value and field not in record:
                    record[field] = value
                continue

            if index == 0:
                marker = self.HEADING.match(line) or self.NUMBERED.match(line)
                if marker:
                    heading_text = marker.group(1).strip()

        if 'url' not in record:
            if first_link:
                record['url'] = first_link.group(2)
            else:
                for line in lines:
                    bare = self.BARE_URL.search(line)
                    if bare:
                        record['url'] = bare.group(0).rstrip('.,;')
                        break

        # Heading text only names a record that also carries a url
        if 'title' not in record and 'url' in record:
            if heading_text:
                title = self.LINK.sub(r'\1', heading_text).strip('*_ ')
            elif first_link:
                title = first_link.group(1).strip('*_ ')
            else:
                title = ''
            if title:
                record['title'] = title

        return record


def default_strategies() -> List[ExtractionStrategy]:
    """Strategies in the order they are attempted."""
    return [
        DirectJsonStrategy(),
        FencedBlockStrategy(),
        BraceSliceStrategy(),
        LineScanStrategy(),
        MarkdownRecordStrategy(),
    ]
