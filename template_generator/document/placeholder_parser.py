"""
Placeholder detection in existing DOCX templates.
"""

from io import BytesIO
from typing import Any, Dict, Iterator, List, Tuple, Union

from docx import Document

from ..core.config import Config
from ..utils.logging_config import get_module_logger

DocxSource = Union[str, bytes, Any]

# Checked in order; the first keyword group found in the name wins.
_KIND_KEYWORDS = (
    ('date', ('date', 'time')),
    ('image', ('image', 'logo', 'photo')),
    ('table', ('table', 'list')),
    ('number', ('amount', 'price', 'total')),
    ('rich-text', ('html', 'rich')),
)


def load_document(source: DocxSource):
    """Open a DOCX from a path, raw bytes or a binary file object."""
    if isinstance(source, (bytes, bytearray)):
        return Document(BytesIO(bytes(source)))
    return Document(source)


def format_display_name(name: str) -> str:
    """``client_name`` -> ``Client Name``."""
    return ' '.join(word[:1].upper() + word[1:] for word in name.split('_'))


def detect_kind(name: str) -> str:
    lower = name.lower()
    for kind, keywords in _KIND_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return kind
    return 'text'


def iter_paragraphs(document) -> Iterator[Tuple[str, Any]]:
    """Yield ``(source, paragraph)`` for body paragraphs and table cell paragraphs."""
    for para_idx, paragraph in enumerate(document.paragraphs):
        yield f'paragraph_{para_idx}', paragraph
    for table_idx, table in enumerate(document.tables):
        for row in table.rows:
            for cell in row.cells:
                for paragraph in cell.paragraphs:
                    yield f'table_{table_idx}', paragraph


class PlaceholderParser:
    """Finds ``{name}`` placeholders in a Word document."""

    def __init__(self):
        self.placeholder_regex = Config.DOCX_PLACEHOLDER_REGEX
        self.logger = get_module_logger(__name__)

    def find_all_placeholders(self, source: DocxSource) -> List[Dict[str, Any]]:
        """
        Find all data placeholders in a DOCX document.

        ``{{system}}`` tokens are not reported: they resolve on their own.

        Args:
            source: Path, bytes or file object of the DOCX template

        Returns:
            Unique placeholders in first-seen order, each a dict with ``name``,
            ``display_name``, ``kind``, ``required``, ``source`` and ``occurrences``
        """
        document = load_document(source)
        found: Dict[str, Dict[str, Any]] = {}

        for source_name, paragraph in iter_paragraphs(document):
            for name in self.parse_text(paragraph.text):
                if name in found:
                    found[name]['occurrences'] += 1
                    continue
                found[name] = {
                    'name': name,
                    'display_name': format_display_name(name),
                    'kind': detect_kind(name),
                    'required': True,
                    'source': source_name,
                    'occurrences': 1,
                }
                self.logger.debug("   • Found placeholder {%s} in %s", name, source_name)

        self.logger.info("   ✅ Found %d placeholders", len(found))
        return list(found.values())

    def parse_text(self, text: str) -> List[str]:
        """Placeholder names appearing in a piece of text, in order."""
        return [match.group(1).strip() for match in self.placeholder_regex.finditer(text or '')
                if match.group(1).strip()]
