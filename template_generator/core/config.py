"""
Configuration constants for the template document generator.
"""

import os
import re
from typing import Dict, Any


class Config:
    """Central configuration for document generation, layout and delivery."""

    __version__ = "1.0.0"

    # Screen geometry. Templates are designed at 96 DPI: 1px = 0.75pt.
    TWIPS_PER_PIXEL = 15          # 0.75pt * 20 twips/pt
    EMU_PER_PIXEL = 9525          # 914400 EMU/inch / 96 px/inch

    # Layout grouping (pixels)
    INLINE_GROUPING_TOLERANCE = 10
    TABLE_GROUPING_TOLERANCE = 20

    # Relative strategy spacing
    PIXELS_PER_SPACE = 10
    MAX_SPACES = 20
    PARAGRAPH_SPACE_AFTER_TWIPS = 120

    # Hybrid strategy
    MIN_CELL_WIDTH_TWIPS = 144
    MIN_SPACER_HEIGHT_TWIPS = 20

    # Paper formats, pixel sizes at 96 DPI
    PAPER_FORMATS: Dict[str, Dict[str, Any]] = {
        'A4': {'name': 'A4', 'width': 794, 'height': 1123, 'widthMM': 210, 'heightMM': 297},
        'A5': {'name': 'A5', 'width': 559, 'height': 794, 'widthMM': 148, 'heightMM': 210},
        'Letter': {'name': 'Letter', 'width': 816, 'height': 1056, 'widthMM': 216, 'heightMM': 279},
        'A3': {'name': 'A3', 'width': 1123, 'height': 1587, 'widthMM': 297, 'heightMM': 420},
    }
    DEFAULT_PAPER_FORMAT = 'A4'

    # Page setup (twips). 720 twips = 0.5 inch
    DEFAULT_MARGINS = {'top': 720, 'right': 720, 'bottom': 720, 'left': 720}
    DEFAULT_ORIENTATION = 'portrait'
    DEFAULT_POSITIONING_MODE = 'hybrid'

    # Element defaults and limits
    DEFAULT_FONT_SIZE = 12
    DEFAULT_FONT_FAMILY = 'Arial'
    DEFAULT_COLOR = '#000000'
    MIN_ELEMENT_SIZE = 10
    MIN_FONT_SIZE = 6
    MAX_FONT_SIZE = 72
    TEXT_ALIGNMENTS = ('left', 'center', 'right')
    TEMPLATE_NAME_MAX_LENGTH = 50

    # Headers line
    HEADERS_LINE_PREFIX = 'Column headers: '
    HEADERS_FONT_SIZE = 10
    HEADERS_SPACE_AFTER_TWIPS = 240

    # Field resolution
    EMPTY_VALUE = '[empty]'
    SYSTEM_FIELD_REGEX = re.compile(r'^\{\{\s*([^{}]+?)\s*\}\}$')
    SYSTEM_FIELD_NAMES = (
        'currentDate',
        'currentTime',
        'currentDateTime',
        'pageNumber',
        'totalPages',
        'documentTitle',
        'author',
    )
    DEFAULT_DOCUMENT_TITLE = 'Document'
    DEFAULT_AUTHOR = 'User'
    MANUAL_MAPPING_PREFIX = '__manual__:'

    # Locale conventions used for numbers and dates
    LOCALE_FORMATS: Dict[str, Dict[str, str]] = {
        'ru-RU': {
            'decimal': ',',
            'group': '\u00a0',
            'date': '%d.%m.%Y',
            'time': '%H:%M:%S',
            'datetime': '%d.%m.%Y, %H:%M:%S',
        },
        'en-US': {
            'decimal': '.',
            'group': ',',
            'date': '%m/%d/%Y',
            'time': '%I:%M:%S %p',
            'datetime': '%m/%d/%Y, %I:%M:%S %p',
        },
        'de-DE': {
            'decimal': ',',
            'group': '.',
            'date': '%d.%m.%Y',
            'time': '%H:%M:%S',
            'datetime': '%d.%m.%Y, %H:%M:%S',
        },
    }
    DEFAULT_LOCALE = os.environ.get('TEMPLATE_GENERATOR_LOCALE', 'ru-RU')
    MAX_FRACTION_DIGITS = 3

    # DOCX placeholders inside an existing Word template: {name}
    DOCX_PLACEHOLDER_REGEX = re.compile(r'(?<!\{)\{([^{}]+)\}(?!\})')
    DOCX_SYSTEM_PLACEHOLDER_REGEX = re.compile(r'\{\{([^{}]+)\}\}')
    DOCX_TOKEN_REGEX = re.compile(r'\{\{([^{}]+)\}\}|\{([^{}]+)\}')

    # Output
    DOCX_MIME_TYPE = 'application/vnd.openxmlformats-officedocument.wordprocessingml.document'
    ZIP_MIME_TYPE = 'application/zip'
    SUPPORTED_TEMPLATE_EXTENSIONS = ['.json']
    SUPPORTED_DATA_EXTENSIONS = ['.json', '.csv']
    SUPPORTED_DOCX_EXTENSIONS = ['.docx']
    ARCHIVE_COMPRESSION_LEVEL = 6

    # Delivery
    DELIVERY_DELAY_SECONDS = 0.2
    RETRY_BASE_DELAY_SECONDS = 1.0
    DEFAULT_MAX_ATTEMPTS = 3

    # Size estimation
    BASE_DOCUMENT_SIZE_KB = 20
    AVERAGE_TEXT_LENGTH = 20
    BYTES_PER_CHAR = 2

    @classmethod
    def get_paper_format(cls, name: str) -> Dict[str, Any]:
        """Get a paper format definition by name (case-insensitive)."""
        for key, value in cls.PAPER_FORMATS.items():
            if key.lower() == name.lower():
                return dict(value)
        raise KeyError(f"Unknown paper format: {name}")

    @classmethod
    def get_locale_format(cls, locale: str) -> Dict[str, str]:
        """Get number/date conventions for a locale, falling back to the default."""
        return cls.LOCALE_FORMATS.get(locale) or cls.LOCALE_FORMATS['ru-RU']

    @classmethod
    def get_grouping_tolerance(cls, mode: str) -> int:
        """Get the row grouping tolerance used by a positioning mode."""
        if mode == 'hybrid':
            return cls.TABLE_GROUPING_TOLERANCE
        return cls.INLINE_GROUPING_TOLERANCE
