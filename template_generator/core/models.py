"""
Data model for templates, data tables, field mappings and generation options.

Dictionaries exchanged with the template designer and the request boundary use
camelCase keys (``fieldName``, ``paperFormat``, ``widthMM``); the ``from_dict`` and
``to_dict`` helpers translate between the two.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .config import Config


class PositioningMode(str, Enum):
    ABSOLUTE = 'absolute'
    RELATIVE = 'relative'
    HYBRID = 'hybrid'


class PageOrientation(str, Enum):
    PORTRAIT = 'portrait'
    LANDSCAPE = 'landscape'


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    return _now()


@dataclass
class PaperFormat:
    """Named paper size. ``width``/``height`` are pixels at 96 DPI."""

    name: str
    width: float
    height: float
    width_mm: float
    height_mm: float

    @classmethod
    def from_name(cls, name: str) -> 'PaperFormat':
        return cls.from_dict(Config.get_paper_format(name))

    @classmethod
    def from_dict(cls, data: Union[str, Dict[str, Any]]) -> 'PaperFormat':
        if isinstance(data, str):
            return cls.from_name(data)
        return cls(
            name=data.get('name', 'Custom'),
            width=data['width'],
            height=data['height'],
            width_mm=data.get('widthMM', data.get('width_mm', 0)),
            height_mm=data.get('heightMM', data.get('height_mm', 0)),
        )

    def oriented(self, orientation: 'PageOrientation') -> 'PaperFormat':
        """Return the format with width/height swapped for landscape pages."""
        landscape = PageOrientation(orientation) == PageOrientation.LANDSCAPE
        if landscape != (self.width > self.height):
            return PaperFormat(self.name, self.height, self.width, self.height_mm, self.width_mm)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'width': self.width,
            'height': self.height,
            'widthMM': self.width_mm,
            'heightMM': self.height_mm,
        }


@dataclass
class ElementStyles:
    font_size: float = Config.DEFAULT_FONT_SIZE
    font_family: str = Config.DEFAULT_FONT_FAMILY
    color: str = Config.DEFAULT_COLOR
    bold: bool = False
    italic: bool = False
    underline: bool = False
    text_align: str = 'left'
    border_width: float = 0
    border_color: str = Config.DEFAULT_COLOR
    background_color: str = 'transparent'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ElementStyles':
        """Build styles from a flat element dict or its nested ``styles`` dict."""
        source = dict(data)
        source.update(data.get('styles') or {})
        bold = source.get('bold', False) or source.get('fontWeight') == 'bold'
        return cls(
            font_size=source.get('fontSize', Config.DEFAULT_FONT_SIZE),
            font_family=source.get('fontFamily') or Config.DEFAULT_FONT_FAMILY,
            color=source.get('color') or Config.DEFAULT_COLOR,
            bold=bool(bold),
            italic=bool(source.get('italic', False)),
            underline=bool(source.get('underline', False)),
            text_align=source.get('textAlign') or 'left',
            border_width=source.get('borderWidth', 0) or 0,
            border_color=source.get('borderColor') or Config.DEFAULT_COLOR,
            background_color=source.get('backgroundColor') or 'transparent',
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fontSize': self.font_size,
            'fontFamily': self.font_family,
            'color': self.color,
            'bold': self.bold,
            'italic': self.italic,
            'underline': self.underline,
            'textAlign': self.text_align,
            'borderWidth': self.border_width,
            'borderColor': self.border_color,
            'backgroundColor': self.background_color,
        }


@dataclass
class TemplateElement:
    """A field placed on the page. Geometry is in pixels, top-left origin."""

    field_name: str
    x: float
    y: float
    width: float
    height: float
    styles: ElementStyles = field(default_factory=ElementStyles)
    id: str = field(default_factory=_new_id)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TemplateElement':
        return cls(
            id=str(data.get('id') or _new_id()),
            field_name=data.get('fieldName', data.get('field_name', '')),
            x=data.get('x', 0),
            y=data.get('y', 0),
            width=data.get('width', 0),
            height=data.get('height', 0),
            styles=ElementStyles.from_dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'fieldName': self.field_name,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'styles': self.styles.to_dict(),
        }


@dataclass
class Template:
    name: str
    paper_format: PaperFormat
    elements: List[TemplateElement] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @classmethod
    def create(cls, name: str, elements: Optional[List[TemplateElement]] = None,
               paper_format: Optional[PaperFormat] = None) -> 'Template':
        """Create a new template owning copies of the given elements."""
        return cls(
            name=name.strip(),
            paper_format=paper_format or PaperFormat.from_name(Config.DEFAULT_PAPER_FORMAT),
            elements=[copy.deepcopy(element) for element in elements or []],
        )

    def with_elements(self, elements: List[TemplateElement]) -> 'Template':
        """Return a copy whose element list is replaced; the old elements are not shared."""
        clone = copy.deepcopy(self)
        clone.elements = [copy.deepcopy(element) for element in elements]
        clone.updated_at = _now()
        return clone

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Template':
        paper = data.get('paperFormat', data.get('paper_format', Config.DEFAULT_PAPER_FORMAT))
        return cls(
            id=str(data.get('id') or _new_id()),
            name=data.get('name', ''),
            paper_format=PaperFormat.from_dict(paper),
            elements=[TemplateElement.from_dict(e) for e in data.get('elements', [])],
            created_at=_parse_timestamp(data.get('createdAt')),
            updated_at=_parse_timestamp(data.get('updatedAt')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'paperFormat': self.paper_format.to_dict(),
            'elements': [e.to_dict() for e in self.elements],
            'createdAt': self.created_at.isoformat(),
            'updatedAt': self.updated_at.isoformat(),
        }


@dataclass
class DataTable:
    """Tabular data: unique column names and one mapping per row."""

    headers: List[str]
    rows: List[Dict[str, Any]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def get_row(self, index: int) -> Optional[Dict[str, Any]]:
        if 0 <= index < len(self.rows):
            return self.rows[index]
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DataTable':
        return cls(headers=list(data.get('headers', [])), rows=[dict(r) for r in data.get('rows', [])])

    def to_dict(self) -> Dict[str, Any]:
        return {'headers': list(self.headers), 'rows': [dict(r) for r in self.rows]}


@dataclass(frozen=True)
class ExcelColumn:
    column: str


@dataclass(frozen=True)
class ManualValue:
    value: str


@dataclass(frozen=True)
class Unmapped:
    pass


FieldMapping = Union[ExcelColumn, ManualValue, Unmapped]


def parse_mapping(raw: Any) -> FieldMapping:
    """
    Decode a mapping from its request-boundary form.

    Strings carrying the manual prefix become ``ManualValue``; other non-empty
    strings name a column. Dicts use the ``type`` key (excel / manual / none).
    """
    if isinstance(raw, (ExcelColumn, ManualValue, Unmapped)):
        return raw
    if isinstance(raw, dict):
        kind = raw.get('type', 'none')
        if kind == 'excel' and raw.get('excelColumn'):
            return ExcelColumn(raw['excelColumn'])
        if kind == 'manual':
            return ManualValue(str(raw.get('manualValue', '')))
        return Unmapped()
    if not raw:
        return Unmapped()
    text = str(raw)
    if text.startswith(Config.MANUAL_MAPPING_PREFIX):
        return ManualValue(text[len(Config.MANUAL_MAPPING_PREFIX):])
    return ExcelColumn(text)


def encode_mapping(mapping: FieldMapping) -> str:
    """Encode a mapping back to the request-boundary string form."""
    if isinstance(mapping, ExcelColumn):
        return mapping.column
    if isinstance(mapping, ManualValue):
        return f"{Config.MANUAL_MAPPING_PREFIX}{mapping.value}"
    return ''


def parse_mappings(raw: Optional[Dict[str, Any]]) -> Dict[str, FieldMapping]:
    return {name: parse_mapping(value) for name, value in (raw or {}).items()}


@dataclass
class Margins:
    """Page margins in twips."""

    top: int = Config.DEFAULT_MARGINS['top']
    right: int = Config.DEFAULT_MARGINS['right']
    bottom: int = Config.DEFAULT_MARGINS['bottom']
    left: int = Config.DEFAULT_MARGINS['left']

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Margins':
        if not data:
            return cls()
        defaults = Config.DEFAULT_MARGINS
        return cls(**{side: int(data.get(side, defaults[side])) for side in defaults})

    def to_dict(self) -> Dict[str, int]:
        return {'top': self.top, 'right': self.right, 'bottom': self.bottom, 'left': self.left}


@dataclass
class GenerationOptions:
    row_index: int = 0
    generate_all: bool = False
    include_headers: bool = False
    page_orientation: PageOrientation = PageOrientation.PORTRAIT
    positioning_mode: PositioningMode = PositioningMode.HYBRID
    margins: Margins = field(default_factory=Margins)
    merge: bool = False
    title: str = Config.DEFAULT_DOCUMENT_TITLE
    author: str = Config.DEFAULT_AUTHOR
    file_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'GenerationOptions':
        data = data or {}
        return cls(
            row_index=int(data.get('rowIndex') or 0),
            generate_all=bool(data.get('generateAll', False)),
            include_headers=bool(data.get('includeHeaders', False)),
            page_orientation=PageOrientation(data.get('pageOrientation') or Config.DEFAULT_ORIENTATION),
            positioning_mode=PositioningMode(data.get('positioningMode') or Config.DEFAULT_POSITIONING_MODE),
            margins=Margins.from_dict(data.get('margins')),
            merge=bool(data.get('merge', False)),
            title=data.get('documentTitle') or Config.DEFAULT_DOCUMENT_TITLE,
            author=data.get('author') or Config.DEFAULT_AUTHOR,
            file_name=data.get('fileName'),
        )


@dataclass
class LayoutGroup:
    """Elements judged to share one visual row, ordered left to right."""

    elements: List[TemplateElement]

    def __iter__(self):
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)

    @property
    def top(self) -> float:
        return min(e.y for e in self.elements)

    @property
    def bottom(self) -> float:
        return max(e.bottom for e in self.elements)

    @property
    def height(self) -> float:
        return max(e.height for e in self.elements)


@dataclass
class GeneratedDocument:
    """A successfully generated document and the source row it came from."""

    row_index: Optional[int]
    file_name: str
    content: bytes
