"""
Field resolution: turns a placeholder name into the printable string for one data row.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from ..core.config import Config
from ..core.models import (
    DataTable,
    ExcelColumn,
    FieldMapping,
    ManualValue,
    Template,
    Unmapped,
)
from ..utils.logging_config import get_module_logger

Clock = Callable[[], datetime]


class SystemFieldTable(Mapping):
    """
    Read-only table of nullary formatters for ``{{name}}`` system fields.

    The table is built once and handed to the resolver; it cannot be mutated
    after construction.
    """

    def __init__(self, formatters: Mapping[str, Callable[[], str]]):
        self._formatters = MappingProxyType(dict(formatters))

    def __getitem__(self, name: str) -> Callable[[], str]:
        return self._formatters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._formatters)

    def __len__(self) -> int:
        return len(self._formatters)

    @classmethod
    def default(cls, locale: str = Config.DEFAULT_LOCALE,
                title: str = Config.DEFAULT_DOCUMENT_TITLE,
                author: str = Config.DEFAULT_AUTHOR,
                clock: Optional[Clock] = None) -> 'SystemFieldTable':
        """
        Build the standard system field table.

        ``pageNumber`` and ``totalPages`` are constant "1": real pagination is
        only known when a word processor lays the document out.
        """
        clock = clock or datetime.now
        fmt = Config.get_locale_format(locale)
        return cls({
            'currentDate': lambda: clock().strftime(fmt['date']),
            'currentTime': lambda: clock().strftime(fmt['time']),
            'currentDateTime': lambda: clock().strftime(fmt['datetime']),
            'pageNumber': lambda: '1',
            'totalPages': lambda: '1',
            'documentTitle': lambda: title,
            'author': lambda: author,
        })


def format_number(value: Any, locale: str = Config.DEFAULT_LOCALE) -> str:
    """Format a number with locale grouping and at most three fraction digits."""
    fmt = Config.get_locale_format(locale)
    number = Decimal(str(value))
    if number.is_nan():
        return 'NaN'
    if number.is_infinite():
        return '-∞' if number.is_signed() else '∞'
    quantum = Decimal(1).scaleb(-Config.MAX_FRACTION_DIGITS)
    # The default 28-digit context cannot quantize very large magnitudes
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, number.adjusted() + Config.MAX_FRACTION_DIGITS + 2)
        number = number.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = '-' if number < 0 else ''
    integer_part, _, fraction_part = f"{abs(number):f}".partition('.')
    fraction_part = fraction_part.rstrip('0')

    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)
    text = fmt['group'].join(groups)

    if fraction_part:
        text = f"{text}{fmt['decimal']}{fraction_part}"
    if text == '0':
        sign = ''
    return sign + text


def format_date(value: date, locale: str = Config.DEFAULT_LOCALE) -> str:
    return value.strftime(Config.get_locale_format(locale)['date'])


class FieldResolver:
    """Resolves system fields, data columns and mapped placeholders to text."""

    def __init__(self, system_fields: Optional[SystemFieldTable] = None,
                 locale: str = Config.DEFAULT_LOCALE):
        self.locale = locale
        self.system_fields = system_fields if system_fields is not None else SystemFieldTable.default(locale)
        self.logger = get_module_logger(__name__)

    @staticmethod
    def system_field_name(field_name: str) -> Optional[str]:
        """Return the inner name of a ``{{name}}`` field, or None for data fields."""
        match = Config.SYSTEM_FIELD_REGEX.match(field_name or '')
        return match.group(1) if match else None

    def resolve(self, field_name: str, data_row: Optional[Mapping[str, Any]],
                headers: Sequence[str]) -> str:
        """
        Resolve a template field for one data row.

        Args:
            field_name: Placeholder name, either ``{{system}}`` or a column name
            data_row: Column -> value mapping for the current row (may be empty)
            headers: Column names of the data table

        Returns:
            Printable text. Unknown fields come back as ``[field_name]``.
        """
        system_name = self.system_field_name(field_name)
        if system_name is not None:
            return self._resolve_system_field(system_name)

        if field_name in headers:
            value = (data_row or {}).get(field_name)
            return self.format_value(value)

        self.logger.debug("Unknown field '%s' left as placeholder", field_name)
        return f"[{field_name}]"

    def resolve_mapped(self, placeholder: str, data_row: Optional[Mapping[str, Any]],
                       headers: Sequence[str],
                       mappings: Optional[Mapping[str, FieldMapping]] = None) -> str:
        """
        Resolve a DOCX template placeholder through its field mapping.

        A mapping overrides plain header lookup: a column mapping reads that
        column, a manual value is returned verbatim and an unmapped placeholder
        becomes an empty string.
        """
        mapping = (mappings or {}).get(placeholder)
        if mapping is None:
            return self.resolve(placeholder, data_row, headers)
        if isinstance(mapping, ManualValue):
            return mapping.value
        if isinstance(mapping, ExcelColumn):
            return self.resolve(mapping.column, data_row, headers)
        if isinstance(mapping, Unmapped):
            return ''
        raise TypeError(f"Unsupported field mapping: {mapping!r}")

    def format_value(self, value: Any) -> str:
        if value is None:
            return Config.EMPTY_VALUE
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (int, float, Decimal)):
            if isinstance(value, float) and value != value:
                return 'NaN'
            return format_number(value, self.locale)
        if isinstance(value, (datetime, date)):
            return format_date(value, self.locale)
        return str(value)

    def _resolve_system_field(self, name: str) -> str:
        formatter = self.system_fields.get(name)
        if formatter is None:
            self.logger.debug("Unknown system field '{{%s}}'", name)
            return f"[{name}]"
        return formatter()


def describe_fields(template: Template, data_table: DataTable) -> Dict[str, Any]:
    """
    Summarise how a template's fields will resolve against a data table.

    Returns:
        Dict with element/field counts, rows to process, whether every field is
        known, and an estimated output size in KB
    """
    headers = data_table.headers
    system_fields: List[str] = []
    data_fields: List[str] = []
    unknown_fields: List[str] = []
    for element in template.elements:
        if FieldResolver.system_field_name(element.field_name) is not None:
            system_fields.append(element.field_name)
        elif element.field_name in headers:
            data_fields.append(element.field_name)
        else:
            unknown_fields.append(element.field_name)

    rows = len(data_table.rows)
    size_kb = Config.BASE_DOCUMENT_SIZE_KB + (
        len(template.elements) * Config.AVERAGE_TEXT_LENGTH * Config.BYTES_PER_CHAR * rows
    ) / 1024

    return {
        'total_elements': len(template.elements),
        'excel_fields': len(data_fields),
        'system_fields': len(system_fields),
        'unknown_fields': len(unknown_fields),
        'unknown_field_names': unknown_fields,
        'can_generate': not unknown_fields,
        'rows_to_process': rows,
        'estimated_size_kb': int(round(size_kb)),
    }
