"""
Document generation orchestration.

This module contains the DocumentGenerator class that drives generation from a
validated template and a data table to finished DOCX documents: single-row,
batch with per-row failure isolation, and batch merged into one document.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..delivery.manager import FilenamePolicy
from ..document.docx_assembler import DocxAssembler
from ..document.field_resolver import FieldResolver, SystemFieldTable, describe_fields
from ..document.strategies import render_with_fallback
from ..utils.logging_config import get_generator_logger
from ..utils.validators import Validators
from .config import Config
from .exceptions import (
    BatchGenerationError,
    GenerationCancelled,
    InvalidElementGeometry,
    InvalidTemplate,
    RowNotFound,
)
from .models import DataTable, GeneratedDocument, GenerationOptions, Template

ProgressCallback = Callable[[int, int, str], None]


class DocumentGenerator:
    """Main orchestrator class for document generation."""

    def __init__(self, resolver: Optional[FieldResolver] = None,
                 assembler: Optional[DocxAssembler] = None,
                 policy: Optional[FilenamePolicy] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 locale: str = Config.DEFAULT_LOCALE):
        """
        Initialize the generator.

        Args:
            resolver: Field resolver to use for every request. When omitted a
                resolver is built per request so that ``{{documentTitle}}`` and
                ``{{author}}`` follow the request options.
            assembler: Document assembler
            policy: Output file naming policy
            clock: Time source for system date fields and file names
            locale: Locale used for numbers and dates
        """
        self.resolver = resolver
        self.assembler = assembler or DocxAssembler()
        self.clock = clock or datetime.now
        self.policy = policy or FilenamePolicy(self.clock)
        self.locale = locale
        self.logger = get_generator_logger()

    def generate(self, template: Template, data_table: DataTable,
                 options: Optional[GenerationOptions] = None,
                 progress: Optional[ProgressCallback] = None,
                 cancel_event=None) -> Union[bytes, List[GeneratedDocument]]:
        """
        Run the generation selected by the options.

        Returns:
            DOCX bytes for single-row and merged generation, otherwise the list
            of generated documents
        """
        options = options or GenerationOptions()
        stages = 3 if options.generate_all and options.merge else 2

        self.logger.info("[Stage 1/%d: Validation]", stages)
        self.validate_template(template)
        self._check_data_table(data_table)
        self.logger.info("  > Template '%s' is valid (%d elements).", template.name, len(template.elements))

        self.logger.info("[Stage 2/%d: Generation]", stages)
        if not options.generate_all:
            content = self.generate_one(template, data_table, options)
            self.logger.info("  > Document generated (%.1f KB).", len(content) / 1024)
            return content

        documents = self.generate_all(template, data_table, options, progress, cancel_event)
        if not options.merge or not documents:
            return documents

        self.logger.info("[Stage 3/%d: Merge]", stages)
        return self.merge(documents)

    def validate_template(self, template: Template) -> None:
        """
        Validate the template before generation.

        Raises:
            InvalidElementGeometry: If an element has an invalid position or size
            InvalidTemplate: For any other structural problem
        """
        result = Validators.validate_template(template)
        for warning in result['warnings']:
            self.logger.warning("  > ⚠️ %s", warning)
        if result['geometry_errors']:
            for error in result['geometry_errors']:
                self.logger.error("  > ❌ %s", error)
            raise InvalidElementGeometry('; '.join(result['geometry_errors']))
        if not result['valid']:
            for error in result['errors']:
                self.logger.error("  > ❌ %s", error)
            raise InvalidTemplate('; '.join(result['errors']))

    def generate_one(self, template: Template, data_table: DataTable,
                     options: Optional[GenerationOptions] = None) -> bytes:
        """
        Generate the document for ``options.row_index``.

        Index 0 on an empty table renders the template with an empty row, so
        data fields show the empty sentinel.

        Raises:
            RowNotFound: If a non-zero row index has no row
        """
        options = options or GenerationOptions()
        row = data_table.get_row(options.row_index)
        if row is None:
            if options.row_index != 0:
                raise RowNotFound(options.row_index)
            self.logger.warning("  > ⚠️ Data table is empty; rendering the template with empty values.")
            row = {}

        self.logger.debug("  > Rendering row %d with %s positioning",
                          options.row_index + 1, options.positioning_mode.value)
        return self.render_row(template, data_table.headers, row, options)

    def generate_all(self, template: Template, data_table: DataTable,
                     options: Optional[GenerationOptions] = None,
                     progress: Optional[ProgressCallback] = None,
                     cancel_event=None) -> List[GeneratedDocument]:
        """
        Generate one document per data row, in row order.

        A row that fails is logged and skipped; the remaining rows are still
        generated. File names carry the original (1-based) row number.

        Args:
            template: Validated template
            data_table: Rows to render
            options: Generation options
            progress: Called as ``progress(current, total, message)`` after each row
            cancel_event: ``threading.Event`` checked before each row

        Returns:
            Generated documents, at most one per row

        Raises:
            BatchGenerationError: If rows were attempted and none succeeded
            GenerationCancelled: If ``cancel_event`` was set
        """
        options = options or GenerationOptions()
        total = len(data_table.rows)
        if not total:
            self.logger.warning("  > ⚠️ Data table has no rows. Nothing to generate.")
            return []

        self.logger.info("  > Generating %d document(s)...", total)
        documents: List[GeneratedDocument] = []
        errors: Dict[int, Exception] = {}

        for row_index, row in enumerate(data_table.rows):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.warning("  > ⚠️ Generation cancelled before row %d.", row_index + 1)
                raise GenerationCancelled(len(documents), total)

            try:
                content = self.render_row(template, data_table.headers, row, options)
            except Exception as e:
                self.logger.error("  > ❌ Row %d failed: %s", row_index + 1, e, exc_info=True)
                errors[row_index] = e
                message = f"Row {row_index + 1} skipped: {e}"
            else:
                documents.append(GeneratedDocument(
                    row_index=row_index,
                    file_name=self.policy.document_name(template.name, row_index),
                    content=content,
                ))
                message = f"Generated document {row_index + 1} of {total}"
                self.logger.debug("  > %s", message)

            if progress is not None:
                progress(row_index + 1, total, message)

        if not documents:
            raise BatchGenerationError(errors)

        if errors:
            self.logger.warning("  > ⚠️ %d of %d row(s) were skipped.", len(errors), total)
        self.logger.info("  > Generated %d document(s).", len(documents))
        return documents

    def render_row(self, template: Template, headers: List[str],
                   row: Mapping[str, Any], options: GenerationOptions) -> bytes:
        """Render one data row to DOCX bytes."""
        page = template.paper_format.oriented(options.page_orientation)
        self.assembler.validate_page_setup(page, options.margins)

        nodes = render_with_fallback(
            options.positioning_mode,
            template.elements,
            row,
            headers,
            page,
            margins=options.margins,
            resolver=self.resolver_for(options),
            include_headers=options.include_headers,
        )
        document = self.assembler.assemble(
            nodes,
            template.paper_format,
            orientation=options.page_orientation,
            margins=options.margins,
            title=options.title,
            author=options.author,
        )
        return self.assembler.to_bytes(document)

    def merge(self, documents: List[Union[GeneratedDocument, bytes]]) -> bytes:
        """Merge documents into one, separated by page breaks."""
        contents = [d.content if isinstance(d, GeneratedDocument) else d for d in documents]
        self.logger.info("  > Merging %d document(s)...", len(contents))
        return self.assembler.merge(contents)

    def get_generation_stats(self, template: Template, data_table: DataTable) -> Dict[str, Any]:
        return describe_fields(template, data_table)

    def resolver_for(self, options: GenerationOptions) -> FieldResolver:
        if self.resolver is not None:
            return self.resolver
        system_fields = SystemFieldTable.default(self.locale, options.title, options.author, self.clock)
        return FieldResolver(system_fields, self.locale)

    def _check_data_table(self, data_table: DataTable) -> None:
        result = Validators.validate_data_table(data_table)
        for message in result['errors'] + result['warnings']:
            self.logger.warning("  > ⚠️ %s", message)
