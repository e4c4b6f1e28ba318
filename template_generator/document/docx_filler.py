"""
Fills ``{name}`` placeholders of an existing DOCX template with row data.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.config import Config
from ..core.exceptions import BatchGenerationError
from ..core.models import DataTable, FieldMapping, GeneratedDocument
from ..delivery.manager import FilenamePolicy
from ..utils.logging_config import get_docx_logger
from .docx_assembler import DocxAssembler
from .field_resolver import FieldResolver
from .placeholder_parser import DocxSource, iter_paragraphs, load_document


def read_source(source: DocxSource) -> bytes:
    """Read a DOCX source once so it can be reopened for every row."""
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, str):
        with open(source, 'rb') as f:
            return f.read()
    return source.read()


class DocxFiller:
    """Handles placeholder substitution in Word templates."""

    def __init__(self, resolver: Optional[FieldResolver] = None,
                 policy: Optional[FilenamePolicy] = None):
        self.resolver = resolver or FieldResolver()
        self.policy = policy or FilenamePolicy()
        self.token_regex = Config.DOCX_TOKEN_REGEX
        self.logger = get_docx_logger()

    def fill(self, source: DocxSource, data_row: Optional[Mapping[str, Any]],
             headers: Sequence[str],
             mappings: Optional[Mapping[str, FieldMapping]] = None) -> bytes:
        """
        Replace every placeholder in the template for one data row.

        Args:
            source: Path, bytes or file object of the DOCX template
            data_row: Column -> value mapping
            headers: Column names of the data table
            mappings: Placeholder name -> FieldMapping

        Returns:
            The filled document as bytes
        """
        document = load_document(source)
        replaced = 0
        for _, paragraph in iter_paragraphs(document):
            replaced += self._fill_paragraph(paragraph, data_row, headers, mappings)
        self.logger.debug("  > Replaced %d placeholder(s)", replaced)
        return DocxAssembler.to_bytes(document)

    def fill_all(self, source: DocxSource, data_table: DataTable,
                 mappings: Optional[Mapping[str, FieldMapping]] = None,
                 template_name: str = FilenamePolicy.DEFAULT_BASE) -> List[GeneratedDocument]:
        """
        Fill the template once per data row, skipping rows that fail.

        Raises:
            BatchGenerationError: If rows were attempted and none succeeded
        """
        if not data_table.rows:
            self.logger.warning("  > ⚠️ Data table is empty, nothing to fill.")
            return []

        content = read_source(source)
        documents: List[GeneratedDocument] = []
        errors: Dict[int, Exception] = {}
        for row_index, row in enumerate(data_table.rows):
            try:
                filled = self.fill(content, row, data_table.headers, mappings)
            except Exception as e:
                self.logger.error("  > ❌ Row %d could not be filled: %s", row_index + 1, e, exc_info=True)
                errors[row_index] = e
                continue
            documents.append(GeneratedDocument(
                row_index=row_index,
                file_name=self.policy.document_name(template_name, row_index),
                content=filled,
            ))

        if not documents:
            raise BatchGenerationError(errors)
        self.logger.info("  > Filled %d of %d row(s)", len(documents), len(data_table.rows))
        return documents

    def replace_tokens(self, text: str, data_row, headers, mappings) -> str:
        return self.token_regex.sub(
            lambda match: self._resolve_token(match, data_row, headers, mappings), text)

    def _resolve_token(self, match, data_row, headers, mappings) -> str:
        system_name, placeholder = match.group(1), match.group(2)
        if system_name is not None:
            return self.resolver.resolve('{{%s}}' % system_name.strip(), data_row, headers)
        return self.resolver.resolve_mapped(placeholder.strip(), data_row, headers, mappings)

    def _fill_paragraph(self, paragraph, data_row, headers, mappings) -> int:
        runs = paragraph.runs
        texts = [run.text for run in runs]
        count = len(self.token_regex.findall(''.join(texts)))
        if not count:
            return 0

        # Tokens inside a single run keep that run's formatting
        if count == sum(len(self.token_regex.findall(text)) for text in texts):
            for run, text in zip(runs, texts):
                if '{' in text:
                    run.text = self.replace_tokens(text, data_row, headers, mappings)
            return count

        # A token split across runs: collapse the original text into the first run
        runs[0].text = self.replace_tokens(''.join(texts), data_row, headers, mappings)
        for run in runs[1:]:
            run.text = ''
        return count
