"""
Generation request boundary: JSON-shaped payloads in, DOCX or JSON responses out.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..document.docx_filler import DocxFiller
from ..utils.logging_config import get_generator_logger
from .config import Config
from .exceptions import InvalidRequest, RowNotFound, TemplateGeneratorError
from .generator import DocumentGenerator
from .models import DataTable, FieldMapping, GenerationOptions, Template, parse_mappings


@dataclass
class GenerationRequest:
    template: Optional[Template]
    data_table: DataTable
    options: GenerationOptions
    field_mappings: Dict[str, FieldMapping] = field(default_factory=dict)
    docx_template: Optional[bytes] = None

    @classmethod
    def from_dict(cls, payload: Any) -> 'GenerationRequest':
        """
        Parse a request payload.

        Accepted keys: ``template``, ``dataTable`` (or ``excelData``),
        ``options``, top-level ``rowIndex`` / ``generateAll`` overrides,
        ``fieldMappings`` and ``docxTemplate`` (base64 DOCX whose ``{name}``
        placeholders are filled instead of rendering ``template``).

        Raises:
            InvalidRequest: If the payload is malformed
        """
        if not isinstance(payload, dict):
            raise InvalidRequest("Request body must be a JSON object")

        table = payload.get('dataTable', payload.get('excelData'))
        if not isinstance(table, dict):
            raise InvalidRequest("Request is missing 'dataTable'")

        docx_template = payload.get('docxTemplate')
        if docx_template is None and not isinstance(payload.get('template'), dict):
            raise InvalidRequest("Request is missing 'template'")

        options = dict(payload.get('options') or {})
        for key in ('rowIndex', 'generateAll'):
            if key in payload:
                options[key] = payload[key]

        try:
            return cls(
                template=Template.from_dict(payload['template']) if payload.get('template') else None,
                data_table=DataTable.from_dict(table),
                options=GenerationOptions.from_dict(options),
                field_mappings=parse_mappings(payload.get('fieldMappings')),
                docx_template=base64.b64decode(docx_template, validate=True) if docx_template else None,
            )
        except (KeyError, TypeError, ValueError, binascii.Error) as e:
            raise InvalidRequest(f"Malformed request: {e}") from e


@dataclass
class GenerationResponse:
    status: int
    content_type: str
    headers: Dict[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body.decode('utf-8'))


def json_response(data: Dict[str, Any], status: int = 200) -> GenerationResponse:
    body = json.dumps(data, ensure_ascii=False).encode('utf-8')
    return GenerationResponse(status, 'application/json',
                              {'Content-Type': 'application/json',
                               'Content-Length': str(len(body))}, body)


def docx_response(content: bytes, file_name: Optional[str]) -> GenerationResponse:
    base = file_name or 'document'
    if base.lower().endswith('.docx'):
        base = base[:-len('.docx')]
    return GenerationResponse(200, Config.DOCX_MIME_TYPE, {
        'Content-Type': Config.DOCX_MIME_TYPE,
        'Content-Disposition': f'attachment; filename="{base or "document"}.docx"',
        'Content-Length': str(len(content)),
    }, content)


def handle_request(payload: Any, generator: Optional[DocumentGenerator] = None) -> GenerationResponse:
    """
    Serve one generation request.

    Single-row requests answer with the DOCX itself, batch requests with a JSON
    list of base64-encoded documents, merged batch requests with one DOCX.
    A missing row or a malformed payload yields 400, anything else 500.
    """
    logger = get_generator_logger()
    generator = generator or DocumentGenerator()

    try:
        request = GenerationRequest.from_dict(payload)
        options = request.options

        if request.docx_template is not None:
            result = _fill_docx_template(request, generator)
        else:
            result = generator.generate(request.template, request.data_table, options)

        if isinstance(result, bytes):
            return docx_response(result, options.file_name)

        documents = [
            {
                'rowIndex': document.row_index,
                'fileName': document.file_name,
                'buffer': base64.b64encode(document.content).decode('ascii'),
            }
            for document in result
        ]
        return json_response({
            'success': True,
            'documents': documents,
            'message': f"Generated {len(documents)} documents",
        })
    except (RowNotFound, InvalidRequest) as e:
        logger.warning("  > ⚠️ Rejected request: %s", e.message)
        return json_response({'error': e.message}, status=400)
    except Exception as e:
        logger.error("❌ Document generation failed: %s", e, exc_info=True)
        details = e.message if isinstance(e, TemplateGeneratorError) else str(e)
        return json_response({'error': 'Document generation failed', 'details': details}, status=500)


def _fill_docx_template(request: GenerationRequest, generator: DocumentGenerator):
    filler = DocxFiller(generator.resolver_for(request.options), generator.policy)
    options = request.options
    table = request.data_table
    name = request.template.name if request.template else options.file_name or 'document'

    if not options.generate_all:
        row = table.get_row(options.row_index)
        if row is None and options.row_index != 0:
            raise RowNotFound(options.row_index)
        return filler.fill(request.docx_template, row or {}, table.headers, request.field_mappings)

    documents = filler.fill_all(request.docx_template, table, request.field_mappings, name)
    if options.merge and documents:
        return generator.merge(documents)
    return documents
