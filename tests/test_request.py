"""
Unit tests for the generation request boundary.
"""

import base64
import unittest

from template_generator.core.config import Config
from template_generator.core.exceptions import InvalidRequest
from template_generator.core.generator import DocumentGenerator
from template_generator.core.models import ExcelColumn, ManualValue
from template_generator.core.request import GenerationRequest, handle_request
from tests.test_config import TestUtils


class TestGenerationRequest(unittest.TestCase):
    """Test cases for request parsing."""

    def setUp(self):
        """Set up test fixtures."""
        self.payload = {
            'template': TestUtils.make_template().to_dict(),
            'excelData': TestUtils.make_table().to_dict(),
        }

    def test_top_level_overrides(self):
        payload = dict(self.payload, rowIndex=2, generateAll=True, options={'rowIndex': 1})
        request = GenerationRequest.from_dict(payload)
        self.assertEqual(request.options.row_index, 2)
        self.assertTrue(request.options.generate_all)
        self.assertEqual(len(request.data_table.rows), 3)

    def test_field_mappings(self):
        payload = dict(self.payload, fieldMappings={'client': 'Name', 'note': '__manual__:Hi'})
        request = GenerationRequest.from_dict(payload)
        self.assertEqual(request.field_mappings, {'client': ExcelColumn('Name'), 'note': ManualValue('Hi')})

    def test_malformed_payloads(self):
        for payload in (None, [], {'template': {}}, {'excelData': {'headers': [], 'rows': []}},
                        dict(self.payload, options={'positioningMode': 'diagonal'}),
                        dict(self.payload, docxTemplate='not base64!')):
            with self.assertRaises(InvalidRequest):
                GenerationRequest.from_dict(payload)


class TestHandleRequest(unittest.TestCase):
    """Test cases for handle_request."""

    def setUp(self):
        """Set up test fixtures."""
        self.generator = DocumentGenerator(clock=TestUtils.clock, locale='en-US')
        self.payload = {
            'template': TestUtils.make_template().to_dict(),
            'dataTable': TestUtils.make_table().to_dict(),
        }

    def test_single_document(self):
        payload = dict(self.payload, options={'fileName': 'invoice'})
        response = handle_request(payload, self.generator)
        self.assertEqual(response.status, 200)
        self.assertEqual(response.content_type, Config.DOCX_MIME_TYPE)
        self.assertEqual(response.headers['Content-Disposition'], 'attachment; filename="invoice.docx"')
        self.assertEqual(response.headers['Content-Length'], str(len(response.body)))
        self.assertIn('Anna', TestUtils.all_text(TestUtils.open_docx(response.body)))

    def test_batch(self):
        response = handle_request(dict(self.payload, generateAll=True), self.generator)
        self.assertEqual(response.status, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual([d['rowIndex'] for d in data['documents']], [0, 1, 2])
        self.assertTrue(data['documents'][0]['fileName'].endswith('.docx'))
        content = base64.b64decode(data['documents'][1]['buffer'])
        self.assertIn('Boris', TestUtils.all_text(TestUtils.open_docx(content)))

    def test_batch_merge(self):
        payload = dict(self.payload, generateAll=True, options={'merge': True})
        response = handle_request(payload, self.generator)
        self.assertEqual(response.content_type, Config.DOCX_MIME_TYPE)
        self.assertEqual(TestUtils.count_page_breaks(TestUtils.open_docx(response.body)), 2)

    def test_empty_table_merged_batch(self):
        payload = dict(self.payload, dataTable={'headers': ['Name'], 'rows': []},
                       generateAll=True, options={'merge': True})
        response = handle_request(payload, self.generator)
        self.assertEqual(response.status, 200)
        self.assertEqual(response.json()['documents'], [])

    def test_file_name_with_extension(self):
        payload = dict(self.payload, options={'fileName': 'report.docx'})
        response = handle_request(payload, self.generator)
        self.assertEqual(response.headers['Content-Disposition'], 'attachment; filename="report.docx"')

    def test_missing_row_is_a_client_error(self):
        response = handle_request(dict(self.payload, rowIndex=7), self.generator)
        self.assertEqual(response.status, 400)
        self.assertEqual(response.json(), {'error': 'Row with index 7 not found'})

    def test_invalid_payload_is_a_client_error(self):
        response = handle_request({'template': None}, self.generator)
        self.assertEqual(response.status, 400)
        self.assertIn('error', response.json())

    def test_generation_failure_is_a_server_error(self):
        template = TestUtils.make_template([TestUtils.make_element('Name', 10, 10, width=2)])
        response = handle_request(dict(self.payload, template=template.to_dict()), self.generator)
        self.assertEqual(response.status, 500)
        data = response.json()
        self.assertEqual(data['error'], 'Document generation failed')
        self.assertIn('smaller than 10px', data['details'])

    def test_docx_template_with_mappings(self):
        source = TestUtils.create_docx_bytes(['Dear {client}, {{currentDate}}', 'Note: {note}'])
        payload = {
            'docxTemplate': base64.b64encode(source).decode('ascii'),
            'dataTable': TestUtils.make_table().to_dict(),
            'fieldMappings': {'client': 'Name', 'note': '__manual__:Thank you'},
            'rowIndex': 1,
        }
        response = handle_request(payload, self.generator)
        self.assertEqual(response.status, 200)
        texts = TestUtils.paragraph_texts(TestUtils.open_docx(response.body))
        self.assertEqual(texts, ['Dear Boris, 01/15/2024', 'Note: Thank you'])

    def test_docx_template_batch(self):
        source = TestUtils.create_docx_bytes(['{Name} from {City}'])
        payload = {
            'docxTemplate': base64.b64encode(source).decode('ascii'),
            'dataTable': TestUtils.make_table().to_dict(),
            'generateAll': True,
        }
        data = handle_request(payload, self.generator).json()
        self.assertEqual(len(data['documents']), 3)
        content = base64.b64decode(data['documents'][2]['buffer'])
        self.assertEqual(TestUtils.paragraph_texts(TestUtils.open_docx(content)), ['Vera from Omsk'])


if __name__ == '__main__':
    unittest.main()
