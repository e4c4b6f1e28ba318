"""
Unit tests for the PlaceholderParser class.
"""

import unittest

from template_generator.document.placeholder_parser import (
    PlaceholderParser,
    detect_kind,
    format_display_name,
)
from tests.test_config import BaseTestCase, TestUtils


class TestPlaceholderParser(BaseTestCase):
    """Test cases for PlaceholderParser class."""

    def setUp(self):
        """Set up test fixtures."""
        super().setUp()
        self.parser = PlaceholderParser()

    def test_parse_text(self):
        """Single-brace names are found, system tokens are not."""
        self.assertEqual(self.parser.parse_text('{a} and {{currentDate}} then { c }'), ['a', 'c'])
        self.assertEqual(self.parser.parse_text('no placeholders { } here'), [])
        self.assertEqual(self.parser.parse_text(None), [])

    def test_find_all_placeholders(self):
        """Test discovery across paragraphs and table cells."""
        content = TestUtils.create_docx_bytes(
            ['Hello {client_name}, {{currentDate}}', 'Total: {total_amount} for {client_name}'],
            table_cells=[['{items_table}', 'plain']],
        )
        placeholders = self.parser.find_all_placeholders(content)

        self.assertEqual([p['name'] for p in placeholders], ['client_name', 'total_amount', 'items_table'])
        client = placeholders[0]
        self.assertEqual(client['display_name'], 'Client Name')
        self.assertEqual(client['kind'], 'text')
        self.assertEqual(client['occurrences'], 2)
        self.assertTrue(client['required'])
        self.assertTrue(client['source'].startswith('paragraph_'))
        self.assertEqual(placeholders[1]['kind'], 'number')
        self.assertEqual(placeholders[2]['source'], 'table_0')
        self.assertEqual(placeholders[2]['kind'], 'table')

    def test_find_all_placeholders_from_path(self):
        """Test that a file path is accepted as well as bytes."""
        path = self.create_temp_file('template.docx', TestUtils.create_docx_bytes(['{only}']))
        self.assertEqual([p['name'] for p in self.parser.find_all_placeholders(path)], ['only'])

    def test_document_without_placeholders(self):
        content = TestUtils.create_docx_bytes(['Nothing to fill', '{{author}}'])
        self.assertEqual(self.parser.find_all_placeholders(content), [])


class TestPlaceholderHelpers(unittest.TestCase):
    """Test cases for naming and kind detection."""

    def test_format_display_name(self):
        self.assertEqual(format_display_name('client_name'), 'Client Name')
        self.assertEqual(format_display_name('city'), 'City')

    def test_detect_kind(self):
        cases = {
            'invoice_date': 'date',
            'start_time': 'date',
            'company_logo': 'image',
            'items_list': 'table',
            'unit_price': 'number',
            'body_html': 'rich-text',
            'client_name': 'text',
        }
        for name, kind in cases.items():
            with self.subTest(name=name):
                self.assertEqual(detect_kind(name), kind)


if __name__ == '__main__':
    unittest.main()
