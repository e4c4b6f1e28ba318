"""
Test configuration and utilities for the template generator test suite.
"""

import os
import shutil
import tempfile
import unittest
from datetime import datetime
from io import BytesIO
from pathlib import Path

from docx import Document
from docx.oxml.ns import qn

from template_generator.core.models import (
    DataTable,
    ElementStyles,
    PaperFormat,
    Template,
    TemplateElement,
)


class TestConfig:
    """Configuration constants for tests."""

    FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0)
    HEADERS = ['Name', 'City', 'Amount']
    ROWS = [
        {'Name': 'Anna', 'City': 'Moscow', 'Amount': 1234.5},
        {'Name': 'Boris', 'City': 'Kazan', 'Amount': 10},
        {'Name': 'Vera', 'City': 'Omsk', 'Amount': None},
    ]


class TestUtils:
    """Builders for templates, tables and DOCX fixtures."""

    @staticmethod
    def clock():
        return TestConfig.FIXED_NOW

    @staticmethod
    def make_element(field_name, x, y, width=100, height=20, element_id=None, **styles):
        element = TemplateElement(
            field_name=field_name, x=x, y=y, width=width, height=height,
            styles=ElementStyles(**styles),
        )
        if element_id is not None:
            element.id = element_id
        return element

    @staticmethod
    def make_template(elements=None, name='Invoice', paper='A4'):
        if elements is None:
            elements = [
                TestUtils.make_element('Name', 50, 100),
                TestUtils.make_element('City', 200, 105),
                TestUtils.make_element('Amount', 50, 200),
            ]
        return Template.create(name, elements, PaperFormat.from_name(paper))

    @staticmethod
    def make_table(headers=None, rows=None):
        return DataTable(
            headers=list(TestConfig.HEADERS if headers is None else headers),
            rows=[dict(r) for r in (TestConfig.ROWS if rows is None else rows)],
        )

    @staticmethod
    def open_docx(content):
        return Document(BytesIO(content))

    @staticmethod
    def paragraph_texts(document):
        """Texts of the top-level body paragraphs, empty ones dropped."""
        return [p.text for p in document.paragraphs if p.text.strip()]

    @staticmethod
    def all_text(document):
        return ''.join(t.text or '' for t in document.element.body.iter(qn('w:t')))

    @staticmethod
    def count_page_breaks(document):
        return sum(1 for br in document.element.body.iter(qn('w:br'))
                   if br.get(qn('w:type')) == 'page')

    @staticmethod
    def create_docx_bytes(paragraphs=(), table_cells=None):
        """Build a DOCX with the given paragraphs and an optional table of cell texts."""
        document = Document()
        for text in paragraphs:
            document.add_paragraph(text)
        if table_cells:
            table = document.add_table(rows=len(table_cells), cols=len(table_cells[0]))
            for r, row in enumerate(table_cells):
                for c, text in enumerate(row):
                    table.cell(r, c).text = text
        buffer = BytesIO()
        document.save(buffer)
        return buffer.getvalue()


class BaseTestCase(unittest.TestCase):
    """Base test case with common functionality."""

    def setUp(self):
        """Set up common test fixtures."""
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        """Clean up test fixtures."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def create_temp_file(self, filename, content="test content"):
        """Create a file inside the temp directory."""
        path = os.path.join(self.temp_dir, filename)
        mode = 'wb' if isinstance(content, bytes) else 'w'
        with open(path, mode) as f:
            f.write(content)
        return path

    def assertFileExists(self, filepath):
        """Assert that a file exists."""
        self.assertTrue(os.path.exists(filepath), f"File does not exist: {filepath}")

    def assertFileNotExists(self, filepath):
        """Assert that a file does not exist."""
        self.assertFalse(os.path.exists(filepath), f"File exists but shouldn't: {filepath}")


def discover_and_run_tests():
    """Discover and run all tests in the tests directory."""
    test_dir = Path(__file__).parent
    loader = unittest.TestLoader()
    suite = loader.discover(str(test_dir), pattern='test_*.py', top_level_dir=str(test_dir.parent))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    discover_and_run_tests()
