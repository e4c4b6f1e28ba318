"""
Unit tests for the background generation worker.
"""

import unittest

from template_generator.core.generator import DocumentGenerator
from template_generator.core.models import GenerationOptions
from template_generator.core.worker import GenerationWorker, MessageType
from tests.test_config import TestUtils


class TestGenerationWorker(unittest.TestCase):
    """Test cases for GenerationWorker."""

    def setUp(self):
        """Set up test fixtures."""
        self.worker = GenerationWorker(DocumentGenerator(clock=TestUtils.clock, locale='en-US'))
        self.template = TestUtils.make_template()
        self.table = TestUtils.make_table()

    def collect(self):
        messages = list(self.worker.messages(timeout=30))
        self.worker.join(timeout=30)
        return messages

    def test_batch_reports_progress_then_completes(self):
        self.worker.start(self.template, self.table, GenerationOptions(generate_all=True))
        messages = self.collect()

        self.assertEqual([m.type for m in messages],
                         [MessageType.PROGRESS] * 3 + [MessageType.COMPLETE])
        self.assertEqual([m.current for m in messages[:3]], [1, 2, 3])
        self.assertTrue(all(m.total == 3 for m in messages))
        self.assertEqual(len(messages[-1].payload), 3)

    def test_single_row_completes_with_bytes(self):
        self.worker.start(self.template, self.table)
        final = self.collect()[-1]
        self.assertEqual(final.type, MessageType.COMPLETE)
        self.assertIn('Anna', TestUtils.all_text(TestUtils.open_docx(final.payload)))

    def test_error_is_reported(self):
        template = TestUtils.make_template([TestUtils.make_element('Name', 10, 10, width=1)])
        with self.assertLogs('template_generator.generator', level='ERROR'):
            self.worker.start(template, self.table)
            final = self.collect()[-1]
        self.assertEqual(final.type, MessageType.ERROR)
        self.assertIn('smaller than', final.message)

    def test_cancel_before_first_row(self):
        self.worker.cancel()
        self.worker.start(self.template, self.table, GenerationOptions(generate_all=True))
        messages = self.collect()
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].type, MessageType.CANCELLED)
        self.assertEqual((messages[0].current, messages[0].total), (0, 3))

    def test_inputs_are_copied(self):
        self.worker.start(self.template, self.table, GenerationOptions(generate_all=True))
        self.table.rows.clear()
        final = self.collect()[-1]
        self.assertEqual(final.type, MessageType.COMPLETE)
        self.assertEqual(len(final.payload), 3)

    def test_cannot_start_twice(self):
        self.worker.start(self.template, self.table)
        with self.assertRaises(RuntimeError):
            self.worker.start(self.template, self.table)
        self.collect()


if __name__ == '__main__':
    unittest.main()
