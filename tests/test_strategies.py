"""
Unit tests for the positioning strategies.
"""

import unittest
from unittest.mock import patch

from docx.oxml.ns import qn

from template_generator.core.exceptions import StrategyRenderFailure
from template_generator.core.models import Margins, PaperFormat
from template_generator.document.field_resolver import FieldResolver, SystemFieldTable
from template_generator.document.layout_grouper import LayoutGrouper
from template_generator.document.strategies import (
    AbsoluteStrategy,
    HybridStrategy,
    RelativeStrategy,
    get_strategy,
    node_text,
    render_with_fallback,
    spaces_between,
)
from template_generator.document.units import px_to_emu
from tests.test_config import TestConfig, TestUtils


class StrategyTestCase(unittest.TestCase):
    """Shared fixtures for strategy tests."""

    def setUp(self):
        """Set up test fixtures."""
        self.resolver = FieldResolver(SystemFieldTable.default('en-US', clock=TestUtils.clock), locale='en-US')
        self.paper = PaperFormat.from_name('A4')
        self.headers = TestConfig.HEADERS
        self.row = dict(TestConfig.ROWS[0])
        self.elements = [
            TestUtils.make_element('Name', 50, 100, bold=True),
            TestUtils.make_element('City', 200, 105),
            TestUtils.make_element('Amount', 50, 200, text_align='right'),
        ]

    def groups(self, tolerance=10):
        return LayoutGrouper(tolerance).group(self.elements)


class TestRelativeStrategy(StrategyTestCase):
    """Test cases for the paragraph flow strategy."""

    def test_spaces_between(self):
        left = TestUtils.make_element('A', 0, 0, width=100)
        self.assertEqual(spaces_between(left, TestUtils.make_element('B', 150, 0)), 5)
        self.assertEqual(spaces_between(left, TestUtils.make_element('B', 105, 0)), 1)
        self.assertEqual(spaces_between(left, TestUtils.make_element('B', 1000, 0)), 20)
        self.assertEqual(spaces_between(left, TestUtils.make_element('B', 50, 0)), 1)

    def test_one_paragraph_per_row(self):
        nodes = RelativeStrategy(self.resolver).render(self.groups(), self.row, self.headers, self.paper)
        self.assertEqual([n.tag for n in nodes], [qn('w:p'), qn('w:p')])
        self.assertEqual(node_text(nodes[0]), 'Anna' + ' ' * 5 + 'Moscow')
        self.assertEqual(node_text(nodes[1]), '1,234.5')

    def test_run_formatting_and_alignment(self):
        nodes = RelativeStrategy(self.resolver).render(self.groups(), self.row, self.headers, self.paper)
        first_run = nodes[0].find(qn('w:r'))
        self.assertIsNotNone(first_run.find('.//' + qn('w:b')))
        self.assertEqual(first_run.find('.//' + qn('w:sz')).get(qn('w:val')), '24')
        jc = nodes[1].find('.//' + qn('w:jc'))
        self.assertEqual(jc.get(qn('w:val')), 'right')

    def test_failure_is_wrapped(self):
        strategy = RelativeStrategy(self.resolver)
        with patch.object(strategy, 'render_group', side_effect=RuntimeError('boom')):
            with self.assertRaises(StrategyRenderFailure) as ctx:
                strategy.render(self.groups(), self.row, self.headers, self.paper)
        self.assertEqual(ctx.exception.strategy, 'relative')


class TestAbsoluteStrategy(StrategyTestCase):
    """Test cases for the anchored text box strategy."""

    def test_text_boxes_then_relative_flow(self):
        nodes = AbsoluteStrategy(self.resolver).render(self.groups(), self.row, self.headers, self.paper)
        anchors = list(nodes[0].iter(qn('wp:anchor')))
        self.assertEqual(len(anchors), 3)
        self.assertEqual(len(nodes), 1 + 2)

        offset = anchors[0].find(qn('wp:positionH')).find(qn('wp:posOffset'))
        self.assertEqual(int(offset.text), px_to_emu(50))
        extent = anchors[0].find(qn('wp:extent'))
        self.assertEqual(int(extent.get('cx')), px_to_emu(100))
        self.assertEqual(node_text(anchors[0]), 'Anna')
        self.assertEqual(node_text(nodes[1]), 'Anna' + ' ' * 5 + 'Moscow')

    def test_element_outside_page_degrades_to_fallback_paragraph(self):
        self.elements.append(TestUtils.make_element('City', 750, 400, width=100))
        with self.assertLogs('template_generator.strategy', level='WARNING'):
            nodes = AbsoluteStrategy(self.resolver).render(self.groups(), self.row, self.headers, self.paper)
        self.assertEqual(len(list(nodes[0].iter(qn('wp:anchor')))), 3)
        self.assertEqual(node_text(nodes[1]), 'Moscow')
        self.assertEqual(len(nodes), 2 + 3)

    def test_box_construction_error_degrades(self):
        strategy = AbsoluteStrategy(self.resolver)
        with patch.object(strategy, 'build_text_box', side_effect=ValueError('bad xml')):
            nodes = strategy.render(self.groups(), self.row, self.headers, self.paper)
        self.assertEqual(node_text(nodes[0]), 'Anna Moscow 1,234.5')

    def test_border_and_fill(self):
        element = TestUtils.make_element('Name', 10, 10, border_width=2, border_color='#FF0000',
                                         background_color='#00ff00')
        run = AbsoluteStrategy(self.resolver).build_text_box(element, 'x', 1)
        colors = [c.get('val') for c in run.iter('{http://schemas.openxmlformats.org/drawingml/2006/main}srgbClr')]
        self.assertEqual(colors, ['00FF00', 'FF0000'])


class TestHybridStrategy(StrategyTestCase):
    """Test cases for the table based strategy."""

    def test_cells_fill_content_width(self):
        strategy = HybridStrategy(self.resolver)
        cells = strategy.compute_cells(self.groups(20)[0], self.paper, Margins())
        self.assertEqual(sum(c.width for c in cells), 11910 - 1440)
        self.assertEqual([c.element.field_name if c.element else None for c in cells],
                         [None, 'Name', None, 'City', None])
        self.assertTrue(all(c.width >= 144 for c in cells))

    def test_overflow_is_scaled_back(self):
        wide = LayoutGrouper(20).group([
            TestUtils.make_element('A', 0, 0, width=794),
            TestUtils.make_element('B', 0, 5, width=794),
            TestUtils.make_element('C', 0, 10, width=794),
        ])
        cells = HybridStrategy(self.resolver).compute_cells(wide[0], self.paper, Margins())
        self.assertEqual(sum(c.width for c in cells), 10470)

    def test_tables_are_borderless_and_fixed(self):
        nodes = HybridStrategy(self.resolver).render(self.groups(20), self.row, self.headers, self.paper)
        self.assertEqual([n.tag for n in nodes], [qn('w:p'), qn('w:tbl'), qn('w:p'), qn('w:tbl')])
        tbl_pr = nodes[1].find(qn('w:tblPr'))
        self.assertEqual(tbl_pr.find(qn('w:tblLayout')).get(qn('w:type')), 'fixed')
        borders = tbl_pr.find(qn('w:tblBorders'))
        self.assertTrue(all(b.get(qn('w:val')) == 'nil' for b in borders))
        self.assertEqual(node_text(nodes[1]), 'AnnaMoscow')
        self.assertEqual(node_text(nodes[3]), '1,234.5')

    def test_row_height_and_spacer(self):
        nodes = HybridStrategy(self.resolver).render(self.groups(20), self.row, self.headers, self.paper)
        height = nodes[1].find('.//' + qn('w:trHeight'))
        self.assertEqual(height.get(qn('w:val')), '300')
        self.assertEqual(height.get(qn('w:hRule')), 'atLeast')
        spacing = nodes[2].find('.//' + qn('w:spacing'))
        # Gap between the rows: 200 - 125 = 75px
        self.assertEqual(spacing.get(qn('w:line')), '1125')
        self.assertEqual(spacing.get(qn('w:lineRule')), 'exact')

    def test_margins_without_room_fail(self):
        with self.assertRaises(StrategyRenderFailure):
            HybridStrategy(self.resolver).render(self.groups(20), self.row, self.headers, self.paper,
                                                 Margins(left=6000, right=6000))


class TestRenderWithFallback(StrategyTestCase):
    """Test cases for strategy selection and fallback."""

    def test_get_strategy(self):
        self.assertIsInstance(get_strategy('relative', self.resolver), RelativeStrategy)
        self.assertIsInstance(get_strategy('absolute', self.resolver), AbsoluteStrategy)
        self.assertIsInstance(get_strategy('hybrid', self.resolver), HybridStrategy)
        with self.assertRaises(ValueError):
            get_strategy('diagonal', self.resolver)

    def test_forced_hybrid_failure_matches_relative(self):
        # 15px apart: one row for tables, two rows for paragraphs
        self.elements[1].y = 115
        render = lambda mode: render_with_fallback(mode, self.elements, self.row, self.headers,
                                                   self.paper, resolver=self.resolver)
        expected = [node_text(n) for n in render('relative')]

        with patch.object(HybridStrategy, 'build_table', side_effect=RuntimeError('boom')):
            with self.assertLogs('template_generator.strategy', level='WARNING') as logs:
                nodes = render('hybrid')

        self.assertEqual([node_text(n) for n in nodes], expected)
        self.assertTrue(all(n.tag == qn('w:p') for n in nodes))
        self.assertIn('boom', '\n'.join(logs.output))

    def test_relative_failure_is_not_recovered(self):
        with patch.object(RelativeStrategy, 'render_group', side_effect=RuntimeError('boom')):
            with self.assertRaises(StrategyRenderFailure):
                render_with_fallback('relative', self.elements, self.row, self.headers,
                                     self.paper, resolver=self.resolver)

    def test_headers_line(self):
        nodes = render_with_fallback('relative', self.elements, self.row, self.headers, self.paper,
                                     resolver=self.resolver, include_headers=True)
        self.assertEqual(node_text(nodes[0]), 'Column headers: Name, City, Amount')
        self.assertIsNotNone(nodes[0].find('.//' + qn('w:i')))

        nodes = render_with_fallback('relative', self.elements, {}, [], self.paper,
                                     resolver=self.resolver, include_headers=True)
        self.assertEqual(node_text(nodes[0]), '[Name]' + ' ' * 5 + '[City]')


if __name__ == '__main__':
    unittest.main()
