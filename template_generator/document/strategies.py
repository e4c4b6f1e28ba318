"""
Positioning strategies: turn grouped template elements into Word content nodes.

Each strategy produces detached ``w:p`` / ``w:tbl`` oxml elements that the
assembler later appends to a document body. Three modes are supported:

* relative - one paragraph per visual row, horizontal gaps rendered as spaces
* absolute - page-anchored DrawingML text boxes, followed by the relative flow
* hybrid   - one borderless fixed-layout table per visual row
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_LINE_SPACING
from docx.oxml import OxmlElement, parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.shared import Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph

from ..core.config import Config
from ..core.exceptions import StrategyRenderFailure
from ..core.models import (
    LayoutGroup,
    Margins,
    PaperFormat,
    PositioningMode,
    TemplateElement,
)
from ..utils.logging_config import get_strategy_logger
from .field_resolver import FieldResolver
from .layout_grouper import LayoutGrouper
from .units import px_to_emu, px_to_twips, twips_to_px

WPS_NAMESPACE = 'http://schemas.microsoft.com/office/word/2010/wordprocessingShape'

_HEX_COLOR = re.compile(r'^[0-9A-Fa-f]{6}$')

_ALIGNMENTS = {
    'left': WD_ALIGN_PARAGRAPH.LEFT,
    'center': WD_ALIGN_PARAGRAPH.CENTER,
    'right': WD_ALIGN_PARAGRAPH.RIGHT,
}

DataRow = Optional[Mapping[str, Any]]


def hex_color(value: Optional[str], default: Optional[str] = '000000') -> Optional[str]:
    """Normalise ``#RGB`` / ``#RRGGBB`` to ``RRGGBB``; ``default`` for anything else."""
    text = (value or '').strip().lstrip('#')
    if len(text) == 3:
        text = ''.join(ch * 2 for ch in text)
    if _HEX_COLOR.match(text):
        return text.upper()
    return default


def new_paragraph() -> Paragraph:
    """Create a paragraph that is not attached to any document yet."""
    return Paragraph(OxmlElement('w:p'), None)


def apply_run_style(run, styles) -> None:
    font = run.font
    font.name = styles.font_family
    font.size = Pt(styles.font_size)
    font.color.rgb = RGBColor.from_string(hex_color(styles.color))
    if styles.bold:
        font.bold = True
    if styles.italic:
        font.italic = True
    if styles.underline:
        font.underline = True


def add_styled_run(paragraph: Paragraph, text: str, element: TemplateElement):
    run = paragraph.add_run(text)
    apply_run_style(run, element.styles)
    return run


def alignment_for(text_align: str):
    return _ALIGNMENTS.get(text_align, WD_ALIGN_PARAGRAPH.LEFT)


def node_text(node) -> str:
    """Concatenated text of every ``w:t`` inside a content node."""
    return ''.join(t.text or '' for t in node.iter(qn('w:t')))


def build_headers_paragraph(headers: Sequence[str]):
    """Italic 10pt line listing the data table's column names."""
    paragraph = new_paragraph()
    run = paragraph.add_run(Config.HEADERS_LINE_PREFIX + ', '.join(headers))
    run.font.italic = True
    run.font.size = Pt(Config.HEADERS_FONT_SIZE)
    paragraph.paragraph_format.space_after = Twips(Config.HEADERS_SPACE_AFTER_TWIPS)
    return paragraph._p


def spaces_between(previous: TemplateElement, current: TemplateElement) -> int:
    """Number of spaces standing in for the horizontal gap between two elements."""
    gap = current.x - previous.right
    return min(Config.MAX_SPACES, max(1, int(gap // Config.PIXELS_PER_SPACE)))


class RelativeStrategy:
    """Flow layout: one paragraph per row, gaps approximated with spaces."""

    mode = PositioningMode.RELATIVE
    tolerance = Config.INLINE_GROUPING_TOLERANCE

    def __init__(self, resolver: FieldResolver):
        self.resolver = resolver
        self.logger = get_strategy_logger()

    def render(self, groups: List[LayoutGroup], data_row: DataRow, headers: Sequence[str],
               paper_format: PaperFormat, margins: Optional[Margins] = None) -> list:
        try:
            return [self.render_group(group, data_row, headers) for group in groups]
        except Exception as e:
            raise StrategyRenderFailure(self.mode.value, e) from e

    def render_group(self, group: LayoutGroup, data_row: DataRow, headers: Sequence[str]):
        paragraph = new_paragraph()
        previous = None
        for element in group:
            if previous is not None:
                paragraph.add_run(' ' * spaces_between(previous, element))
            value = self.resolver.resolve(element.field_name, data_row, headers)
            add_styled_run(paragraph, value, element)
            previous = element

        paragraph.alignment = alignment_for(group.elements[0].styles.text_align)
        paragraph.paragraph_format.space_after = Twips(Config.PARAGRAPH_SPACE_AFTER_TWIPS)
        return paragraph._p


class AbsoluteStrategy:
    """
    Page-anchored text boxes, one per element, positioned in EMU.

    Word processors do not all honour anchored shapes, so the relative
    rendering of the same rows is appended after the boxes. Elements whose box
    cannot be built are written as plain runs into a shared fallback paragraph.
    """

    mode = PositioningMode.ABSOLUTE
    tolerance = Config.INLINE_GROUPING_TOLERANCE

    def __init__(self, resolver: FieldResolver):
        self.resolver = resolver
        self.relative = RelativeStrategy(resolver)
        self.logger = get_strategy_logger()

    def render(self, groups: List[LayoutGroup], data_row: DataRow, headers: Sequence[str],
               paper_format: PaperFormat, margins: Optional[Margins] = None) -> list:
        try:
            anchors = new_paragraph()
            fallback = new_paragraph()
            degraded = 0
            shape_id = 0

            for group in groups:
                for element in group:
                    value = self.resolver.resolve(element.field_name, data_row, headers)
                    try:
                        if not self.fits(element, paper_format):
                            raise ValueError("box extends beyond the page")
                        anchors._p.append(self.build_text_box(element, value, shape_id + 1))
                        shape_id += 1
                    except Exception as e:
                        self.logger.warning("  > ⚠️ Element '%s' rendered inline: %s",
                                            element.field_name, e)
                        if degraded:
                            fallback.add_run(' ')
                        add_styled_run(fallback, value, element)
                        degraded += 1

            nodes = []
            if shape_id:
                nodes.append(anchors._p)
            if degraded:
                nodes.append(fallback._p)
            nodes.extend(self.relative.render(groups, data_row, headers, paper_format, margins))
            return nodes
        except StrategyRenderFailure:
            raise
        except Exception as e:
            raise StrategyRenderFailure(self.mode.value, e) from e

    @staticmethod
    def fits(element: TemplateElement, paper_format: PaperFormat) -> bool:
        return (element.x >= 0 and element.y >= 0
                and element.width > 0 and element.height > 0
                and element.right <= paper_format.width
                and element.bottom <= paper_format.height)

    def build_text_box(self, element: TemplateElement, text: str, shape_id: int):
        """Build a ``w:r`` holding a page-anchored text box with the element's value."""
        styles = element.styles
        cx, cy = px_to_emu(element.width), px_to_emu(element.height)

        background = hex_color(styles.background_color, default=None)
        fill = ('<a:solidFill><a:srgbClr val="%s"/></a:solidFill>' % background
                if background else '<a:noFill/>')
        if styles.border_width and styles.border_width > 0:
            line = '<a:ln w="%d"><a:solidFill><a:srgbClr val="%s"/></a:solidFill></a:ln>' % (
                px_to_emu(styles.border_width), hex_color(styles.border_color))
        else:
            line = '<a:ln><a:noFill/></a:ln>'

        xml = (
            '<w:r %s xmlns:wps="%s"><w:drawing>'
            '<wp:anchor distT="0" distB="0" distL="0" distR="0" simplePos="0" '
            'relativeHeight="%d" behindDoc="0" locked="0" layoutInCell="1" allowOverlap="1">'
            '<wp:simplePos x="0" y="0"/>'
            '<wp:positionH relativeFrom="page"><wp:posOffset>%d</wp:posOffset></wp:positionH>'
            '<wp:positionV relativeFrom="page"><wp:posOffset>%d</wp:posOffset></wp:positionV>'
            '<wp:extent cx="%d" cy="%d"/>'
            '<wp:effectExtent l="0" t="0" r="0" b="0"/>'
            '<wp:wrapNone/>'
            '<wp:docPr id="%d" name="Field %d"/>'
            '<wp:cNvGraphicFramePr/>'
            '<a:graphic><a:graphicData uri="%s">'
            '<wps:wsp><wps:cNvSpPr txBox="1"/>'
            '<wps:spPr><a:xfrm><a:off x="0" y="0"/><a:ext cx="%d" cy="%d"/></a:xfrm>'
            '<a:prstGeom prst="rect"><a:avLst/></a:prstGeom>%s%s</wps:spPr>'
            '<wps:txbx><w:txbxContent/></wps:txbx>'
            '<wps:bodyPr rot="0" vert="horz" wrap="square" lIns="0" tIns="0" rIns="0" bIns="0" anchor="t">'
            '<a:noAutofit/></wps:bodyPr>'
            '</wps:wsp></a:graphicData></a:graphic></wp:anchor></w:drawing></w:r>'
        ) % (
            nsdecls('w', 'wp', 'a'), WPS_NAMESPACE,
            shape_id,
            px_to_emu(element.x), px_to_emu(element.y),
            cx, cy,
            shape_id, shape_id,
            WPS_NAMESPACE,
            cx, cy, fill, line,
        )
        run = parse_xml(xml)

        paragraph = new_paragraph()
        paragraph.alignment = alignment_for(styles.text_align)
        paragraph.paragraph_format.space_after = Twips(0)
        add_styled_run(paragraph, text, element)
        run.find('.//' + qn('w:txbxContent')).append(paragraph._p)
        return run


@dataclass
class CellSpec:
    """One column of a hybrid row table; ``element`` is None for filler cells."""

    width: int
    element: Optional[TemplateElement] = None


class HybridStrategy:
    """One borderless fixed-layout table per row, columns sized from pixel widths."""

    mode = PositioningMode.HYBRID
    tolerance = Config.TABLE_GROUPING_TOLERANCE

    def __init__(self, resolver: FieldResolver):
        self.resolver = resolver
        self.logger = get_strategy_logger()

    def render(self, groups: List[LayoutGroup], data_row: DataRow, headers: Sequence[str],
               paper_format: PaperFormat, margins: Optional[Margins] = None) -> list:
        margins = margins or Margins()
        try:
            nodes = []
            previous_bottom = twips_to_px(margins.top)
            for group in groups:
                nodes.append(self.build_spacer(group.top - previous_bottom))
                nodes.append(self.build_table(group, data_row, headers, paper_format, margins))
                previous_bottom = group.bottom
            return nodes
        except Exception as e:
            raise StrategyRenderFailure(self.mode.value, e) from e

    @staticmethod
    def content_width(paper_format: PaperFormat, margins: Margins) -> int:
        width = px_to_twips(paper_format.width) - margins.left - margins.right
        if width <= 0:
            raise ValueError("No horizontal space left between the page margins")
        return width

    def compute_cells(self, group: LayoutGroup, paper_format: PaperFormat,
                      margins: Margins) -> List[CellSpec]:
        """
        Lay out the columns of one row table.

        Args:
            group: Row of elements, ordered left to right
            paper_format: Page size in pixels
            margins: Page margins in twips

        Returns:
            Cell specs whose widths (twips) sum exactly to the content width
        """
        content = self.content_width(paper_format, margins)
        scale = content / float(paper_format.width)
        minimum = Config.MIN_CELL_WIDTH_TWIPS

        raw: List[CellSpec] = []
        cursor = twips_to_px(margins.left)
        for element in group:
            gap = element.x - cursor
            if gap > 0:
                raw.append(CellSpec(gap * scale))
            raw.append(CellSpec(element.width * scale, element))
            cursor = max(cursor, element.right)

        cells = [CellSpec(max(minimum, int(round(c.width))), c.element) for c in raw]
        total = sum(c.width for c in cells)
        if total > content:
            factor = content / float(total)
            cells = [CellSpec(max(minimum, int(c.width * factor)), c.element) for c in cells]
            total = sum(c.width for c in cells)
            if total > content:
                raise ValueError("Row of %d element(s) does not fit the content width" % len(group))

        leftover = content - total
        if leftover >= minimum:
            cells.append(CellSpec(leftover))
        elif leftover > 0:
            cells[-1].width += leftover
        return cells

    def build_table(self, group: LayoutGroup, data_row: DataRow, headers: Sequence[str],
                    paper_format: PaperFormat, margins: Margins):
        cells = self.compute_cells(group, paper_format, margins)

        tbl = OxmlElement('w:tbl')
        tbl_pr = OxmlElement('w:tblPr')
        tbl_pr.append(_dxa('w:tblW', sum(c.width for c in cells)))
        tbl_pr.append(_borders('w:tblBorders', ('top', 'left', 'bottom', 'right', 'insideH', 'insideV')))
        layout = OxmlElement('w:tblLayout')
        layout.set(qn('w:type'), 'fixed')
        tbl_pr.append(layout)
        cell_margins = OxmlElement('w:tblCellMar')
        for side in ('top', 'left', 'bottom', 'right'):
            cell_margins.append(_dxa('w:' + side, 0))
        tbl_pr.append(cell_margins)
        tbl.append(tbl_pr)

        grid = OxmlElement('w:tblGrid')
        for cell in cells:
            col = OxmlElement('w:gridCol')
            col.set(qn('w:w'), str(cell.width))
            grid.append(col)
        tbl.append(grid)

        tr = OxmlElement('w:tr')
        tr_pr = OxmlElement('w:trPr')
        height = OxmlElement('w:trHeight')
        height.set(qn('w:val'), str(px_to_twips(group.height)))
        height.set(qn('w:hRule'), 'atLeast')
        tr_pr.append(height)
        tr.append(tr_pr)
        for cell in cells:
            tr.append(self.build_cell(cell, data_row, headers))
        tbl.append(tr)
        return tbl

    def build_cell(self, cell: CellSpec, data_row: DataRow, headers: Sequence[str]):
        tc = OxmlElement('w:tc')
        tc_pr = OxmlElement('w:tcPr')
        tc_pr.append(_dxa('w:tcW', cell.width))
        tc_pr.append(_borders('w:tcBorders', ('top', 'left', 'bottom', 'right')))
        paragraph = new_paragraph()
        paragraph.paragraph_format.space_after = Twips(0)

        if cell.element is not None:
            styles = cell.element.styles
            background = hex_color(styles.background_color, default=None)
            if background:
                shading = OxmlElement('w:shd')
                shading.set(qn('w:val'), 'clear')
                shading.set(qn('w:color'), 'auto')
                shading.set(qn('w:fill'), background)
                tc_pr.append(shading)
            value = self.resolver.resolve(cell.element.field_name, data_row, headers)
            add_styled_run(paragraph, value, cell.element)
            paragraph.alignment = alignment_for(styles.text_align)

        tc.append(tc_pr)
        tc.append(paragraph._p)
        return tc

    @staticmethod
    def build_spacer(gap_px: float):
        """Empty paragraph whose exact line height stands in for a vertical gap."""
        paragraph = new_paragraph()
        fmt = paragraph.paragraph_format
        fmt.space_before = Twips(0)
        fmt.space_after = Twips(0)
        fmt.line_spacing = Twips(max(Config.MIN_SPACER_HEIGHT_TWIPS, px_to_twips(gap_px)))
        fmt.line_spacing_rule = WD_LINE_SPACING.EXACTLY
        return paragraph._p


def _dxa(tag: str, twips: int):
    node = OxmlElement(tag)
    node.set(qn('w:w'), str(int(twips)))
    node.set(qn('w:type'), 'dxa')
    return node


def _borders(tag: str, sides: Sequence[str]):
    borders = OxmlElement(tag)
    for side in sides:
        border = OxmlElement('w:' + side)
        border.set(qn('w:val'), 'nil')
        borders.append(border)
    return borders


STRATEGIES = {
    PositioningMode.ABSOLUTE: AbsoluteStrategy,
    PositioningMode.RELATIVE: RelativeStrategy,
    PositioningMode.HYBRID: HybridStrategy,
}

FALLBACKS: Dict[PositioningMode, PositioningMode] = {
    PositioningMode.HYBRID: PositioningMode.RELATIVE,
    PositioningMode.ABSOLUTE: PositioningMode.RELATIVE,
}


def get_strategy(mode, resolver: FieldResolver):
    """Look up the strategy for a positioning mode (enum or its string value)."""
    return STRATEGIES[PositioningMode(mode)](resolver)


def render_with_fallback(mode, elements: Sequence[TemplateElement], data_row: DataRow,
                         headers: Sequence[str], paper_format: PaperFormat,
                         margins: Optional[Margins] = None,
                         resolver: Optional[FieldResolver] = None,
                         include_headers: bool = False) -> list:
    """
    Render elements with a strategy, falling back to the relative flow on failure.

    Each strategy groups the elements with its own tolerance, so a fallback
    produces exactly what the relative strategy would have produced.

    Returns:
        Content nodes in document order, headers line first when requested
    """
    logger = get_strategy_logger()
    resolver = resolver or FieldResolver()
    mode = PositioningMode(mode)

    while True:
        strategy = get_strategy(mode, resolver)
        groups = LayoutGrouper(strategy.tolerance).group(elements)
        logger.debug("  > %s positioning: %d element(s) in %d row(s)",
                     mode.value, len(elements), len(groups))
        try:
            nodes = strategy.render(groups, data_row, headers, paper_format, margins)
            break
        except StrategyRenderFailure as e:
            fallback = FALLBACKS.get(mode)
            if fallback is None:
                raise
            logger.warning("  > ⚠️ %s; falling back to %s positioning", e.message, fallback.value)
            mode = fallback

    if include_headers and headers:
        nodes.insert(0, build_headers_paragraph(headers))
    return nodes
