"""
Builds Word documents from rendered content nodes and merges documents.
"""

import copy
from io import BytesIO
from typing import List, Optional, Sequence

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.text import WD_BREAK
from docx.oxml.ns import qn
from docx.shared import Twips

from ..core.config import Config
from ..core.exceptions import InvalidPageSetup
from ..core.models import Margins, PageOrientation, PaperFormat
from ..utils.logging_config import get_docx_logger
from .strategies import new_paragraph
from .units import px_to_twips


class DocxAssembler:
    """Wraps content nodes into a single-section document with page setup."""

    def __init__(self):
        self.logger = get_docx_logger()

    @staticmethod
    def validate_page_setup(paper_format: PaperFormat, margins: Margins) -> None:
        """
        Check that the page has a size and the margins leave room for content.

        Raises:
            InvalidPageSetup: On zero/negative dimensions or oversized margins
        """
        if paper_format.width <= 0 or paper_format.height <= 0:
            raise InvalidPageSetup(
                f"Paper format '{paper_format.name}' has invalid dimensions "
                f"{paper_format.width}x{paper_format.height}"
            )
        sides = margins.to_dict()
        negative = [side for side, value in sides.items() if value < 0]
        if negative:
            raise InvalidPageSetup(f"Negative page margins: {', '.join(negative)}")

        width, height = px_to_twips(paper_format.width), px_to_twips(paper_format.height)
        if margins.left + margins.right >= width:
            raise InvalidPageSetup("Left and right margins do not fit the page width")
        if margins.top + margins.bottom >= height:
            raise InvalidPageSetup("Top and bottom margins do not fit the page height")

    def assemble(self, nodes: Sequence, paper_format: PaperFormat,
                 orientation: PageOrientation = PageOrientation.PORTRAIT,
                 margins: Optional[Margins] = None,
                 title: Optional[str] = None, author: Optional[str] = None):
        """
        Create a document holding the given content nodes.

        Args:
            nodes: Detached ``w:p`` / ``w:tbl`` elements, in document order
            paper_format: Template paper format (portrait dimensions)
            orientation: Page orientation; landscape swaps width and height
            margins: Page margins in twips
            title: Core property title
            author: Core property author

        Returns:
            A python-docx ``Document``
        """
        margins = margins or Margins()
        page = paper_format.oriented(orientation)
        self.validate_page_setup(page, margins)

        document = Document()
        body = document.element.body
        body.clear_content()

        section = document.sections[0]
        section.orientation = (WD_ORIENT.LANDSCAPE
                               if PageOrientation(orientation) == PageOrientation.LANDSCAPE
                               else WD_ORIENT.PORTRAIT)
        section.page_width = Twips(px_to_twips(page.width))
        section.page_height = Twips(px_to_twips(page.height))
        section.top_margin = Twips(margins.top)
        section.right_margin = Twips(margins.right)
        section.bottom_margin = Twips(margins.bottom)
        section.left_margin = Twips(margins.left)

        for node in nodes:
            self._insert(body, node)

        properties = document.core_properties
        properties.title = title or Config.DEFAULT_DOCUMENT_TITLE
        properties.author = author or Config.DEFAULT_AUTHOR

        self.logger.debug("  > Assembled %s %s page with %d content node(s)",
                          page.name, PageOrientation(orientation).value, len(nodes))
        return document

    @staticmethod
    def to_bytes(document) -> bytes:
        buffer = BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    def merge(self, documents: List[bytes]) -> bytes:
        """
        Concatenate documents, separating them with page breaks.

        The first document's section (page size, orientation, margins) is kept
        for the result. Merging K documents inserts exactly K-1 page breaks.

        Raises:
            ValueError: If no documents are given
        """
        if not documents:
            raise ValueError("No documents to merge")
        if len(documents) == 1:
            return documents[0]

        master = Document(BytesIO(documents[0]))
        body = master.element.body
        for content in documents[1:]:
            self._insert(body, self._page_break())
            other = Document(BytesIO(content))
            for child in other.element.body.iterchildren():
                if child.tag == qn('w:sectPr'):
                    continue
                self._insert(body, copy.deepcopy(child))

        # Shape ids must stay unique across the merged body
        for shape_id, doc_pr in enumerate(body.iter(qn('wp:docPr')), 1):
            doc_pr.set('id', str(shape_id))
            doc_pr.set('name', f"Field {shape_id}")

        self.logger.info("  > Merged %d documents", len(documents))
        return self.to_bytes(master)

    @staticmethod
    def _page_break():
        paragraph = new_paragraph()
        paragraph.add_run().add_break(WD_BREAK.PAGE)
        return paragraph._p

    @staticmethod
    def _insert(body, node) -> None:
        sect_pr = body.sectPr
        if sect_pr is not None:
            sect_pr.addprevious(node)
        else:
            body.append(node)
