"""
Delivery of generated documents: file naming, zip archives, throttled
sequential output and retry with exponential backoff.
"""

import os
import time
import zipfile
from datetime import datetime
from io import BytesIO
from typing import Callable, List, Optional

from ..core.config import Config
from ..core.exceptions import ArchiveConstructionFailure, DeliveryFailure
from ..core.models import GeneratedDocument
from ..utils.logging_config import get_delivery_logger

Sink = Callable[[str, bytes], None]


class FilenamePolicy:
    """Builds output file names from the template name, row index and clock."""

    DEFAULT_BASE = 'document'

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or datetime.now

    @classmethod
    def base_name(cls, template_name: str) -> str:
        """Template name reduced to letters, digits and spaces."""
        base = ''.join(ch for ch in template_name or '' if ch.isalnum() or ch == ' ').strip()
        return base or cls.DEFAULT_BASE

    def timestamp(self) -> str:
        # 2024-01-15T10-30-00
        return self.clock().replace(tzinfo=None, microsecond=0).isoformat().replace(':', '-')

    def document_name(self, template_name: str, row_index: Optional[int] = None) -> str:
        base = self.base_name(template_name)
        if row_index is not None:
            return f"{base}_row_{row_index + 1}_{self.timestamp()}.docx"
        return f"{base}_{self.timestamp()}.docx"

    def archive_name(self, template_name: str) -> str:
        return f"{self.base_name(template_name)}_all_documents_{self.timestamp()}.zip"


class DirectorySink:
    """Writes delivered files into a directory."""

    def __init__(self, directory: str):
        self.directory = directory
        self.logger = get_delivery_logger()

    def __call__(self, filename: str, content: bytes) -> None:
        os.makedirs(self.directory, exist_ok=True)
        path = os.path.join(self.directory, filename)
        with open(path, 'wb') as f:
            f.write(content)
        self.logger.info("  > Saved %s (%.1f KB)", path, len(content) / 1024)


class DeliveryManager:
    """Hands documents to a sink as a single file, an archive or one by one."""

    def __init__(self, sink: Sink, policy: Optional[FilenamePolicy] = None,
                 delay: float = Config.DELIVERY_DELAY_SECONDS,
                 base_delay: float = Config.RETRY_BASE_DELAY_SECONDS,
                 max_attempts: int = Config.DEFAULT_MAX_ATTEMPTS,
                 sleep: Callable[[float], None] = time.sleep):
        self.sink = sink
        self.policy = policy or FilenamePolicy()
        self.delay = delay
        self.base_delay = base_delay
        self.max_attempts = max_attempts
        self.sleep = sleep
        self.logger = get_delivery_logger()

    def deliver(self, documents: List[GeneratedDocument], template_name: str,
                archive: bool = True) -> List[str]:
        """
        Deliver generated documents.

        A single document is delivered directly. Several documents go into one
        zip archive unless ``archive`` is False; if the archive cannot be built
        or delivered, the documents are delivered one by one instead.

        Args:
            documents: Documents in row order
            template_name: Name used for the archive file
            archive: Bundle several documents into a zip archive

        Returns:
            Names of the delivered files

        Raises:
            ValueError: If there is nothing to deliver
            DeliveryFailure: If an individual delivery exhausts its retries
        """
        if not documents:
            raise ValueError("No documents to deliver")

        if len(documents) == 1:
            document = documents[0]
            return [self.deliver_with_retry(document.content, document.file_name)]

        if archive:
            archive_name = self.policy.archive_name(template_name)
            try:
                content = self.build_archive(documents)
                self.deliver_with_retry(content, archive_name)
                self.logger.info("  > Delivered %d documents in %s", len(documents), archive_name)
                return [archive_name]
            except (ArchiveConstructionFailure, DeliveryFailure) as e:
                self.logger.warning("  > ⚠️ Archive delivery failed (%s). Delivering %d documents individually.",
                                    e.message, len(documents))

        return self._deliver_sequentially(documents)

    def build_archive(self, documents: List[GeneratedDocument]) -> bytes:
        """
        Zip documents (DEFLATE, level 6), members in the given order.

        Raises:
            ArchiveConstructionFailure: If the archive cannot be written
        """
        try:
            buffer = BytesIO()
            with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=Config.ARCHIVE_COMPRESSION_LEVEL) as archive:
                for document in documents:
                    archive.writestr(document.file_name, document.content)
            return buffer.getvalue()
        except Exception as e:
            raise ArchiveConstructionFailure(f"Could not build archive: {e}") from e

    def deliver_with_retry(self, content: bytes, filename: str,
                           max_attempts: Optional[int] = None) -> str:
        """
        Deliver one file, retrying with exponential backoff.

        The wait before retry ``n`` (1-based) is ``base_delay * 2 ** n``.

        Raises:
            DeliveryFailure: After ``max_attempts`` failed attempts
        """
        attempts = max_attempts if max_attempts is not None else self.max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        last_error = None
        for attempt in range(1, attempts + 1):
            try:
                self.sink(filename, content)
                return filename
            except Exception as e:
                last_error = e
                self.logger.warning("  > ⚠️ Delivery attempt %d/%d for %s failed: %s",
                                    attempt, attempts, filename, e)
                if attempt < attempts:
                    self.sleep(self.base_delay * 2 ** attempt)

        raise DeliveryFailure(filename, attempts, last_error) from last_error

    def _deliver_sequentially(self, documents: List[GeneratedDocument]) -> List[str]:
        delivered = []
        for idx, document in enumerate(documents):
            if idx:
                self.sleep(self.delay)
            delivered.append(self.deliver_with_retry(document.content, document.file_name))
        return delivered
