"""Document writer.

Persists generated documents to a single fixed output path.
"""

import logging
import threading
from pathlib import Path

from tfportal.interfaces.template import BaseDocumentWriter, GeneratedDocument, PersistenceError

logger = logging.getLogger(__name__)


class FileDocumentWriter(BaseDocumentWriter):
    """Writes each document to the same file, replacing prior content.

    Writes are serialized through a lock so overlapping submissions never
    interleave; the last one to acquire the lock wins.
    """

    def __init__(self, output_path: str | Path = "main.tf", encoding: str = "utf-8") -> None:
        """Initialize the writer.

        Args:
            output_path: File every document is written to.
            encoding: Text encoding of the output file.
        """
        self._output_path = Path(output_path)
        self._encoding = encoding
        self._lock = threading.Lock()

    @property
    def output_path(self) -> Path:
        return self._output_path

    def write(self, document: GeneratedDocument) -> Path:
        """Create or truncate the output file and write the document in full.

        Args:
            document: The document to write.

        Returns:
            Path the document was written to.

        Raises:
            PersistenceError: If the file cannot be created or written.
        """
        path = self._output_path

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "w", encoding=self._encoding) as f:
                    f.write(document.text)
            except OSError as e:
                logger.error(f"Failed to write {path}: {e}")
                raise PersistenceError(f"Cannot write {path}: {e}") from e

        logger.info(f"Wrote {document.variant} document to {path} ({len(document.text)} characters)")
        return path
