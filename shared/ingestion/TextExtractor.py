"""Upload validation and plain-text extraction.

Works on raw bytes only: how the bytes arrived (spooled temp file, memory
buffer) is the HTTP layer's business.
"""

import io
import os

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import EmptyContentError, ExtractionError, FileTooLargeError, UnsupportedFileTypeError

PDF_MIME = "application/pdf"
TEXT_MIMES = ("text/plain", "text/markdown")
DEFAULT_ALLOWED_TYPES = [PDF_MIME, *TEXT_MIMES]
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB

EXTENSION_MIME_TYPES = {
    ".pdf": PDF_MIME,
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
}
GENERIC_MIME_TYPES = ("", "application/octet-stream")


class TextExtractor:
    """Checks an upload against the allow-list and size limit, then extracts its text."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.allowed_types: list[str] = helper_config.get_list_val("UPLOAD_ALLOWED_TYPES", default=DEFAULT_ALLOWED_TYPES)
        self.max_file_size = int(helper_config.get_number_val("UPLOAD_MAX_FILE_SIZE", default=DEFAULT_MAX_FILE_SIZE))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @staticmethod
    def resolve_mime_type(content_type: str | None, file_name: str = "") -> str:
        """Normalise the declared content type, guessing from the extension when it is generic."""
        mime = (content_type or "").split(";", 1)[0].strip().lower()
        if mime in GENERIC_MIME_TYPES:
            extension = os.path.splitext(file_name)[1].lower()
            mime = EXTENSION_MIME_TYPES.get(extension, mime)
        return mime

    def validate(self, mime_type: str, size: int) -> None:
        """Raises UnsupportedFileTypeError or FileTooLargeError."""
        if mime_type not in self.allowed_types:
            raise UnsupportedFileTypeError(mime_type, self.allowed_types)
        if size > self.max_file_size:
            raise FileTooLargeError(size, self.max_file_size)

    ##########################################
    ############## EXTRACTION ################
    ##########################################

    def extract_text(self, raw: bytes, mime_type: str, file_name: str = "") -> str:
        """Validate and extract the plain text of an upload.

        Args:
            raw (bytes): The complete file content.
            mime_type (str): Normalised MIME type (see resolve_mime_type).
            file_name (str): Original name, used in error messages.

        Returns:
            str: The extracted text, never blank.

        Raises:
            UnsupportedFileTypeError: If the type is not allowed or has no extractor.
            FileTooLargeError: If the file exceeds the configured size.
            ExtractionError: If the file cannot be parsed or decoded.
            EmptyContentError: If extraction produced only whitespace.
        """
        self.validate(mime_type, len(raw))

        if mime_type == PDF_MIME:
            content = self._extract_pdf(raw, file_name)
        elif mime_type in TEXT_MIMES:
            content = self._decode_text(raw, file_name)
        else:
            raise UnsupportedFileTypeError(mime_type, [PDF_MIME, *TEXT_MIMES])

        if not content.strip():
            raise EmptyContentError(file_name)
        self.logging.debug("Extracted %d chars from %r (%s)", len(content), file_name, mime_type)
        return content

    def _extract_pdf(self, raw: bytes, file_name: str) -> str:
        try:
            reader = PdfReader(io.BytesIO(raw))
            pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as e:
            raise ExtractionError(f"Could not extract text from PDF '{file_name}': {e}")
        except Exception as e:
            # malformed files also surface as TypeError, AttributeError or struct.error inside PyPDF2
            self.logging.warning("PDF parser failed on %r: %s: %s", file_name, type(e).__name__, e)
            raise ExtractionError(f"Could not extract text from PDF '{file_name}': {e}")
        return "\n".join(pages)

    @staticmethod
    def _decode_text(raw: bytes, file_name: str) -> str:
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ExtractionError(f"File '{file_name}' is not valid UTF-8 text: {e}")
