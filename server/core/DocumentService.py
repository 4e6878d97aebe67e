import asyncio

from shared.helper.HelperConfig import HelperConfig
from shared.ingestion.TextExtractor import TextExtractor
from shared.models.document import Document, DocumentMetadata
from shared.store.DocumentStore import DocumentStore


class DocumentService:
    """Turns an upload (raw bytes + declared type) into a stored document."""

    def __init__(self, helper_config: HelperConfig, document_store: DocumentStore, text_extractor: TextExtractor) -> None:
        self.logging = helper_config.get_logger()
        self._store = document_store
        self._extractor = text_extractor

    async def do_ingest(self, file_name: str, content_type: str | None, raw: bytes) -> Document:
        """Validate, extract and persist an uploaded file.

        Raises:
            UploadError: Any of its subclasses when the file is rejected.
        """
        mime_type = self._extractor.resolve_mime_type(content_type, file_name)
        content = await asyncio.to_thread(self._extractor.extract_text, raw, mime_type, file_name)
        metadata = DocumentMetadata.from_content(content, size=len(raw))
        return await self._store.do_insert(file_name, mime_type, content, metadata)
