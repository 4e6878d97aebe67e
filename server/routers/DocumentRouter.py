from fastapi import APIRouter, File, Query, Request, UploadFile

from server.models.responses import DeleteResponse
from shared.models.document import DocumentStats, DocumentSummary, Document, DocumentsListResponse

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.post("/upload")
async def upload_document(request: Request, document: UploadFile = File(...)) -> DocumentSummary:
    """Extract the text of one uploaded file and store it.

    At most max_file_size + 1 bytes are read, so oversized uploads are
    rejected without buffering them whole. The spooled upload is closed on
    every path.

    Args:
        request (Request): FastAPI request (provides app.state.document_service).
        document (UploadFile): Multipart field "document".

    Returns:
        DocumentSummary: The stored document without its content.
    """
    document_service = request.app.state.document_service
    max_size = request.app.state.text_extractor.max_file_size
    try:
        raw = await document.read(max_size + 1)
        stored = await document_service.do_ingest(document.filename or "document", document.content_type, raw)
    finally:
        await document.close()
    return stored.to_summary()


@router.get("")
async def list_documents(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> DocumentsListResponse:
    return await request.app.state.document_store.do_list(page=page, page_size=limit)


@router.get("/stats/summary")
async def document_stats(request: Request) -> DocumentStats:
    return await request.app.state.document_store.do_stats()


@router.get("/{document_id}")
async def get_document(request: Request, document_id: str) -> Document:
    return await request.app.state.document_store.do_get(document_id)


@router.delete("/{document_id}")
async def delete_document(request: Request, document_id: str) -> DeleteResponse:
    summary = await request.app.state.document_store.do_delete(document_id)
    return DeleteResponse(id=summary.id, name=summary.name)
