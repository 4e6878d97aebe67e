from shared.models.document import RankedDocument

NO_DOCUMENTS_SENTINEL = "Não há documentos disponíveis para consulta."
CONTEXT_HEADER = "Contexto dos documentos:"
MAX_CONTENT_CHARS = 1000
TRUNCATION_MARKER = "..."


def truncate_content(content: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    if len(content) > max_chars:
        return content[:max_chars] + TRUNCATION_MARKER
    return content


def build_context(documents: list[RankedDocument]) -> str:
    """Render ranked documents as one context block, in the order given.

    Every entry gets a 1-based label, the document name and at most
    MAX_CONTENT_CHARS characters of content. Duplicates are rendered as
    many times as they appear. An empty list yields NO_DOCUMENTS_SENTINEL.
    """
    if not documents:
        return NO_DOCUMENTS_SENTINEL

    context = f"{CONTEXT_HEADER}\n\n"
    for index, ranked in enumerate(documents, start=1):
        context += f"Documento {index}: {ranked.document.name}\n"
        context += f"Conteúdo: {truncate_content(ranked.document.content)}\n\n"
    return context
