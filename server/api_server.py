"""FastAPI application entry point for ragchat_bridge."""

import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.helper.errors import RAGChatError
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.messaging.MessagingClientManager import MessagingClientManager
from shared.ingestion.TextExtractor import TextExtractor
from shared.rag.RelevanceSearch import RelevanceSearch
from shared.store.Database import Database
from shared.store.DocumentStore import DocumentStore
from shared.store.ConversationStore import ConversationStore
from shared.store.ConfigStore import ConfigStore
from server.core.ChatService import ChatService
from server.core.ConversationAccumulator import ConversationAccumulator
from server.core.DocumentService import DocumentService
from server.core.WhatsAppService import WhatsAppService
from server.models.responses import HealthResponse
from server.routers.ChatRouter import router as chat_router
from server.routers.ConfigRouter import router as config_router
from server.routers.DocumentRouter import router as document_router
from server.routers.WhatsAppRouter import router as whatsapp_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")
helper_config = HelperConfig(logger=logging)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config

    database = Database(helper_config=helper_config)
    database.boot()
    llm_client = LLMClientManager(helper_config=helper_config).get_client()
    messaging_client = MessagingClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [llm_client, messaging_client]:
        await client.boot()
    logging.info("All clients booted successfully.")

    document_store = DocumentStore(helper_config=helper_config, database=database)
    conversation_store = ConversationStore(helper_config=helper_config, database=database)
    config_store = ConfigStore(helper_config=helper_config, database=database)
    text_extractor = TextExtractor(helper_config=helper_config)
    accumulator = ConversationAccumulator(helper_config=helper_config, conversation_store=conversation_store)

    app.state.database = database
    app.state.llm_client = llm_client
    app.state.messaging_client = messaging_client
    app.state.document_store = document_store
    app.state.conversation_store = conversation_store
    app.state.config_store = config_store
    app.state.text_extractor = text_extractor
    app.state.conversation_accumulator = accumulator
    app.state.document_service = DocumentService(
        helper_config=helper_config,
        document_store=document_store,
        text_extractor=text_extractor,
    )
    app.state.chat_service = ChatService(
        helper_config=helper_config,
        config_store=config_store,
        relevance_search=RelevanceSearch(helper_config=helper_config, document_store=document_store),
        llm_client=llm_client,
        accumulator=accumulator,
    )
    app.state.whatsapp_service = WhatsAppService(
        helper_config=helper_config,
        config_store=config_store,
        chat_service=app.state.chat_service,
        accumulator=accumulator,
        messaging_client=messaging_client,
    )

    await check_connections(database, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [llm_client, messaging_client]:
        await client.close()
    database.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="ragchat_bridge",
    description=(
        "Retrieval-augmented chat over uploaded documents. "
        "Questions arrive via POST /api/chat or the WhatsApp webhook, "
        "relevant documents are found by lexical search and passed to the language model as context."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=helper_config.get_list_val("CORS_ORIGINS", default=["http://localhost:5173", "http://localhost:5174"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RAGChatError)
async def handle_app_error(request: Request, exc: RAGChatError) -> JSONResponse:
    """Single mapping from the error taxonomy to HTTP responses."""
    if exc.status_code >= 500:
        logging.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    else:
        logging.warning("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message, "type": type(exc).__name__},
    )


app.include_router(config_router)
app.include_router(document_router)
app.include_router(chat_router)
app.include_router(whatsapp_router)


@app.get("/api/health", tags=["health"])
async def health(request: Request) -> HealthResponse:
    database_ok = await request.app.state.database.do_healthcheck()
    return HealthResponse(
        status="OK",
        database="Connected" if database_ok else "Disconnected",
        timestamp=datetime.now(timezone.utc),
    )


async def check_connections(database: Database, llm_client: LLMClientInterface) -> None:
    """Check connectivity to the backends on startup.

    Nothing here is fatal: the database may come up later, and the language
    model is only needed once a chat request arrives.
    """
    if not await database.do_healthcheck():
        logging.warning("Database is not reachable. Requests will fail until it is.")

    try:
        result: httpx.Response = await llm_client.do_healthcheck()
        if not result.is_success:
            logging.warning("LLM backend answered healthcheck with status %d.", result.status_code)
    except httpx.HTTPError as e:
        logging.warning("LLM backend is not reachable: %s", e)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting ragchat_bridge API Server v%s from root dir: %s on port %s...",
        app_version,
        helper_config.get_root_dir(),
        os.getenv("PORT", "3001"),
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
