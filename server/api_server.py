"""FastAPI application entry point for the RAG chat backend."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.exceptions import BackendRequestError, ChatBackendError
from shared.clients.ClientInterface import ClientInterface
from shared.clients.blob.BlobClientManager import BlobClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from services.document_ingestion.IngestionService import IngestionService
from services.document_ingestion.TextExtractor import TextExtractor
from services.rag_chat.ChatService import ChatService
from services.rag_chat.ConversationService import ConversationService
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

GENERIC_SERVER_ERROR = "An unexpected server error occurred while processing the request."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    store_client = StoreClientManager(helper_config=app.state.helper_config).get_client()
    blob_client = BlobClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config, chunk_store=store_client).get_client()
    clients: list[ClientInterface] = [store_client, blob_client, llm_client, embed_client, rag_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info("All clients booted successfully.")

    await check_connections(store_client, blob_client, llm_client, embed_client, rag_client)

    vector_size, distance = await embed_client.do_fetch_embedding_vector_size()
    await rag_client.do_ensure_ready(vector_size=vector_size, distance=distance)

    app.state.conversation_service = ConversationService(
        helper_config=app.state.helper_config,
        store_client=store_client,
    )
    app.state.ingestion_service = IngestionService(
        helper_config=app.state.helper_config,
        store_client=store_client,
        blob_client=blob_client,
        embed_client=embed_client,
        rag_client=rag_client,
        text_extractor=TextExtractor(helper_config=app.state.helper_config, llm_client=llm_client),
    )
    app.state.chat_service = ChatService(
        helper_config=app.state.helper_config,
        store_client=store_client,
        embed_client=embed_client,
        rag_client=rag_client,
        llm_client=llm_client,
    )
    logging.info("RAG chat backend ready.", color="green")

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="ragchat_backend",
    description=(
        "Retrieval-augmented chat backend. Uploaded documents are extracted, chunked, "
        "embedded and indexed per conversation; chat messages are answered by a generative "
        "model grounded on the most similar chunks."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(document_router)


@app.exception_handler(ChatBackendError)
async def handle_chat_backend_error(request: Request, exc: ChatBackendError) -> JSONResponse:
    """Map service errors to {"error": code, "message": ...}.

    Server-side failures only expose the stable code and a generic message.
    """
    if exc.status_code >= 500:
        logging.error("%s %s failed with %s: %s", request.method, request.url.path, exc.error_code, exc.message)
        message = GENERIC_SERVER_ERROR
    else:
        logging.warning("%s %s rejected with %s: %s", request.method, request.url.path, exc.error_code, exc.message)
        message = exc.message
    return JSONResponse(status_code=exc.status_code, content={"error": exc.error_code, "message": message})


@app.exception_handler(httpx.HTTPError)
async def handle_transport_error(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    logging.error("%s %s failed, backend not reachable: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=BackendRequestError.status_code,
        content={"error": BackendRequestError.error_code, "message": GENERIC_SERVER_ERROR},
    )


async def check_connections(
    store_client: ClientInterface,
    blob_client: ClientInterface,
    llm_client: ClientInterface,
    embed_client: ClientInterface,
    rag_client: ClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Blob storage and LLM failures are non-fatal (uploads or answers fail later,
    but the server stays up). Store, embedding and vector index failures are
    fatal: no conversation can be served without them.

    Raises:
        ChatBackendError: If a critical backend is not reachable.
    """
    for client in (blob_client, llm_client):
        try:
            await client.do_healthcheck()
        except (ChatBackendError, httpx.HTTPError) as e:
            logging.warning(
                "%s client '%s' is not reachable: %s",
                client.get_client_type().upper(),
                client.get_engine_name(),
                e,
            )

    for client in (store_client, embed_client, rag_client):
        try:
            await client.do_healthcheck()
        except httpx.HTTPError as e:
            raise BackendRequestError(
                f"{client.get_client_type().upper()} client '{client.get_engine_name()}' is not reachable: {e}"
            ) from e


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting RAG chat backend v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
