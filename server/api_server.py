"""FastAPI application entry point for the ingestion bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.ClientInterface import ClientInterface
from shared.clients.storage.StorageClientInterface import StorageClientInterface
from shared.clients.extract.ExtractClientInterface import ExtractClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.storage.StorageClientManager import StorageClientManager
from shared.clients.extract.ExtractClientManager import ExtractClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from services.ingestion.EmbeddingGenerator import EmbeddingGenerator
from services.ingestion.IngestionService import IngestionService
from services.ingestion.TaskSupervisor import TaskSupervisor
from server.routers.WebhookRouter import router as webhook_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    storage_client = StorageClientManager(helper_config=app.state.helper_config).get_client()
    extract_client = ExtractClientManager(helper_config=app.state.helper_config).get_client()
    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    clients: list[ClientInterface] = [storage_client, extract_client, embed_client, rag_client]

    # services validate their settings on construction, before any connection is opened
    ingestion_service = IngestionService(
        helper_config=app.state.helper_config,
        storage_client=storage_client,
        extract_client=extract_client,
        rag_client=rag_client,
        embedding_generator=EmbeddingGenerator(
            helper_config=app.state.helper_config,
            embed_client=embed_client,
        ),
    )
    task_supervisor = TaskSupervisor(helper_config=app.state.helper_config)

    logging.info("Booting all clients...")
    try:
        for client in clients:
            await client.boot()
        logging.info("All clients booted successfully.")

        await check_connections(storage_client, extract_client, embed_client, rag_client)

        # ensure the collection exists
        if not await rag_client.do_existence_check():
            await rag_client.do_create_collection()
        else:
            logging.info("Collection on %s already exists.", rag_client.get_engine_name())
    except Exception:
        for client in clients:
            await client.close()
        raise

    app.state.ingestion_service = ingestion_service
    app.state.task_supervisor = task_supervisor
    logging.info("Ingestion bridge ready (validity policy: %s).", rag_client.validity_policy.value)

    # while the app is running...
    yield

    # when the app shuts down, let running ingestions finish, then close all client connections
    await app.state.task_supervisor.drain()
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="ingest_bridge",
    description=(
        "Ingests uploaded documents: text extraction, chunking, per-chunk embeddings "
        "and replace-semantics persistence per user. "
        "Triggered by storage notifications pushed to POST /."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.include_router(webhook_router)


async def check_connections(
    storage_client: StorageClientInterface,
    extract_client: ExtractClientInterface,
    embed_client: EmbedClientInterface,
    rag_client: RAGClientInterface,
) -> None:
    """Check connectivity to all configured backends on startup.

    Storage and extraction failures are non-fatal (single ingestions will fail
    later, but the server stays up and keeps acknowledging). RAG and embedding
    failures are fatal, no record could be written without them.

    Raises:
        RuntimeError: If a critical service (RAG or embedding) is not reachable.
    """
    for client in (storage_client, extract_client):
        if not await client.do_healthcheck():
            logging.warning(
                "%s client '%s' is not reachable. Ingestion may fail.",
                client.get_client_type(), client.get_engine_name(),
            )

    for client in (rag_client, embed_client):
        if not await client.do_healthcheck():
            raise RuntimeError(
                f"{client.get_client_type()} client '{client.get_engine_name()}' is not reachable. "
                "Cannot store records."
            )


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    logging.info("Starting ingestion bridge v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
