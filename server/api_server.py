"""FastAPI application entry point for the knowledge bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.ingestion.IngestionService import IngestionService
from services.retrieval.QueryService import QueryService
from services.teams.MembershipService import MembershipService
from server.routers.ChatRouter import router as chat_router
from server.routers.FileRouter import router as file_router
from server.routers.FolderRouter import router as folder_router
from server.routers.IngestRouter import router as ingest_router
from server.routers.TeamRouter import router as team_router
from shared.clients.ClientInterface import ClientInterface
from shared.clients.ClientManager import ClientManager
from shared.clients.vector.partition.PartitionAdapterFactory import create_partition_adapter
from shared.errors import KnowledgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

CLIENT_TYPES = ("store", "storage", "convert", "llm", "vector")


def wire_services(state, helper_config: HelperConfig, clients: dict[str, object]) -> None:
    """Attach clients, the vector partition adapter and all services to app.state.

    Args:
        state: The app.state namespace.
        helper_config (HelperConfig): Configuration and logger.
        clients (dict[str, object]): Client per type ("store", "storage", "convert", "llm", "vector").
    """
    state.helper_config = helper_config
    state.store_client = clients["store"]
    state.storage_client = clients["storage"]
    state.convert_client = clients["convert"]
    state.llm_client = clients["llm"]
    state.vector_client = clients["vector"]
    state.vector_adapter = create_partition_adapter(helper_config, clients["vector"])

    state.ingestion_service = IngestionService(
        helper_config=helper_config,
        store_client=state.store_client,
        storage_client=state.storage_client,
        convert_client=state.convert_client,
        llm_client=state.llm_client,
        vector_adapter=state.vector_adapter,
    )
    state.query_service = QueryService(
        helper_config=helper_config,
        store_client=state.store_client,
        llm_client=state.llm_client,
        vector_adapter=state.vector_adapter,
    )
    state.membership_service = MembershipService(helper_config=helper_config, store_client=state.store_client)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    helper_config = HelperConfig(logger=logging)

    clients = {client_type: ClientManager(helper_config=helper_config, client_type=client_type).get_client() for client_type in CLIENT_TYPES}

    logging.info("Booting all clients...")
    for client in clients.values():
        await client.boot()
    logging.info("All clients booted successfully.")

    wire_services(app.state, helper_config, clients)
    await check_connections(clients)

    # the index must exist before the first upsert
    vector_size, distance = await clients["llm"].do_fetch_embedding_vector_size()
    await clients["vector"].do_ensure_index(vector_size, distance)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients.values():
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="knowledge_bridge",
    description=(
        "Scoped knowledge ingestion and retrieval. Documents are stored under personal, "
        "team or organization visibility, segmented into line-addressable chunks and "
        "indexed into visibility-partitioned vector namespaces. Questions sent to POST /chat "
        "are answered only from the caller's accessible files, with citations."
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


@app.exception_handler(KnowledgeError)
async def knowledge_error_handler(request: Request, exc: KnowledgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(ingest_router)
app.include_router(chat_router)
app.include_router(file_router)
app.include_router(folder_router)
app.include_router(team_router)


async def check_connections(clients: dict[str, ClientInterface]) -> None:
    """Check connectivity to all configured backends on startup.

    A failing conversion backend is non-fatal (only .pdf/.docx ingestion breaks).
    Store, storage, LLM and vector index failures are fatal.

    Raises:
        Exception: If a critical backend is not reachable.
    """
    for client_type, client in clients.items():
        if await client.is_healthy():
            continue
        if client_type == "convert":
            logging.warning(
                "Conversion client '%s' is not reachable. Only plain text uploads can be ingested.",
                client.get_engine_name(),
            )
            continue
        raise Exception(f"{client_type} client '{client.get_engine_name()}' is not reachable. Cannot serve requests.")


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting knowledge_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
