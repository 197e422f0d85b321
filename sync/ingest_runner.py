"""Ingest runner entry point.

Re-drives files left in uploading (e.g. the server restarted before its
background task ran) or failed. Each file is reset to uploading and ingested
with the same bounded retries as an upload; parallelism is capped by
INGEST_CONCURRENCY. INGEST_ORGANIZATION_ID optionally limits the run to one
organization.

Usage:
    python -m sync.ingest_runner
"""

import asyncio

from services.ingestion.IngestionService import IngestionService
from shared.clients.ClientManager import ClientManager
from shared.clients.vector.partition.PartitionAdapterFactory import create_partition_adapter
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.records import FileRecord

CLIENT_TYPES = ("store", "storage", "convert", "llm", "vector")


async def redrive_files(helper_config: HelperConfig, store_client, ingestion_service: IngestionService) -> tuple[int, int]:
    """Ingest every file waiting in uploading or failed.

    Returns:
        tuple[int, int]: (succeeded, failed)
    """
    logging = helper_config.get_logger()
    organization_id = helper_config.get_string_val("INGEST_ORGANIZATION_ID", default="") or None
    concurrency = max(1, int(helper_config.get_number_val("INGEST_CONCURRENCY", default=5)))

    files = await store_client.list_files_needing_ingest(organization_id=organization_id)
    if not files:
        logging.info("No files waiting for ingestion.")
        return 0, 0
    logging.info("Re-driving %d file(s) with concurrency %d...", len(files), concurrency)

    sem = asyncio.Semaphore(concurrency)

    async def _ingest(file: FileRecord) -> bool:
        async with sem:
            await store_client.reset_ingest_state(file.id)
            result = await ingestion_service.ingest_in_background(file.id, file.owner_id)
            return result is not None

    results = await asyncio.gather(*[_ingest(file) for file in files], return_exceptions=True)
    succeeded = sum(1 for r in results if r is True)
    failed = len(results) - succeeded
    for file, result in zip(files, results):
        if isinstance(result, Exception):
            logging.error("Re-driving file %s failed: %s", file.id, result)
    logging.info("Ingest run complete: %d succeeded, %d failed.", succeeded, failed)
    return succeeded, failed


async def main() -> None:
    """Boot the clients and run one re-drive pass."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    clients = {client_type: ClientManager(helper_config=config, client_type=client_type).get_client() for client_type in CLIENT_TYPES}
    try:
        for client in clients.values():
            await client.boot()

        vector_size, distance = await clients["llm"].do_fetch_embedding_vector_size()
        await clients["vector"].do_ensure_index(vector_size, distance)

        ingestion_service = IngestionService(
            helper_config=config,
            store_client=clients["store"],
            storage_client=clients["storage"],
            convert_client=clients["convert"],
            llm_client=clients["llm"],
            vector_adapter=create_partition_adapter(config, clients["vector"]),
        )
        await redrive_files(config, clients["store"], ingestion_service)
    finally:
        for client in clients.values():
            await client.close()


if __name__ == "__main__":
    asyncio.run(main())
