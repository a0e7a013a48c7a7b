"""Manual ingestion runner.

Runs the ingestion pipeline once, in the foreground, for a single object.
Used to reprocess uploads whose push delivery was discarded (e.g. after an
extraction outage).

Usage:
    python -m ingest.ingest_runner <bucket> <object_name>
"""

import argparse
import asyncio
import sys

from shared.clients.ClientInterface import ClientInterface
from shared.clients.storage.StorageClientManager import StorageClientManager
from shared.clients.extract.ExtractClientManager import ExtractClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from services.ingestion.EmbeddingGenerator import EmbeddingGenerator
from services.ingestion.IngestionService import USER_ID_SEGMENT, IngestionService, derive_user_id
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.ingestion import IngestionEvent, IngestionStatus


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a single uploaded object.")
    parser.add_argument("bucket", help="bucket holding the object")
    parser.add_argument("name", help="object name, e.g. users/42/resume.pdf")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run the pipeline for one object.

    Returns:
        int: Process exit code, 0 only if the record was stored.
    """
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    storage_client = StorageClientManager(helper_config=config).get_client()
    extract_client = ExtractClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    clients: list[ClientInterface] = [storage_client, extract_client, embed_client, rag_client]

    try:
        for client in clients:
            await client.boot()

        if not await rag_client.do_existence_check():
            await rag_client.do_create_collection()

        service = IngestionService(
            helper_config=config,
            storage_client=storage_client,
            extract_client=extract_client,
            rag_client=rag_client,
            embedding_generator=EmbeddingGenerator(helper_config=config, embed_client=embed_client),
        )
        event = IngestionEvent(container_id=args.bucket, object_key=args.name)
        status = await service.do_ingest(event)

        if status == IngestionStatus.STORED:
            user_id = derive_user_id(event.object_key, int(config.get_number_val("INGEST_USER_ID_SEGMENT", default=USER_ID_SEGMENT)))
            record = await rag_client.do_fetch_record(user_id)
            logger.info(
                "Record for user_id=%s now holds %d chunk(s).",
                user_id, len(record.text_chunks) if record else 0, color="green",
            )
            return 0

        logger.warning("Ingestion of %s/%s ended with status '%s'.", args.bucket, args.name, status.value)
        return 1
    finally:
        for client in clients:
            await client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
