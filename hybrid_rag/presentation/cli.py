import asyncio
import logging
import sys
from pathlib import Path

from ..config.settings import settings
from ..container import configure_container, container
from ..core.errors import RetrievalError
from ..core.models.search import SearchOptions
from ..core.services.chat_history_service import ChatHistoryService
from ..core.services.document_service import DocumentService
from ..core.services.knowledge_base_service import KnowledgeBaseService
from .formatting import format_search_results

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

USAGE = """Usage: python -m hybrid_rag.presentation.cli <command>
Commands:
  ingest [folder] [--force]          index notes
  add-document <file>                store and index a text document
  search <corpus> <query> [--top-k N] corpus: notes | documents | chat
  serve                              run the rerank endpoint
  startup                            ingest notes, then serve"""

SOURCES = {
    "notes": ("knowledge_base", KnowledgeBaseService),
    "documents": ("documents", DocumentService),
    "chat": ("chat_history", ChatHistoryService),
}


async def _closing(coro):
    """Await coro, then close store connections opened by the container."""
    try:
        return await coro
    finally:
        await container.aclose()


def cmd_ingest(args: list[str]) -> None:
    """Ingest command - index notes only."""
    force = "--force" in args
    folders = [a for a in args if not a.startswith("--")]
    configure_container(settings)
    knowledge_base = container.resolve(KnowledgeBaseService)
    count = asyncio.run(
        _closing(knowledge_base.ingest_folder(folders[0] if folders else None, force))
    )
    logger.info(f"Indexed {count} chunks")


async def _add_document(file_path: Path) -> None:
    documents = container.resolve(DocumentService)
    entry = await documents.store_document(file_path.name, file_path.read_text(encoding="utf-8"))
    async for event in documents.index_document(entry.id):
        logger.info(f"[{event.status}] {event.current:.1f}/{event.total:.0f} {event.message}")


def cmd_add_document(args: list[str]) -> None:
    """Add-document command - store and index one text file."""
    if not args:
        print("Usage: add-document <file>")
        sys.exit(1)

    file_path = Path(args[0])
    if not file_path.is_file():
        logger.error(f"File not found: {file_path}")
        sys.exit(1)

    configure_container(settings)
    try:
        asyncio.run(_closing(_add_document(file_path)))
    except RetrievalError as e:
        logger.error(f"Indexing failed: {e}")
        sys.exit(1)


SEARCH_USAGE = "Usage: search <notes|documents|chat> <query> [--top-k N]"


def _pop_top_k(args: list[str], default: int) -> tuple[int, list[str]]:
    """Remove `--top-k N` from args; ValueError when N is missing or invalid."""
    if "--top-k" not in args:
        return default, args
    i = args.index("--top-k")
    if i + 1 >= len(args):
        raise ValueError("--top-k needs a value")
    top_k = int(args[i + 1])
    if top_k < 1:
        raise ValueError("--top-k must be >= 1")
    return top_k, args[:i] + args[i + 2 :]


def cmd_search(args: list[str]) -> None:
    """Search command - query one corpus and print tool output."""
    try:
        top_k, args = _pop_top_k(args, settings.search_top_k)
    except ValueError as e:
        print(f"{e}\n{SEARCH_USAGE}")
        sys.exit(1)

    if len(args) < 2 or args[0] not in SOURCES:
        print(SEARCH_USAGE)
        sys.exit(1)

    source, service_type = SOURCES[args[0]]
    query = " ".join(args[1:])
    options = SearchOptions(
        top_k=top_k,
        threshold=settings.search_threshold,
        retrieve_k=settings.search_retrieve_k,
        rrf_k=settings.rrf_k,
        include_breakdown=True,
    )

    configure_container(settings)
    service = container.resolve(service_type)
    results = asyncio.run(_closing(service.search(query, options)))
    if not results:
        print("No matching content found.")
        return
    print(format_search_results(results, source, query))


def cmd_serve() -> None:
    """Serve command - run the rerank endpoint."""
    import uvicorn

    from .rerank_api import create_app

    logger.info(f"Starting rerank endpoint on {settings.api_host}:{settings.api_port}")
    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


def main():
    """CLI entry point."""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]

    if command == "ingest":
        cmd_ingest(args)
    elif command == "add-document":
        cmd_add_document(args)
    elif command == "search":
        cmd_search(args)
    elif command == "serve":
        cmd_serve()
    elif command == "startup":
        cmd_ingest(args)
        cmd_serve()
    else:
        print(f"Unknown command: {command}")
        sys.exit(1)


if __name__ == "__main__":
    main()
