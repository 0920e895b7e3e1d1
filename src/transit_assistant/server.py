import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from transit_assistant.app import mcp
from transit_assistant.data.config import AssistantConfig, get_config

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    data_loaded: bool


@mcp.tool()
def health() -> HealthResponse:
    """Check if the transit assistant server is running and healthy.

    Returns the server status, version, whether transit data is loaded, and
    the current timestamp.
    """
    from transit_assistant import __version__

    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        data_loaded=get_config().db_path.exists(),
    )


async def run_ingest(gtfs_path: str, db_path: Path) -> None:
    """Run GTFS ingestion."""
    from transit_assistant.data.feed_source import resolve_feed
    from transit_assistant.data.gtfs_loader import GTFSLoader

    local_path = await resolve_feed(gtfs_path, db_path.parent)
    loader = GTFSLoader(db_path)
    row_counts = await loader.ingest(local_path)

    print("\nIngestion complete. Row counts:")
    for table, count in row_counts.items():
        print(f"  {table}: {count:,}")


def _print_usage(session, config: AssistantConfig) -> None:
    from transit_assistant.conversation.usage import estimate_cost

    usage = session.usage
    cost = estimate_cost(config.model, usage)
    cost_text = f", ~${cost:.4f}" if cost is not None else ""
    print(
        f"[tokens: {usage.input_tokens:,} in / {usage.output_tokens:,} out{cost_text}]",
        file=sys.stderr,
    )


async def run_conversation(config: AssistantConfig, question: str | None) -> None:
    """Answer one question, or chat interactively when question is None."""
    from transit_assistant.conversation.exchange import ExchangeError
    from transit_assistant.conversation.model_client import AnthropicClient, ModelServiceError
    from transit_assistant.conversation.session import AssistantSession
    from transit_assistant.conversation.speech import ConsoleSpeechOutput
    from transit_assistant.data.backend import TransitBackend

    backend = TransitBackend(config.db_path)
    await backend.open(config.feed_url)
    try:
        async with AnthropicClient(config) as client:
            session = AssistantSession.from_config(
                config, backend, client, speech=ConsoleSpeechOutput()
            )
            if question is not None:
                try:
                    await session.ask(question)
                except (ExchangeError, ModelServiceError) as e:
                    print(f"Error: {e}", file=sys.stderr)
                    raise SystemExit(1) from e
                _print_usage(session, config)
                return

            print("Transit assistant - type a question, 'reset' to start over, 'quit' to exit.")
            while True:
                try:
                    line = await asyncio.to_thread(input, "> ")
                except EOFError:
                    break
                line = line.strip()
                if not line:
                    continue
                if line.lower() in ("quit", "exit"):
                    break
                if line.lower() == "reset":
                    session.reset()
                    print("Conversation reset.")
                    continue
                try:
                    await session.ask(line)
                    _print_usage(session, config)
                except (ExchangeError, ModelServiceError) as e:
                    print(f"Error: {e}", file=sys.stderr)
    finally:
        await backend.close()


def main() -> None:
    config = get_config()

    parser = argparse.ArgumentParser(
        prog="transit-assistant",
        description="Conversational transit assistant over a GTFS feed",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # ingest command
    ingest_parser = subparsers.add_parser(
        "ingest",
        help="Ingest GTFS data into SQLite database",
    )
    ingest_parser.add_argument(
        "gtfs_path",
        nargs="?",
        default=config.feed_url,
        help="GTFS directory, ZIP file or URL (default: TRANSIT_FEED_URL)",
    )
    ingest_parser.add_argument(
        "--db",
        type=Path,
        default=config.db_path,
        help="SQLite database path (default: data/gtfs.db or TRANSIT_DB_PATH env var)",
    )

    # ask command
    ask_parser = subparsers.add_parser("ask", help="Ask a single question")
    ask_parser.add_argument("question", help="Question in natural language")

    # chat command
    subparsers.add_parser("chat", help="Interactive conversation (text stands in for speech)")

    # serve command
    subparsers.add_parser("serve", help="Run the MCP server (default)")

    args = parser.parse_args()
    if args.command == "ingest" and not args.gtfs_path:
        parser.error("no feed given: pass gtfs_path or set TRANSIT_FEED_URL")

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    if args.command in ("ask", "chat") and not args.verbose:
        log_level = logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "ingest":
        asyncio.run(run_ingest(args.gtfs_path, args.db))
    elif args.command == "ask":
        asyncio.run(run_conversation(config, args.question))
    elif args.command == "chat":
        asyncio.run(run_conversation(config, None))
    else:
        # Default: run MCP server
        from transit_assistant.tools import mcp_tools  # noqa: F401

        mcp.run()


if __name__ == "__main__":
    main()
