# =============================================================================
# src/cli/rag.py -- Contrarreferencia CLI (index management + generation)
# =============================================================================
#
# Operator CLI for the document index behind contrarreferencia generation.
#
# Supported subcommands:
#
#   ingest    -- Download a radicado's PDF, chunk, embed and store it
#   generate  -- Generate the contrarreferencia (cache or on-the-fly)
#   search    -- Similarity search across all indexed chunks
#   text      -- Print the reconstructed text of an indexed radicado
#   delete    -- Remove all chunks of a radicado
#   stats     -- Show index statistics
#
# Usage examples:
#   python -m src.cli ingest --radicado R-1001 --pdf-url https://host/R-1001.pdf
#   python -m src.cli generate --radicado R-1001 --pdf-url https://host/R-1001.pdf \
#       --specialty Cardiologia
#   python -m src.cli search --query "dolor toracico" --limit 5
#   python -m src.cli delete --radicado R-1001 --yes
# =============================================================================

"""Standalone CLI for the contrarreferencia document index.

Usage::

    python -m src.cli ingest --radicado R-1001 --pdf-url https://host/doc.pdf

    python -m src.cli generate --radicado R-1001 --pdf-url https://host/doc.pdf

    python -m src.cli stats

Providers are wired by :func:`src.main.build_services`, so the CLI uses the
same embedding model and ChromaDB collection as the API.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from src.config.settings import Settings
from src.utils.errors import ConfigurationError, ContrarreferenciaError


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Ingest one radicado's PDF."""
    print(f"Ingesting radicado {args.radicado}")
    print(f"  PDF: {args.pdf_url}")

    result = await components["ingestion_service"].ingest(
        args.radicado, args.pdf_url, replace=args.replace
    )

    if result.already_indexed:
        print("\nAlready indexed; nothing to do (use --replace to re-ingest).")
        return 0

    print("\nIngestion complete:")
    print(f"  Chunks stored:  {result.processed_count}/{result.total_count}")
    print(f"  Time:           {result.elapsed_ms} ms")
    if result.skipped_chunk_indices:
        print(f"  Skipped chunks: {result.skipped_chunk_indices}")
        return 2
    return 0


async def _handle_generate(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Generate the contrarreferencia for a radicado."""
    result = await components["orchestrator"].generate(
        args.radicado,
        args.pdf_url,
        args.specialty,
        force=args.force,
    )
    if not result.success:
        print(f"Error ({result.error_kind}): {result.error}", file=sys.stderr)
        if result.retry_after_seconds is not None:
            print(f"  Retry after {result.retry_after_seconds}s", file=sys.stderr)
        return 1

    print(f"# Contrarreferencia {args.radicado} (method: {result.method}, {result.elapsed_ms} ms)")
    print()
    print(result.text)
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Similarity search across all indexed chunks."""
    matches = await components["search_service"].search(
        args.query, limit=args.limit, threshold=args.threshold
    )
    if not matches:
        print("No matches.")
        return 0

    for match in matches:
        preview = match.content[:120].replace("\n", " ")
        print(f"{match.similarity:.3f}  {match.radicado}#{match.chunk_index}  {preview}")
    return 0


async def _handle_text(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Print the reconstructed text of a radicado."""
    text = await components["assembler"].assemble(args.radicado)
    if not text:
        print(f"No indexed document for {args.radicado}.", file=sys.stderr)
        return 1
    print(text)
    return 0


async def _handle_delete(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Delete all chunks of a radicado.  Destructive; asks unless --yes."""
    vector_store = components["vector_store"]
    if not await vector_store.exists(args.radicado):
        print(f"No chunks found for {args.radicado}. Nothing to delete.")
        return 0

    if not args.yes:
        confirm = input(f"  Delete all chunks of {args.radicado}? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("  Aborted.")
            return 0

    deleted = await vector_store.delete(args.radicado)
    print(f"Deleted {deleted} chunks.")
    return 0


async def _handle_stats(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Display index statistics."""
    vector_store = components["vector_store"]
    if not vector_store.is_available():
        print("Vector store not available.")
        return 1

    print("Index Statistics")
    print("=" * 40)
    print(f"  Total chunks:     {await vector_store.count()}")
    for name, available in sorted(components["provider_registry"].items()):
        print(f"  {name:<17} {'configured' if available else 'NOT configured'}")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "generate": _handle_generate,
    "search": _handle_search,
    "text": _handle_text,
    "delete": _handle_delete,
    "stats": _handle_stats,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    # Deferred: building providers opens ChromaDB and HTTP clients.
    from src.main import build_services, close_services

    if args.command == "generate":
        try:
            app_settings.validate_for_generation()
        except ConfigurationError as exc:
            print(f"Error (ConfigurationError): {exc}", file=sys.stderr)
            return 1

    components = build_services(app_settings)
    await components["lock_provider"].initialize()
    try:
        return await _HANDLERS[args.command](args, components)
    except ContrarreferenciaError as exc:
        print(f"Error ({type(exc).__name__}): {exc}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_services(components)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the contrarreferencia CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli",
        description="Manage the contrarreferencia document index and generate responses.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest a radicado's PDF")
    ingest_parser.add_argument("--radicado", required=True, help="Case identifier")
    ingest_parser.add_argument("--pdf-url", required=True, dest="pdf_url", help="PDF URL")
    ingest_parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete existing chunks and re-ingest",
    )

    # -- generate --
    gen_parser = subparsers.add_parser("generate", help="Generate the contrarreferencia")
    gen_parser.add_argument("--radicado", required=True, help="Case identifier")
    gen_parser.add_argument("--pdf-url", required=True, dest="pdf_url", help="PDF URL")
    gen_parser.add_argument("--specialty", default=None, help="Destination specialty")
    gen_parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore indexed chunks and re-ingest before generating",
    )

    # -- search --
    search_parser = subparsers.add_parser("search", help="Similarity search over chunks")
    search_parser.add_argument("--query", required=True, help="Free-text query")
    search_parser.add_argument(
        "--limit", type=int, default=None, help="Maximum matches (default: SEARCH_DEFAULT_LIMIT)"
    )
    search_parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Minimum cosine similarity, 0-1 (default: SEARCH_DEFAULT_THRESHOLD)",
    )

    # -- text --
    text_parser = subparsers.add_parser("text", help="Print a radicado's reconstructed text")
    text_parser.add_argument("--radicado", required=True, help="Case identifier")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete all chunks of a radicado")
    delete_parser.add_argument("--radicado", required=True, help="Case identifier")
    delete_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip confirmation prompt"
    )

    # -- stats --
    subparsers.add_parser("stats", help="Show index statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, loads :class:`Settings` from the environment /
    ``.env``, wires the providers and dispatches to the handler.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    exit_code = asyncio.run(_run(args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
