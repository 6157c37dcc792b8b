# =============================================================================
# src/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line access to the contrarreferencia pipeline for operators who
# need to work outside the HTTP API: ingesting or re-ingesting a radicado,
# generating a response, inspecting reconstructed text, searching the
# index and deleting documents.
#
# Architecture Notes:
#   - argparse for argument parsing (no Click/Typer).
#   - Providers are built with src.main.build_services, imported inside the
#     run function so `--help` stays fast.
# =============================================================================

"""CLI tools for the contrarreferencia pipeline.

- ``python -m src.cli ingest|generate|search|text|delete|stats``
"""
