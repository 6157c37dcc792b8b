"""Unit tests for the contrarreferencia CLI (src/cli/rag.py)."""

from __future__ import annotations

import argparse
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.cli.rag import (
    _handle_delete,
    _handle_generate,
    _handle_ingest,
    _handle_search,
    _handle_stats,
    _handle_text,
    _run,
    build_parser,
    main,
)
from src.config.settings import Settings
from src.models.rag import ChunkMetadata, GenerationResult, IngestionResult, SimilarityMatch
from src.utils.errors import ExtractionError

_URL = "https://docs.test/R-1001.pdf"


@pytest.fixture()
def components(
    mock_vector_store: MagicMock, mock_lock_provider: MagicMock
) -> dict[str, object]:
    return {
        "ingestion_service": MagicMock(ingest=AsyncMock()),
        "orchestrator": MagicMock(generate=AsyncMock()),
        "search_service": MagicMock(search=AsyncMock(return_value=[])),
        "assembler": MagicMock(assemble=AsyncMock(return_value="")),
        "vector_store": mock_vector_store,
        "lock_provider": mock_lock_provider,
        "provider_registry": {"embedding": True, "generation": False},
    }


def _args(argv: list[str]) -> argparse.Namespace:
    return build_parser().parse_args(argv)


# ======================================================================
# Argument parsing
# ======================================================================


class TestParser:
    def test_ingest_arguments(self) -> None:
        args = _args(["ingest", "--radicado", "R-1", "--pdf-url", _URL, "--replace"])
        assert args.command == "ingest"
        assert args.radicado == "R-1"
        assert args.pdf_url == _URL
        assert args.replace is True

    def test_generate_defaults(self) -> None:
        args = _args(["generate", "--radicado", "R-1", "--pdf-url", _URL])
        assert args.specialty is None
        assert args.force is False

    def test_search_defaults(self) -> None:
        args = _args(["search", "--query", "disnea"])
        assert args.limit is None
        assert args.threshold is None

    def test_delete_short_yes_flag(self) -> None:
        assert _args(["delete", "--radicado", "R-1", "-y"]).yes is True

    def test_missing_required_argument_exits(self) -> None:
        with pytest.raises(SystemExit):
            _args(["ingest", "--radicado", "R-1"])

    def test_no_command_prints_help_and_exits(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1


# ======================================================================
# Handlers
# ======================================================================


class TestIngestHandler:
    @pytest.mark.asyncio
    async def test_complete_ingestion(self, components, capsys) -> None:
        components["ingestion_service"].ingest.return_value = IngestionResult(
            radicado="R-1", processed_count=3, total_count=3
        )

        args = _args(["ingest", "--radicado", "R-1", "--pdf-url", _URL])
        code = await _handle_ingest(args, components)

        assert code == 0
        assert "3/3" in capsys.readouterr().out
        components["ingestion_service"].ingest.assert_awaited_once_with("R-1", _URL, replace=False)

    @pytest.mark.asyncio
    async def test_degraded_ingestion_exit_code(self, components) -> None:
        components["ingestion_service"].ingest.return_value = IngestionResult(
            radicado="R-1", processed_count=2, total_count=3, skipped_chunk_indices=[2]
        )
        args = _args(["ingest", "--radicado", "R-1", "--pdf-url", _URL])
        assert await _handle_ingest(args, components) == 2

    @pytest.mark.asyncio
    async def test_already_indexed(self, components, capsys) -> None:
        components["ingestion_service"].ingest.return_value = IngestionResult(
            radicado="R-1", already_indexed=True
        )
        args = _args(["ingest", "--radicado", "R-1", "--pdf-url", _URL])
        assert await _handle_ingest(args, components) == 0
        assert "Already indexed" in capsys.readouterr().out


class TestGenerateHandler:
    @pytest.mark.asyncio
    async def test_success_prints_text(self, components, capsys) -> None:
        components["orchestrator"].generate.return_value = GenerationResult(
            success=True, text="Contrarreferencia final.", method="cache"
        )
        args = _args(
            ["generate", "--radicado", "R-1", "--pdf-url", _URL, "--specialty", "Cardiologia"]
        )

        code = await _handle_generate(args, components)

        assert code == 0
        out = capsys.readouterr().out
        assert "Contrarreferencia final." in out
        assert "method: cache" in out
        components["orchestrator"].generate.assert_awaited_once_with(
            "R-1", _URL, "Cardiologia", force=False
        )

    @pytest.mark.asyncio
    async def test_failure_reports_retry_after(self, components, capsys) -> None:
        components["orchestrator"].generate.return_value = GenerationResult(
            success=False,
            error="Rate limit exceeded",
            error_kind="GenerationProviderError",
            retry_after_seconds=45,
        )
        args = _args(["generate", "--radicado", "R-1", "--pdf-url", _URL, "--force"])

        code = await _handle_generate(args, components)

        assert code == 1
        err = capsys.readouterr().err
        assert "GenerationProviderError" in err
        assert "45s" in err


class TestOtherHandlers:
    @pytest.mark.asyncio
    async def test_search_prints_matches(self, components, capsys) -> None:
        components["search_service"].search.return_value = [
            SimilarityMatch(
                radicado="R-1",
                chunk_index=2,
                content="dolor toracico\nirradiado",
                similarity=0.876,
                metadata=ChunkMetadata(total_chunks=3, char_count=24),
            )
        ]
        args = _args(["search", "--query", "dolor", "--limit", "3", "--threshold", "0.7"])

        assert await _handle_search(args, components) == 0
        assert "0.876  R-1#2  dolor toracico irradiado" in capsys.readouterr().out
        components["search_service"].search.assert_awaited_once_with(
            "dolor", limit=3, threshold=0.7
        )

    @pytest.mark.asyncio
    async def test_text_missing_document(self, components) -> None:
        assert await _handle_text(_args(["text", "--radicado", "R-404"]), components) == 1

    @pytest.mark.asyncio
    async def test_text_prints_document(self, components, capsys) -> None:
        components["assembler"].assemble.return_value = "uno\n\ndos"
        assert await _handle_text(_args(["text", "--radicado", "R-1"]), components) == 0
        assert "uno\n\ndos" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_delete_with_yes(self, components, mock_vector_store: MagicMock) -> None:
        mock_vector_store.exists.return_value = True
        mock_vector_store.delete.return_value = 4

        code = await _handle_delete(_args(["delete", "--radicado", "R-1", "--yes"]), components)

        assert code == 0
        mock_vector_store.delete.assert_awaited_once_with("R-1")

    @pytest.mark.asyncio
    async def test_delete_aborted_at_prompt(
        self, components, mock_vector_store: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        mock_vector_store.exists.return_value = True
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        await _handle_delete(_args(["delete", "--radicado", "R-1"]), components)

        mock_vector_store.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stats(self, components, mock_vector_store: MagicMock, capsys) -> None:
        mock_vector_store.count.return_value = 42
        assert await _handle_stats(_args(["stats"]), components) == 0
        out = capsys.readouterr().out
        assert "42" in out
        assert "NOT configured" in out


# ======================================================================
# Run loop
# ======================================================================


class TestRun:
    @pytest.mark.asyncio
    async def test_pipeline_errors_map_to_exit_code_and_close(self, components) -> None:
        components["ingestion_service"].ingest.side_effect = ExtractionError()
        args = _args(["ingest", "--radicado", "R-1", "--pdf-url", _URL])

        with patch("src.main.build_services", return_value=components), patch(
            "src.main.close_services", new_callable=AsyncMock
        ) as close_mock:
            code = await _run(args, Settings(_env_file=None))

        assert code == 1
        components["lock_provider"].initialize.assert_awaited_once()
        close_mock.assert_awaited_once_with(components)

    @pytest.mark.asyncio
    async def test_value_errors_map_to_exit_code(self, components) -> None:
        components["search_service"].search.side_effect = ValueError("limit must be at least 1")
        args = _args(["search", "--query", "x", "--limit", "0"])

        with patch("src.main.build_services", return_value=components), patch(
            "src.main.close_services", new_callable=AsyncMock
        ):
            assert await _run(args, Settings(_env_file=None)) == 1

    @pytest.mark.asyncio
    async def test_generate_without_credentials_stops_before_wiring(
        self, components, capsys
    ) -> None:
        args = _args(["generate", "--radicado", "R-1", "--pdf-url", _URL])

        with patch("src.main.build_services", return_value=components) as build_mock:
            code = await _run(args, Settings(_env_file=None, generation_base_url=""))

        assert code == 1
        assert "GENERATION_BASE_URL" in capsys.readouterr().err
        build_mock.assert_not_called()
        components["orchestrator"].generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generate_with_credentials_runs(self, components) -> None:
        components["orchestrator"].generate.return_value = GenerationResult(
            success=True, text="ok", method="cache"
        )
        args = _args(["generate", "--radicado", "R-1", "--pdf-url", _URL])
        app_settings = Settings(
            _env_file=None,
            gemini_api_key="gm-key",
            generation_base_url="https://generator.test",
        )

        with patch("src.main.build_services", return_value=components), patch(
            "src.main.close_services", new_callable=AsyncMock
        ):
            assert await _run(args, app_settings) == 0
