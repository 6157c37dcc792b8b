"""Pipeline orchestration for contrarreferencia generation."""

from src.pipeline.orchestrator import AnswerOrchestrator, OrchestratorState

__all__ = [
    "AnswerOrchestrator",
    "OrchestratorState",
]
