"""
Execution module - engine transports, result types and the orchestrator.
"""

from mflow.execution.results import (
    ExecutionResult,
    ValidationResult,
    VideoArtifact,
    AudioArtifact,
    QualityScore,
)
from mflow.execution.engine import (
    ExecutionEngine,
    HttpExecutionEngine,
    CommandExecutionEngine,
    create_engine,
)
from mflow.execution.orchestrator import (
    ExecutionState,
    PipelineOrchestrator,
    validate_pipeline,
    serialize_pipeline,
    merge_results,
)

__all__ = [
    "ExecutionResult",
    "ValidationResult",
    "VideoArtifact",
    "AudioArtifact",
    "QualityScore",
    "ExecutionEngine",
    "HttpExecutionEngine",
    "CommandExecutionEngine",
    "create_engine",
    "ExecutionState",
    "PipelineOrchestrator",
    "validate_pipeline",
    "serialize_pipeline",
    "merge_results",
]
