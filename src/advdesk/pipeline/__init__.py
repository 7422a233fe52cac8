"""
Pipeline stages for document generation.

Implements the staged drafting methodology:
1. Analysis - Summarize the case and ask strategic questions
2. Structuring - Outline the petition from the answers
3. Generation - Write the petition or report and render it to DOCX
"""

from advdesk.pipeline.analysis import AnalysisStage
from advdesk.pipeline.structuring import StructuringStage
from advdesk.pipeline.generation import GenerationStage
from advdesk.pipeline.orchestrator import PipelineOrchestrator, get_pipeline_orchestrator

__all__ = [
    "AnalysisStage",
    "StructuringStage",
    "GenerationStage",
    "PipelineOrchestrator",
    "get_pipeline_orchestrator",
]
