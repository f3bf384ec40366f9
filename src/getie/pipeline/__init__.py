"""Acquisition, verification, extraction and installation pipeline."""

from getie.pipeline.engine import Pipeline, PipelineResult, Stage, StageFailure
from getie.pipeline.extractor import ArchiveExtractor
from getie.pipeline.fetcher import StreamingFetcher
from getie.pipeline.oracle import IntegrityOracle

__all__ = [
    "Pipeline",
    "PipelineResult",
    "Stage",
    "StageFailure",
    "ArchiveExtractor",
    "StreamingFetcher",
    "IntegrityOracle",
]
