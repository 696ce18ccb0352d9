"""Dependency injection for FastAPI: the pipeline and run store live on app.state."""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Request

from lead_research.config import Config
from lead_research.models import PipelineRun
from lead_research.pipeline import EnrichmentPipeline


@dataclass
class RunStore:
    """In-memory background runs and their progress events, keyed by run id."""

    runs: dict[str, PipelineRun] = field(default_factory=dict)
    progress: dict[str, list[dict]] = field(default_factory=dict)
    errors: dict[str, dict] = field(default_factory=dict)


def get_pipeline(request: Request) -> EnrichmentPipeline:
    return request.app.state.pipeline


def get_config(request: Request) -> Config:
    return request.app.state.pipeline.config


def get_run_store(request: Request) -> RunStore:
    return request.app.state.run_store
