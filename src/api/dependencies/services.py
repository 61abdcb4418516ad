"""
Access to the per-application services built by the app factory.

Settings and the model manager live on ``app.state``; endpoints receive them
through these dependencies so tests can swap them with ``dependency_overrides``.
"""

from fastapi import Depends, Request

from src.models.manager import ModelManager
from src.pipeline.chart.analysis import ChartAnalysisPipeline
from src.settings import Settings


def get_settings(request: Request) -> Settings:
    """FastAPI dependency to get the application settings."""
    return request.app.state.settings


def get_model_manager(request: Request) -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    return request.app.state.model_manager


def get_analysis_pipeline(model_manager: ModelManager = Depends(get_model_manager)) -> ChartAnalysisPipeline:
    return ChartAnalysisPipeline(model_manager)
