"""
API models for the chart analysis endpoint.
"""

from pydantic import BaseModel, Field
from typing import List

from src.pipeline.chart.types import AnalysisResult, Recommendation
from .common import utc_timestamp


class AnalysisResponse(BaseModel):
    """Flat success payload: the analysis fields plus a serialization timestamp."""
    success: bool = True
    recommendation: Recommendation
    confidence: float
    explanation: str
    patterns: List[str] = Field(default_factory=list)
    timeframe: str
    timestamp: str = Field(default_factory=utc_timestamp)

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        return cls(**result.model_dump())
