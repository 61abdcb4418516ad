from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Recommendation(str, Enum):
    SUBIR = "SUBIR"
    BAJAR = "BAJAR"
    NEUTRAL = "NEUTRAL"


DEFAULT_CONFIDENCE = 0.5
DEFAULT_EXPLANATION = "Sin explicación"
DEFAULT_TIMEFRAME = "No detectado"


@dataclass(frozen=True)
class AnalysisRequest:
    """An accepted upload: the untouched image bytes and their declared type."""
    image: bytes
    mime_type: str
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.image)


class AnalysisResult(BaseModel):
    """Normalized trading-signal judgment extracted from a model reply."""
    recommendation: Recommendation
    confidence: float = DEFAULT_CONFIDENCE
    explanation: str = DEFAULT_EXPLANATION
    patterns: List[str] = Field(default_factory=list)
    timeframe: str = DEFAULT_TIMEFRAME

    model_config = {"frozen": True}


class ChartAnalysisError(Exception):
    """Base class for failures raised by the chart analysis pipeline."""


class InputValidationError(ChartAnalysisError):
    pass


class UploadTooLargeError(InputValidationError):
    pass


class ConfigurationError(ChartAnalysisError):
    pass


class ResponseParseError(ChartAnalysisError):
    def __init__(self, message: str, raw_text: Optional[str] = None):
        super().__init__(message)
        self.raw_text = raw_text
