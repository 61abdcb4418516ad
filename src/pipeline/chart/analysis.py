import logging

from src.models.manager import ModelManager, MissingCredentialError
from src.models.providers.base import ImagePart

from .extractor import extract_analysis
from .types import AnalysisRequest, AnalysisResult, ConfigurationError

logger = logging.getLogger(__name__)

CHART_ANALYSIS_TASK = "chart_analysis"


class ChartAnalysisPipeline:
    """Sends one chart image to the vision model and extracts the signal."""

    def __init__(self, model_manager: ModelManager, task: str = CHART_ANALYSIS_TASK):
        self.model_manager = model_manager
        self.task = task

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        if not self.model_manager.settings.openai_api_key:
            raise ConfigurationError("API key no configurada")

        logger.info(f"Analyzing chart ({request.size} bytes, {request.mime_type})")
        try:
            response = await self.model_manager.call(
                task=self.task,
                images=[ImagePart(data=request.image, mime_type=request.mime_type)],
            )
        except MissingCredentialError as e:
            raise ConfigurationError("API key no configurada") from e

        result = extract_analysis(response.content)
        logger.info(f"Chart analysis result: {result.recommendation.value} ({result.confidence})")
        return result
