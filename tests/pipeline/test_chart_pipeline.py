import asyncio
import pytest
from unittest.mock import AsyncMock, Mock

from src.models.manager import ModelManager, MissingCredentialError
from src.models.providers.base import ImagePart, ModelResponse, UpstreamTimeoutError
from src.pipeline.chart.analysis import ChartAnalysisPipeline, CHART_ANALYSIS_TASK
from src.pipeline.chart.types import (
    AnalysisRequest,
    ConfigurationError,
    Recommendation,
    ResponseParseError,
)
from src.settings import Settings


@pytest.fixture
def chart_request():
    return AnalysisRequest(image=b"\x89PNG\r\n\x1a\nchart", mime_type="image/png", filename="chart.png")


def _manager(reply: str = "", api_key="sk-test"):
    manager = Mock(spec=ModelManager)
    manager.settings = Settings(openai_api_key=api_key)
    manager.call = AsyncMock(return_value=ModelResponse(content=reply, raw=None, meta={}))
    return manager


class TestChartAnalysisPipeline:
    def test_analyze_success(self, chart_request):
        """
        Test: Successful analysis
        How: Mock the model manager reply with prose around a JSON object
        Ensures: The image is forwarded unchanged and the reply is extracted
        """
        manager = _manager('Resultado: {"recommendation": "bajar", "confidence": 0.9, "patterns": ["hombro-cabeza-hombro"]}')
        result = asyncio.run(ChartAnalysisPipeline(manager).analyze(chart_request))

        assert result.recommendation == Recommendation.BAJAR
        assert result.confidence == 0.9
        assert result.patterns == ["hombro-cabeza-hombro"]

        manager.call.assert_awaited_once()
        kwargs = manager.call.await_args.kwargs
        assert kwargs["task"] == CHART_ANALYSIS_TASK
        assert kwargs["images"] == [ImagePart(data=chart_request.image, mime_type="image/png")]

    def test_missing_api_key_makes_no_call(self, chart_request):
        manager = _manager(api_key=None)

        with pytest.raises(ConfigurationError):
            asyncio.run(ChartAnalysisPipeline(manager).analyze(chart_request))
        manager.call.assert_not_awaited()

    def test_missing_credential_from_manager(self, chart_request):
        manager = _manager()
        manager.call.side_effect = MissingCredentialError("OPENAI_API_KEY is not configured")

        with pytest.raises(ConfigurationError):
            asyncio.run(ChartAnalysisPipeline(manager).analyze(chart_request))

    def test_upstream_errors_propagate(self, chart_request):
        manager = _manager()
        manager.call.side_effect = UpstreamTimeoutError("Timeout")

        with pytest.raises(UpstreamTimeoutError):
            asyncio.run(ChartAnalysisPipeline(manager).analyze(chart_request))
        assert manager.call.await_count == 1

    def test_unparseable_reply(self, chart_request):
        manager = _manager("I'm sorry, I can't help with that.")

        with pytest.raises(ResponseParseError):
            asyncio.run(ChartAnalysisPipeline(manager).analyze(chart_request))
