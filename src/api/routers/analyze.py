"""
Chart analysis endpoint.
"""
import logging
from fastapi import APIRouter, Depends

from ..dependencies.services import get_analysis_pipeline
from ..dependencies.upload import get_analysis_request
from ..models.analysis import AnalysisResponse
from ..models.common import APIError
from src.pipeline.chart.analysis import ChartAnalysisPipeline
from src.pipeline.chart.types import AnalysisRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/analyze",
    response_model=AnalysisResponse,
    responses={
        400: {"model": APIError},
        413: {"model": APIError},
        500: {"model": APIError},
        502: {"model": APIError},
        503: {"model": APIError},
        504: {"model": APIError},
    },
    # The body is parsed by get_analysis_request, so it is described here for the docs
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "multipart/form-data": {
                    "schema": {
                        "type": "object",
                        "required": ["image"],
                        "properties": {"image": {"type": "string", "format": "binary"}},
                    }
                }
            },
        }
    },
)
async def analyze_chart(
    analysis_request: AnalysisRequest = Depends(get_analysis_request),
    pipeline: ChartAnalysisPipeline = Depends(get_analysis_pipeline),
):
    """
    Analyze one uploaded chart image.

    Upload, credential, upstream and parsing failures are raised as typed
    errors and turned into JSON error bodies by the app's exception handlers.
    """
    result = await pipeline.analyze(analysis_request)
    return AnalysisResponse.from_result(result)
