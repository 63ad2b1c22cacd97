"""
Analysis Router
===============
AI analysis of free text, independent of stored documents.

Endpoints:
- POST /api/v1/analysis            - Summary, questions, action items and sections
- POST /api/v1/analysis/context    - Relevance and coherence summary
- POST /api/v1/analysis/translate  - Translate an analysis' summary and action items
"""

from fastapi import APIRouter, Depends

from logging_config import get_logger
from routers.deps import get_analysis_service
from schemas import AnalysisResult, AnalyzeRequest, ContextAnalysis, TranslateAnalysisRequest
from services.analysis import AnalysisService
from services.context_analysis import analyze_context

logger = get_logger(__name__)

router = APIRouter()


@router.post("", response_model=AnalysisResult)
async def analyze(request: AnalyzeRequest, analysis: AnalysisService = Depends(get_analysis_service)):
    return await analysis.analyze_document(request.text)


@router.post("/context", response_model=ContextAnalysis)
async def context(request: AnalyzeRequest, analysis: AnalysisService = Depends(get_analysis_service)):
    return await analyze_context(analysis.client, request.text)


@router.post("/translate", response_model=AnalysisResult)
async def translate_analysis(
    request: TranslateAnalysisRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
):
    """
    Return the analysis with ``translations[target_language]`` filled in.

    Earlier translations in the payload are kept.
    """
    return await analysis.translate_analysis(
        request.analysis,
        request.source_language,
        request.target_language,
    )
