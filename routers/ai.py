import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request

from services.ai_writing_prompts import (
    GeminiSuggester,
    NO_KEYWORDS,
    SuggestionRequest,
    SuggestionsResponse,
    clean_keywords,
)

logger = logging.getLogger('uvicorn.error')

router = APIRouter(
    prefix="/ai",
    tags=["ai"],
)


async def get_suggester(request: Request) -> GeminiSuggester:
    if not hasattr(request.app.state, 'suggester') or not request.app.state.suggester:
        logger.error("Writing prompt generator not initialized or unavailable.")
        raise HTTPException(status_code=503, detail="خدمة الذكاء الاصطناعي غير متاحة")
    return request.app.state.suggester


@router.post("/suggestions", response_model=SuggestionsResponse)
async def suggest_writing_prompts(
    payload: SuggestionRequest,
    suggester: Annotated[GeminiSuggester, Depends(get_suggester)],
):
    words = clean_keywords(payload.words)
    if not words:
        raise HTTPException(status_code=400, detail=NO_KEYWORDS)
    suggestions = await suggester.suggest(words)
    logger.info(f"Generated {len(suggestions.titles)} writing prompts from {len(words)} keywords.")
    return suggestions
