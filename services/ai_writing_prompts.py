import logging
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field
from fastapi import HTTPException

from google.api_core import exceptions as google_api_exceptions
from google.auth import exceptions as google_auth_exceptions
from vertexai.generative_models import GenerativeModel, GenerationConfig, SafetySetting, HarmCategory, GenerationResponse

logger = logging.getLogger('uvicorn.error')

TITLE_MARKERS = ("العنوان", "Title")
BULLET_PREFIXES = ("-", "•")

NO_KEYWORDS = "يرجى إدخال كلمة واحدة على الأقل"
NO_RESPONSE = "لم يتم الحصول على استجابة من الذكاء الاصطناعي"
QUOTA_EXCEEDED = "تم تجاوز حد الاستخدام لخدمة الذكاء الاصطناعي"
AI_FAILURE = "حدث خطأ أثناء الاتصال بالذكاء الاصطناعي. يرجى المحاولة مرة أخرى"


# --- Pydantic Models ---
class SuggestionRequest(BaseModel):
    words: List[str] = Field(default_factory=list)


class TitleSuggestion(BaseModel):
    title: str
    points: List[str]


class SuggestionsResponse(BaseModel):
    titles: List[TitleSuggestion] = Field(default_factory=list)


def clean_keywords(words: Sequence[str]) -> List[str]:
    return [word.strip() for word in words if word and word.strip()]


# --- Prompt Building ---
def build_writing_prompt(words: Sequence[str]) -> str:
    prompt = f"""استخدم هذه الكلمات العربية لمساعدة شخص مبتدئ في كتابة مقال أدبي باللغة العربية الفصحى واستخدام الجماليات والصور التشبيهية: {', '.join(words)}

أعطني 3 عناوين مقترحة على أن تكون عنواين ابداعية في سياق الأدب العربي، كل عنوان مع 5 نقاط رئيسية في 5 كلمات أو أقل، فقط كبداية للمستخدمين لبدء الكتابة ويجب أن يراعى ترتيب النقاط لتكون هناك بداية ووسط ونهاية للموضوع. وكل شيء باللغة العربية.

تنسيق الإجابة:
العنوان الأول: [العنوان]
- النقطة الأولى
- النقطة الثانية
- النقطة الثالثة
- النقطة الرابعة
- النقطة الخامسة

العنوان الثاني: [العنوان]
- النقطة الأولى
- النقطة الثانية
- النقطة الثالثة
- النقطة الرابعة
- النقطة الخامسة

العنوان الثالث: [العنوان]
- النقطة الأولى
- النقطة الثانية
- النقطة الثالثة
- النقطة الرابعة
- النقطة الخامسة"""
    return prompt


# --- Response Parsing ---
def parse_suggestions(content: str) -> SuggestionsResponse:
    """
    Best-effort scan of a completion written in the prompt's template.

    A line holding a title marker and a colon opens a new title, dash lines add
    points to it, and a title without points is dropped. Anything else is ignored,
    so an off-template completion yields no titles rather than an error.
    """
    titles: List[TitleSuggestion] = []
    current_title = ""
    current_points: List[str] = []

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if ":" in line and any(marker in line for marker in TITLE_MARKERS):
            if current_title and current_points:
                titles.append(TitleSuggestion(title=current_title, points=current_points))
            current_title = line.split(":", 1)[1].strip(" *[]")
            current_points = []
        elif line.startswith(BULLET_PREFIXES):
            point = line[1:].strip(" *")
            if point:
                current_points.append(point)

    if current_title and current_points:
        titles.append(TitleSuggestion(title=current_title, points=current_points))

    return SuggestionsResponse(titles=titles)


# --- Gemini Text Generation ---
def _response_text(response: GenerationResponse) -> str:
    if response.candidates and response.candidates[0].content.parts:
        return response.candidates[0].content.parts[0].text
    logger.warning("Gemini response (writing prompts) was empty or malformed.")
    if response.candidates and response.candidates[0].finish_reason:
        logger.warning(f"Gemini finish reason (writing prompts): {response.candidates[0].finish_reason.name}")
    if response.prompt_feedback and response.prompt_feedback.block_reason:
        logger.warning(f"Gemini prompt (writing prompts) blocked. Reason: {response.prompt_feedback.block_reason.name}")
        raise HTTPException(status_code=400, detail="تم حظر الطلب بسبب سياسة المحتوى")
    raise HTTPException(status_code=502, detail=NO_RESPONSE)


class GeminiSuggester:
    """Asks Gemini for writing prompts. The model runs server-side under the service account."""

    def __init__(
        self,
        model: GenerativeModel,
        generation_config: Optional[GenerationConfig] = None,
        safety_settings: Optional[Dict[HarmCategory, SafetySetting.HarmBlockThreshold]] = None,
    ):
        self.model = model
        self.generation_config = generation_config or GenerationConfig(
            temperature=0.8, top_p=0.95, max_output_tokens=1000
        )
        self.safety_settings = safety_settings

    async def suggest(self, words: Sequence[str]) -> SuggestionsResponse:
        prompt = build_writing_prompt(words)
        try:
            logger.debug(f"Sending prompt to Gemini for writing prompts: {prompt[:500]}...")
            response = await self.model.generate_content_async(
                prompt,
                generation_config=self.generation_config,
                safety_settings=self.safety_settings,
            )
            text = _response_text(response)
        except HTTPException as http_exc:
            raise http_exc
        except google_auth_exceptions.GoogleAuthError as e:
            logger.error(f"Google Auth Error during Gemini text generation: {e}")
            raise HTTPException(status_code=500, detail=AI_FAILURE)
        except google_api_exceptions.ResourceExhausted as e:
            logger.warning(f"Gemini quota exhausted: {e}")
            raise HTTPException(status_code=429, detail=QUOTA_EXCEEDED)
        except Exception as e:
            logger.exception(f"Error calling Gemini API for writing prompts: {e}")
            raise HTTPException(status_code=500, detail=AI_FAILURE)

        logger.debug(f"Gemini text (writing prompts): {text}")
        suggestions = parse_suggestions(text)
        if not suggestions.titles:
            logger.warning("Gemini completion did not match the writing prompt template.")
        return suggestions
