import asyncio
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from google.api_core import exceptions as google_api_exceptions

from services.ai_writing_prompts import (
    GeminiSuggester,
    build_writing_prompt,
    clean_keywords,
    parse_suggestions,
)

TEMPLATE_COMPLETION = """العنوان الأول: همس القمر
- ليلة صامتة
- قمر يراقب
- ذكرى قديمة
- دمعة عابرة
- فجر جديد

العنوان الثاني: رحلة الغيم
- سماء رمادية
- مطر خجول
- أرض عطشى
- زهرة تتفتح
- ربيع قادم

العنوان الثالث: ظل النخيل
- صحراء ممتدة
- واحة بعيدة
- قافلة تائهة
- نجم دليل
- وصول آمن
"""


def make_response(text=None, block_reason=None):
    parts = [SimpleNamespace(text=text)] if text is not None else []
    candidates = [SimpleNamespace(content=SimpleNamespace(parts=parts), finish_reason=None)] if parts else []
    feedback = SimpleNamespace(block_reason=SimpleNamespace(name=block_reason)) if block_reason else None
    return SimpleNamespace(candidates=candidates, prompt_feedback=feedback)


class FakeModel:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt, generation_config=None, safety_settings=None):
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def test_parse_template_completion():
    result = parse_suggestions(TEMPLATE_COMPLETION)

    assert [t.title for t in result.titles] == ["همس القمر", "رحلة الغيم", "ظل النخيل"]
    assert all(len(t.points) == 5 for t in result.titles)
    assert result.titles[0].points[0] == "ليلة صامتة"


def test_parse_tolerates_markdown_and_english_markers():
    completion = "**العنوان الأول:** [بحر الحنين]\n- موج\n\nTitle 2: Desert Wind\n-  sand\n- stars"

    result = parse_suggestions(completion)

    assert [t.title for t in result.titles] == ["بحر الحنين", "Desert Wind"]
    assert result.titles[1].points == ["sand", "stars"]


def test_title_without_points_is_dropped():
    result = parse_suggestions("العنوان الأول: وحيد\nالعنوان الثاني: مع نقاط\n- نقطة")

    assert [t.title for t in result.titles] == ["مع نقاط"]


def test_malformed_completion_yields_nothing():
    assert parse_suggestions("I cannot help with that.").titles == []
    assert parse_suggestions("").titles == []
    assert parse_suggestions("- orphan bullet\n- another").titles == []


def test_clean_keywords_drops_blanks():
    assert clean_keywords(["  قمر ", "", "   ", "ليل"]) == ["قمر", "ليل"]


def test_prompt_lists_keywords():
    prompt = build_writing_prompt(["قمر", "ليل"])

    assert "قمر, ليل" in prompt
    assert "العنوان الأول: [العنوان]" in prompt


def test_suggester_parses_model_output():
    model = FakeModel(response=make_response(TEMPLATE_COMPLETION))

    result = asyncio.run(GeminiSuggester(model).suggest(["قمر"]))

    assert len(result.titles) == 3
    assert "قمر" in model.prompts[0]


def test_suggester_returns_empty_on_off_template_text():
    model = FakeModel(response=make_response("just prose"))

    assert asyncio.run(GeminiSuggester(model).suggest(["قمر"])).titles == []


def test_blocked_prompt_is_bad_request():
    model = FakeModel(response=make_response(block_reason="SAFETY"))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(GeminiSuggester(model).suggest(["قمر"]))
    assert exc_info.value.status_code == 400


def test_empty_response_is_bad_gateway():
    model = FakeModel(response=make_response())

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(GeminiSuggester(model).suggest(["قمر"]))
    assert exc_info.value.status_code == 502


def test_quota_error_is_reported():
    model = FakeModel(error=google_api_exceptions.ResourceExhausted("quota"))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(GeminiSuggester(model).suggest(["قمر"]))
    assert exc_info.value.status_code == 429


def test_unexpected_error_is_server_error():
    model = FakeModel(error=RuntimeError("boom"))

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(GeminiSuggester(model).suggest(["قمر"]))
    assert exc_info.value.status_code == 500
