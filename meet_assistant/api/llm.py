"""LLM chat-completion client for meeting summaries and Q&A.

WHY: The backend's /api/generate-summary and /api/ask-ai endpoints ask
a chat model to summarize a meeting or answer a question about it, in
Persian. Prompt construction and the SDK call live here so the server
only deals with request validation.

HOW: Wraps openai.AsyncOpenAI. Prompts are built from transcript
entries rendered as "speaker: text" lines plus the participant list.
SDK errors are wrapped in LLMError so callers catch one type.

RULES:
- Summary: max 800 tokens, temperature 0.5
- Ask: max 500 tokens, temperature 0.7
- An empty completion is an error, not an empty summary
- The client is injectable (tests pass a mock)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import openai
from openai import AsyncOpenAI

from meet_assistant.config import (
    ASK_MAX_TOKENS,
    ASK_TEMPERATURE,
    LLM_MODEL,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    load_openai_api_key,
)
from meet_assistant.core.ir import TranscriptEntry

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "شما یک متخصص خلاصه‌سازی جلسات هستید که خلاصه‌های دقیق و کاربردی تولید می‌کنید."
)

ASK_SYSTEM_PROMPT = (
    "شما یک دستیار جلسات هوشمند هستید که به زبان فارسی پاسخ می‌دهید "
    "و در تحلیل محتوای جلسات تخصص دارید."
)


class LLMError(Exception):
    """Raised when the chat-completion call fails or returns no content."""


def render_transcript(entries: Sequence[TranscriptEntry]) -> str:
    """Render entries as one "speaker: text" line each."""
    return "\n".join("{}: {}".format(e.speaker, e.text) for e in entries)


def build_summary_prompt(entries: Sequence[TranscriptEntry], speaker_names: Sequence[str]) -> str:
    return (
        "لطفاً خلاصه‌ای جامع و ساختاریافته از این جلسه ارائه دهید:\n\n"
        "متن جلسه:\n{transcript}\n\n"
        "شرکت‌کنندگان: {names}\n\n"
        "خلاصه باید شامل:\n"
        "1. موضوعات اصلی مطرح شده\n"
        "2. تصمیمات گرفته شده\n"
        "3. وظایف و مسئولیت‌های تعیین شده\n"
        "4. سوالات باقی‌مانده\n"
        "5. اقدامات آتی\n\n"
        "خلاصه را به صورت واضح و منظم ارائه دهید."
    ).format(transcript=render_transcript(entries), names=", ".join(speaker_names))


def build_ask_prompt(
    question: str,
    context: Sequence[TranscriptEntry],
    speaker_names: Sequence[str],
) -> str:
    return (
        "شما یک دستیار هوشمند جلسات هستید که به زبان فارسی پاسخ می‌دهید.\n\n"
        "متن جلسه:\n{transcript}\n\n"
        "شرکت‌کنندگان: {names}\n\n"
        "سوال: {question}\n\n"
        "لطفاً پاسخ کوتاه، مفید و مربوط به محتوای جلسه ارائه دهید. "
        "اگر اطلاعات کافی در متن جلسه وجود ندارد، این موضوع را ذکر کنید."
    ).format(
        transcript=render_transcript(context),
        names=", ".join(speaker_names),
        question=question,
    )


class MeetingLLM:
    """Summary and question answering over a meeting transcript."""

    def __init__(self, client: Optional[Any] = None, model: str = LLM_MODEL) -> None:
        self._client = client or AsyncOpenAI(api_key=load_openai_api_key())
        self._model = model

    async def _complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        try:
            completion = await self._client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as exc:
            raise LLMError(str(exc)) from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise LLMError("Chat completion returned no content")
        return content.strip()

    async def summarize(
        self,
        entries: Sequence[TranscriptEntry],
        speaker_names: Sequence[str],
    ) -> str:
        logger.info("Summarizing %d transcript entries", len(entries))
        return await self._complete(
            SUMMARY_SYSTEM_PROMPT,
            build_summary_prompt(entries, speaker_names),
            SUMMARY_MAX_TOKENS,
            SUMMARY_TEMPERATURE,
        )

    async def ask(
        self,
        question: str,
        context: Sequence[TranscriptEntry],
        speaker_names: Sequence[str],
    ) -> str:
        return await self._complete(
            ASK_SYSTEM_PROMPT,
            build_ask_prompt(question, context, speaker_names),
            ASK_MAX_TOKENS,
            ASK_TEMPERATURE,
        )
