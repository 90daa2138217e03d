"""Senses faculty: speech-to-text, text-to-image and text-to-speech."""

from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel

from cortex.faculties.types import (
    FacultyContext,
    FacultyName,
    FacultyResult,
    KeywordIntentDetector,
    drop_none,
    fail,
    ok,
)

SENSES_KEYWORDS = (
    "transcribe", "audio", "speech", "voice", "generate image", "create image",
    "draw", "picture", "video", "speak", "say", "read aloud", "text to speech",
)

DETECTOR = KeywordIntentDetector(
    FacultyName.SENSES, SENSES_KEYWORDS, 0.85, "Involves multimodal input/output processing",
)

_AUDIO_PATH_RE = re.compile(r"(\S+\.(?:wav|mp3|m4a|ogg|flac|webm))\b", re.IGNORECASE)
_URL_RE = re.compile(r"https?://\S+")


def detect_senses_intent(text: str) -> bool:
    return DETECTOR.detect(text)


class SensesRequest(BaseModel):
    action: Literal["transcribe", "generate_image", "synthesize_speech"]
    audio_path: Optional[str] = None
    audio_url: Optional[str] = None
    image_prompt: Optional[str] = None
    text: Optional[str] = None
    voice: Optional[str] = None
    model: Optional[str] = None
    language: str = "auto"


def infer_senses_request(text: str) -> Optional[SensesRequest]:
    """Pick a senses action from free text, or None when nothing fits."""
    lowered = text.lower()
    if "transcribe" in lowered:
        path = _AUDIO_PATH_RE.search(text)
        url = _URL_RE.search(text)
        return SensesRequest(
            action="transcribe",
            audio_url=url.group(0) if url else None,
            audio_path=path.group(1) if path and not url else None,
        )
    if "generate image" in lowered:
        return SensesRequest(action="generate_image", image_prompt=text)
    if "speak" in lowered or "say" in lowered:
        return SensesRequest(action="synthesize_speech", text=text)
    return None


async def perceive(request: SensesRequest, ctx: FacultyContext) -> FacultyResult:
    if request.action == "transcribe":
        if not request.audio_path and not request.audio_url:
            return fail("audioPath or audioUrl is required for transcription")
        result = await ctx.call(
            "whisper",
            action="transcribe_file",
            language=request.language,
            model=request.model or "base",
            **drop_none(audio_path=request.audio_path, audio_url=request.audio_url),
        )
        if not result.success:
            return fail(result.error or "Transcription failed")
        data = result.data
        return ok({
            "transcription": {
                "text": data.get("transcription", ""),
                "language": data.get("language", "unknown"),
                "duration": data.get("duration_seconds", 0),
                "segments": data.get("timestamp_segments"),
            }
        })

    if request.action == "generate_image":
        if not request.image_prompt:
            return fail("imagePrompt is required for image generation")
        result = await ctx.call(
            "diffusers", action="generate_image",
            prompt=request.image_prompt, model=request.model or "sd-1.5",
        )
        if not result.success:
            return fail(result.error or "Image generation failed")
        return ok({"image": {
            "path": result.data["image_path"],
            "prompt": request.image_prompt,
            "model": result.data.get("model"),
        }})

    if not request.text:
        return fail("text is required for speech synthesis")
    result = await ctx.call(
        "piper_tts", action="synthesize", text=request.text, **drop_none(voice=request.voice),
    )
    if not result.success:
        return fail(result.error or "Speech synthesis failed")
    return ok({"speech": {
        "path": result.data["audio_path"],
        "voice": result.data["voice"],
        "duration": result.data["duration_seconds"],
    }})
