"""
AI collaborator.

``AIAssistant`` is the capability interface the rest of the service talks to;
``AnthropicAssistant`` implements it over the Anthropic Messages HTTP API:
- every call is bounded by AI_TIMEOUT_SECONDS and never retried here
- timeouts -> UpstreamTimeout, transport/HTTP failures -> UpstreamError
- replies that are not JSON (bare or in a ```json fence) or that do not match
  the expected shape -> UpstreamFormatError
- chat replies are plain text; an empty one -> UpstreamFormatError
"""
from __future__ import annotations

import json
import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, Field, ValidationError, field_validator

from designflow.core.config import settings
from designflow.core.errors import UpstreamError, UpstreamFormatError, UpstreamTimeout
from designflow.schemas import ApiModel, CanvasDocument, CodeOptions
from designflow.services import prompts

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"
_FENCE = re.compile(r"```(?:json)?\s*\n(.*?)\n?```", re.DOTALL)

T = TypeVar("T", bound=BaseModel)


# ------- Structured results -------

def _clamp(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        raise ValueError("score must be a number")
    return max(0, min(100, score))


class ExtractionResult(ApiModel):
    canvas_data: CanvasDocument
    confidence: float = 0.0
    metadata: Dict[str, Any] = Field(default_factory=dict)


class AnalysisResult(ApiModel):
    quality_score: int
    categories: Dict[str, int] = Field(default_factory=dict)
    suggestions: List[Dict[str, Any]] = Field(default_factory=list)
    analysis: str = ""
    optimized_design: CanvasDocument

    @field_validator("quality_score", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        return _clamp(v)

    @field_validator("categories", mode="before")
    @classmethod
    def _clamp_categories(cls, v):
        if not isinstance(v, dict):
            raise ValueError("categories must be an object")
        return {k: _clamp(s) for k, s in v.items()}


class RefinementResult(ApiModel):
    refined_design: CanvasDocument
    changes: List[Any] = Field(default_factory=list)
    explanation: str = ""


class GeneratedFile(ApiModel):
    path: str
    content: str
    language: Optional[str] = None


class CodeBundle(ApiModel):
    files: List[GeneratedFile] = Field(default_factory=list)
    instructions: str = ""


def parse_ai_json(text: str) -> Any:
    """Parse a reply that is JSON, optionally wrapped in a markdown code fence."""
    match = _FENCE.search(text or "")
    candidate = match.group(1) if match else (text or "")
    try:
        return json.loads(candidate.strip())
    except (TypeError, ValueError):
        raise UpstreamFormatError()


def _validate(model: Type[T], data: Any) -> T:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning("AI reply does not match %s: %s", model.__name__, e.errors()[:3])
        raise UpstreamFormatError(f"AI response did not match the expected {model.__name__} shape")


def design_stats(design: Dict[str, Any]) -> Dict[str, Any]:
    objects = design.get("objects") or []
    by_type = Counter(str(o.get("type", "unknown")) for o in objects)
    colors = sorted({o["fill"] for o in objects if isinstance(o.get("fill"), str) and o["fill"]})
    return {"total": len(objects), "by_type": dict(by_type), "colors": colors}


class AIAssistant:
    """Capability interface; implementations must raise Upstream* errors only."""

    def extract(self, image_b64: str, media_type: str) -> ExtractionResult:
        raise NotImplementedError

    def analyze(self, design: Dict[str, Any]) -> AnalysisResult:
        raise NotImplementedError

    def refine(self, original: Dict[str, Any], current: Dict[str, Any], feedback: str, category: str) -> RefinementResult:
        raise NotImplementedError

    def generate_code(self, design: Dict[str, Any], project_name: str, page_name: str, options: CodeOptions) -> CodeBundle:
        raise NotImplementedError

    def run_design_tests(self, design: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def generate_docs(self, design: Dict[str, Any], page_name: str, project_name: str) -> Dict[str, Any]:
        raise NotImplementedError

    def chat(self, message: str, context: Dict[str, Any]) -> str:
        """Free-form design advice; context may carry project_name, page_name, element_count."""
        raise NotImplementedError


class AnthropicAssistant(AIAssistant):
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        vision_model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        self.base_url = base_url or settings.AI_BASE_URL
        self.model = model or settings.AI_MODEL
        self.vision_model = vision_model or settings.AI_VISION_MODEL
        self.max_tokens = max_tokens or settings.AI_MAX_TOKENS
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _complete(self, content: Any, system: str, max_tokens: Optional[int] = None, model: Optional[str] = None) -> str:
        if not self.api_key:
            raise UpstreamError("AI service is not configured")
        payload = {
            "model": model or self.model,
            "max_tokens": max_tokens or self.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": content}],
        }
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        try:
            resp = self.session.post(self.base_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error("AI request timed out after %.1fs: %s", self.timeout, e)
            raise UpstreamTimeout()
        except requests.exceptions.RequestException as e:
            logger.error("AI network error: %s", e)
            raise UpstreamError()

        if resp.status_code >= 400:
            detail = None
            try:
                detail = (resp.json().get("error") or {}).get("message")
            except ValueError:
                detail = resp.text[:200]
            logger.error("AI HTTP %s: %s", resp.status_code, detail)
            raise UpstreamError()

        try:
            blocks = resp.json().get("content") or []
        except ValueError:
            raise UpstreamFormatError()
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        logger.debug("AI reply from %s (%d chars)", payload["model"], len(text))
        return text

    def extract(self, image_b64: str, media_type: str) -> ExtractionResult:
        content = [
            {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": image_b64}},
            {"type": "text", "text": prompts.EXTRACT_PROMPT},
        ]
        text = self._complete(content, prompts.EXTRACT_SYSTEM, model=self.vision_model)
        return _validate(ExtractionResult, parse_ai_json(text))

    def analyze(self, design: Dict[str, Any]) -> AnalysisResult:
        prompt = prompts.analyze_prompt(design, design_stats(design))
        text = self._complete(prompt, prompts.ANALYZE_SYSTEM)
        data = parse_ai_json(text)
        if isinstance(data, dict):
            for i, s in enumerate(data.get("suggestions") or []):
                if isinstance(s, dict) and not s.get("id"):
                    s["id"] = f"suggestion-{i + 1}"
        return _validate(AnalysisResult, data)

    def refine(self, original: Dict[str, Any], current: Dict[str, Any], feedback: str, category: str) -> RefinementResult:
        logger.info("Refining design (category=%s)", category)
        text = self._complete(prompts.refine_prompt(original, current, feedback, category), prompts.REFINE_SYSTEM, max_tokens=5000)
        return _validate(RefinementResult, parse_ai_json(text))

    def generate_code(self, design: Dict[str, Any], project_name: str, page_name: str, options: CodeOptions) -> CodeBundle:
        system = prompts.CODEGEN_SYSTEM.format(
            framework=options.framework,
            styling=options.styling,
            tests="Include unit tests." if options.include_tests else "",
        )
        text = self._complete(prompts.codegen_prompt(design, project_name, page_name), system, max_tokens=8000)
        return _validate(CodeBundle, parse_ai_json(text))

    def run_design_tests(self, design: Dict[str, Any]) -> Dict[str, Any]:
        data = parse_ai_json(self._complete(prompts.test_prompt(design), prompts.TEST_SYSTEM, max_tokens=1500))
        if not isinstance(data, dict) or not isinstance(data.get("tests"), list):
            raise UpstreamFormatError("AI response did not contain a test list")
        return data

    def generate_docs(self, design: Dict[str, Any], page_name: str, project_name: str) -> Dict[str, Any]:
        data = parse_ai_json(self._complete(prompts.docs_prompt(design, page_name, project_name), prompts.DOCS_SYSTEM, max_tokens=2000))
        if not isinstance(data, dict) or not isinstance(data.get("sections"), list):
            raise UpstreamFormatError("AI response did not contain documentation sections")
        return data

    def chat(self, message: str, context: Dict[str, Any]) -> str:
        system = prompts.chat_system(context.get("project_name"), context.get("page_name"), context.get("element_count"))
        text = self._complete(message, system, max_tokens=1024).strip()
        if not text:
            raise UpstreamFormatError("AI returned an empty reply")
        return text


_assistant: Optional[AIAssistant] = None


def get_ai_assistant() -> AIAssistant:
    global _assistant
    if _assistant is None:
        _assistant = AnthropicAssistant()
    return _assistant
