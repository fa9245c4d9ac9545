"""
AI analysis service.

Runs an ordered chain of LLM providers and, when the chain is exhausted,
an always-succeeding synthetic strategy. Replies are parsed for a JSON
object with summary / analysis / recommendations.
"""
import json
import re
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from iara.core.config import settings
from iara.core.logger import logger
from iara.core.security import decrypt_secret
from iara.db.models import AISettings, Case
from iara.services import ai_templates as tpl
from iara.services.llm_providers import (
    SUPPORTED_PROVIDERS,
    ChatProvider,
    ProviderReply,
    build_provider,
    providers_from_env,
)
from iara.utils.exceptions import ProviderError, UpstreamProviderError, ValidationError
from iara.utils.helpers import format_kb

MOCK_MODEL = "mock-ai"

_JSON_SPAN = re.compile(r"\{.*\}", re.DOTALL)
_FILE_HEADER = re.compile(r"ARQUIVO \d+:")


# ============================================================================
# Prompt building and reply parsing
# ============================================================================

def build_full_context(prompt: str, files: Sequence[Any]) -> str:
    """Prompt + one block per file + the JSON answer instructions."""
    parts = [prompt, "\n\n", tpl.CONTEXT_HEADER]
    for index, f in enumerate(files, start=1):
        parts.append(f"📄 ARQUIVO {index}: {f.name}\n")
        parts.append(f"Tipo: {f.type or 'desconhecido'}\n")
        parts.append(f"Tamanho: {format_kb(f.size)}\n")
        if f.extracted_text:
            parts.append("Conteúdo extraído:\n")
            parts.append(f"{f.extracted_text}\n")
        else:
            parts.append(tpl.BINARY_FILE_NOTICE)
        parts.append(f"\n{tpl.FILE_SEPARATOR}\n\n")
    parts.append(tpl.JSON_INSTRUCTIONS)
    return "".join(parts)


def _as_text(value: Any, default: str) -> str:
    if not value:
        return default
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def parse_ai_response(text: str) -> Dict[str, Any]:
    """
    Extract {summary, analysis, recommendations} from a free-text reply.

    The greedy match spans from the first '{' to the last '}'. When no span
    decodes to an object, the whole reply is treated as prose.
    """
    text = text or ""
    match = _JSON_SPAN.search(text)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            parsed = None
            logger.warning("AI reply contains an undecodable JSON span, using raw text")

        if isinstance(parsed, dict):
            recommendations = parsed.get("recommendations") or []
            if isinstance(recommendations, str):
                recommendations = [recommendations]
            elif not isinstance(recommendations, list):
                recommendations = []
            return {
                "summary": _as_text(parsed.get("summary"), tpl.MISSING_SUMMARY),
                "analysis": _as_text(parsed.get("analysis"), tpl.MISSING_ANALYSIS),
                "recommendations": [_as_text(r, "") for r in recommendations],
            }

    return {
        "summary": text[:500] + "...",
        "analysis": text,
        "recommendations": list(tpl.PROSE_RECOMMENDATIONS),
    }


def generate_fallback(context: str) -> Dict[str, Any]:
    """Deterministic report built only from the file headers and markers in `context`."""
    file_count = len(_FILE_HEADER.findall(context))
    has_pdf = tpl.PDF_MARKER in context
    has_doc = tpl.DOC_MARKER in context
    has_image = tpl.IMAGE_MARKER in context

    summary = tpl.FALLBACK_SUMMARY_HEAD.format(file_count=file_count)
    categories = ""
    if has_pdf:
        summary += tpl.FALLBACK_SUMMARY_PDF
        categories += tpl.FALLBACK_CATEGORY_PDF
    if has_doc:
        summary += tpl.FALLBACK_SUMMARY_DOC
        categories += tpl.FALLBACK_CATEGORY_DOC
    if has_image:
        summary += tpl.FALLBACK_SUMMARY_IMAGE
        categories += tpl.FALLBACK_CATEGORY_IMAGE
    summary += tpl.FALLBACK_SUMMARY_TAIL

    return {
        "summary": summary,
        "analysis": tpl.FALLBACK_ANALYSIS_TEMPLATE.format(
            file_count=file_count, categories=categories
        ),
        "recommendations": list(tpl.FALLBACK_RECOMMENDATIONS),
    }


def build_case_prompt(case: Case, default_prompt: str) -> str:
    """Case text plus attachment names and types. Attachment content is not fetched."""
    attachment_lines = "".join(
        f"- {a.filename} ({a.content_type or 'desconhecido'})\n" for a in case.attachments
    )
    return tpl.CASE_PROMPT_TEMPLATE.format(
        default_prompt=default_prompt,
        title=case.title,
        description=case.description,
        attachment_count=len(case.attachments),
        attachment_lines=attachment_lines,
    )


def render_case_mock_response(case: Case, default_prompt: str) -> str:
    return tpl.CASE_MOCK_TEMPLATE.format(
        default_prompt=default_prompt,
        title=case.title,
        description=case.description,
        attachment_count=len(case.attachments),
    )


# ============================================================================
# Synthetic strategies (last element of every chain that must not fail)
# ============================================================================

class FallbackAnalysis:
    """Rule-based report for the browser analysis path."""

    def __init__(self, context: str):
        self.context = context

    def __call__(self) -> ProviderReply:
        result = generate_fallback(self.context)
        return ProviderReply(text=result["analysis"], model=MOCK_MODEL, parsed=result)


class CaseMockResponse:
    """Markdown demo answer stored when a case is processed without a provider."""

    def __init__(self, case: Case, default_prompt: str):
        self.case = case
        self.default_prompt = default_prompt

    def __call__(self) -> ProviderReply:
        return ProviderReply(
            text=render_case_mock_response(self.case, self.default_prompt),
            model=MOCK_MODEL,
        )


# ============================================================================
# Service
# ============================================================================

class AIService:
    """
    Service layer for LLM analysis
    """

    def __init__(self, transport: Optional[httpx.BaseTransport] = None):
        # Tests swap in httpx.MockTransport here
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=settings.AI_REQUEST_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    def resolve_providers(self, user_settings: Optional[AISettings] = None) -> List[ChatProvider]:
        """
        The user's saved provider (when it has a usable key) first,
        then the environment chain in AI_PROVIDER_ORDER.
        """
        providers: List[ChatProvider] = []
        if user_settings is not None and user_settings.api_key_encrypted:
            api_key = decrypt_secret(user_settings.api_key_encrypted)
            if api_key:
                name = getattr(user_settings.provider, "value", user_settings.provider)
                providers.append(
                    build_provider(
                        name,
                        api_key,
                        model=user_settings.model,
                        temperature=user_settings.temperature,
                        max_tokens=user_settings.max_tokens,
                    )
                )
            else:
                logger.warning(
                    "Stored API key for user %s could not be decrypted", user_settings.user_id
                )

        for provider in providers_from_env():
            if any(p.name == provider.name and p.api_key == provider.api_key for p in providers):
                continue
            providers.append(provider)
        return providers

    def run_chain(
        self,
        prompt: str,
        providers: Sequence[ChatProvider],
        synthetic: Optional[Callable[[], ProviderReply]] = None,
        system_prompt: Optional[str] = None,
    ) -> ProviderReply:
        """
        Try each provider once, in order. Falls through on ProviderError.

        When every provider failed (or there were none) the synthetic
        strategy answers; without one, UpstreamProviderError is raised.
        """
        errors: List[str] = []
        if providers:
            with self._client() as client:
                for provider in providers:
                    logger.info("Calling AI provider %s (model %s)", provider.name, provider.model)
                    try:
                        reply = provider.complete(client, prompt, system_prompt=system_prompt)
                    except ProviderError as e:
                        logger.warning("AI provider %s failed: %s", e.provider, e.message)
                        errors.append(str(e))
                        continue
                    logger.info("AI provider %s answered (%d chars)", provider.name, len(reply.text))
                    return reply

        if synthetic is not None:
            if providers:
                logger.warning("All AI providers failed, using synthetic analysis")
            else:
                logger.info("No AI provider configured, using synthetic analysis")
            return synthetic()

        raise UpstreamProviderError("; ".join(errors) or "no AI provider configured")

    def analyze(
        self,
        prompt: Optional[str],
        files: Sequence[Any],
        providers: Optional[Sequence[ChatProvider]] = None,
    ) -> Dict[str, Any]:
        """Analysis of extracted file contents. Never fails once inputs are valid."""
        if not (prompt or "").strip() or not files:
            raise ValidationError("prompt and files are required")

        context = build_full_context(prompt, files)
        if providers is None:
            providers = self.resolve_providers()

        reply = self.run_chain(
            context,
            providers,
            synthetic=FallbackAnalysis(context),
            system_prompt=tpl.ANALYSIS_SYSTEM_PROMPT,
        )
        result = reply.parsed if reply.parsed is not None else parse_ai_response(reply.text)
        result["model_used"] = reply.model
        return result

    def complete_for_case(
        self,
        case: Case,
        default_prompt: str,
        providers: Sequence[ChatProvider],
    ) -> ProviderReply:
        """
        Processing-path completion. With no provider configured the demo
        answer is returned; when configured providers all fail the error
        propagates unless AI_FALLBACK_ON_PROVIDER_FAILURE is set.
        """
        synthetic = None
        if not providers or settings.AI_FALLBACK_ON_PROVIDER_FAILURE:
            synthetic = CaseMockResponse(case, default_prompt)
        return self.run_chain(
            build_case_prompt(case, default_prompt),
            providers,
            synthetic=synthetic,
            system_prompt=default_prompt,
        )

    def test_connection(
        self,
        provider_name: Optional[str],
        api_key: Optional[str],
        model: Optional[str],
    ) -> Dict[str, Any]:
        """One short probe request. Provider failures are reported, not raised."""
        if not provider_name or not api_key or not model:
            raise ValidationError("provider, apiKey and model are required")
        if provider_name not in SUPPORTED_PROVIDERS:
            raise ValidationError(f"Unsupported provider: {provider_name}")

        provider = build_provider(provider_name, api_key, model)
        logger.info("Testing connection to %s with model %s", provider_name, model)

        started = time.monotonic()
        with self._client() as client:
            try:
                reply = provider.complete(
                    client, tpl.CONNECTION_TEST_PROMPT, max_tokens=10, temperature=0.1
                )
                result = {
                    "success": True,
                    "message": f"Connection to {provider.label} established",
                    "details": {"model": reply.model, "response": reply.text.strip()},
                }
            except ProviderError as e:
                logger.warning("Connection test to %s failed: %s", provider_name, e.message)
                result = {
                    "success": False,
                    "message": f"Connection to {provider.label} failed: {e.message}",
                    "details": {"error": e.message, "status_code": e.status_code},
                }
        result["responseTime"] = int((time.monotonic() - started) * 1000)
        return result


ai_service = AIService()
