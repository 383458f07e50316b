"""HTTP clients for Google AI and Together AI behind a unified DTO contract."""

from __future__ import annotations

from typing import cast

import httpx

from comprehendo_app.application.llm import (
    LLMProvider,
    LLMServiceProvider,
    ProviderCallRequest,
    ProviderCallResponse,
)
from comprehendo_app.infrastructure.llm.errors import (
    ProviderRateLimitError,
    ProviderRequestError,
    ProviderResponseError,
    ProviderSafetyBlockError,
    ProviderServerError,
)

GOOGLE_SAFETY_FINISH_REASONS = frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})
TOGETHER_SAFETY_FINISH_REASONS = frozenset({"content_filter"})


class GoogleAIClient(LLMProvider):
    """Gemini generateContent API adapter."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = "https://generativelanguage.googleapis.com",
    ) -> None:
        self._http_client = http_client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = http_client is None

    @property
    def provider(self) -> LLMServiceProvider:
        """Return provider identity."""
        return LLMServiceProvider.GOOGLE

    async def aclose(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client:
            await self._http_client.aclose()

    async def generate(self, request: ProviderCallRequest) -> ProviderCallResponse:
        """Execute one Gemini generateContent call."""
        generation_config: dict[str, object] = {
            "maxOutputTokens": request.max_output_tokens,
            "temperature": request.temperature,
            "topP": request.top_p,
            "topK": request.top_k,
            "candidateCount": request.candidate_count,
        }
        if request.response_format == "json":
            generation_config["responseMimeType"] = "application/json"

        payload: dict[str, object] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }
        headers = {
            "x-goog-api-key": request.api_key,
            "content-type": "application/json",
        }
        response = await self._http_client.post(
            f"/v1beta/models/{request.model}:generateContent",
            headers=headers,
            json=payload,
            timeout=request.timeout_seconds,
        )
        _raise_for_status(self.provider, response)

        payload_obj = _read_json_object(response, provider=self.provider)
        output_text = _extract_google_text(payload_obj)
        input_tokens, output_tokens = _extract_usage_tokens(
            payload_obj.get("usageMetadata"),
            input_key="promptTokenCount",
            output_key="candidatesTokenCount",
        )
        return ProviderCallResponse(
            output_text=output_text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


class TogetherAIClient(LLMProvider):
    """Together AI chat-completions API adapter."""

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = "https://api.together.xyz",
    ) -> None:
        self._http_client = http_client or httpx.AsyncClient(base_url=base_url)
        self._owns_client = http_client is None

    @property
    def provider(self) -> LLMServiceProvider:
        """Return provider identity."""
        return LLMServiceProvider.TOGETHER

    async def aclose(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client:
            await self._http_client.aclose()

    async def generate(self, request: ProviderCallRequest) -> ProviderCallResponse:
        """Execute one Together chat-completions call."""
        payload: dict[str, object] = {
            "model": request.model,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_output_tokens,
            "temperature": request.temperature,
            "top_p": request.top_p,
            "top_k": request.top_k,
            "n": request.candidate_count,
        }
        if request.response_format == "json":
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {request.api_key}",
            "content-type": "application/json",
        }
        response = await self._http_client.post(
            "/v1/chat/completions",
            headers=headers,
            json=payload,
            timeout=request.timeout_seconds,
        )
        _raise_for_status(self.provider, response)

        payload_obj = _read_json_object(response, provider=self.provider)
        output_text = _extract_together_text(payload_obj)
        input_tokens, output_tokens = _extract_usage_tokens(
            payload_obj.get("usage"),
            input_key="prompt_tokens",
            output_key="completion_tokens",
        )
        return ProviderCallResponse(
            output_text=output_text,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )


def _raise_for_status(provider: LLMServiceProvider, response: httpx.Response) -> None:
    status_code = response.status_code
    if status_code < 400:
        return

    message = f"{provider.value} request failed with status={status_code}."
    detail = _extract_error_detail(response)
    if detail:
        message = f"{message} detail={detail}"
    if detail and "SAFETY" in detail.upper():
        raise ProviderSafetyBlockError(message, provider=provider)
    if status_code == 429:
        raise ProviderRateLimitError(message, provider=provider)
    if 500 <= status_code <= 599:
        raise ProviderServerError(message, provider=provider)
    raise ProviderRequestError(message, provider=provider)


def _extract_error_detail(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        return _truncate_error_detail(text) if text else None

    if isinstance(payload, dict):
        payload_obj = _normalize_json_object(cast(dict[object, object], payload))
        detail = _read_message_from_error_payload(payload_obj)
        if detail:
            return _truncate_error_detail(detail)

    return None


def _read_message_from_error_payload(payload: dict[str, object]) -> str | None:
    error_obj = payload.get("error")
    if isinstance(error_obj, str) and error_obj.strip():
        return error_obj.strip()

    if isinstance(error_obj, dict):
        normalized_error = _normalize_json_object(cast(dict[object, object], error_obj))
        error_message = normalized_error.get("message")
        if isinstance(error_message, str) and error_message.strip():
            return error_message.strip()
        error_status = normalized_error.get("status") or normalized_error.get("type")
        if isinstance(error_status, str) and error_status.strip():
            return error_status.strip()

    message = payload.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()

    return None


def _truncate_error_detail(value: str, *, max_length: int = 300) -> str:
    if len(value) <= max_length:
        return value
    return f"{value[:max_length]}..."


def _read_json_object(
    response: httpx.Response,
    *,
    provider: LLMServiceProvider,
) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderResponseError(
            f"{provider.value} returned invalid JSON payload.",
            provider=provider,
        ) from exc

    if not isinstance(payload, dict):
        raise ProviderResponseError(
            f"{provider.value} response root must be a JSON object.",
            provider=provider,
        )
    return _normalize_json_object(cast(dict[object, object], payload))


def _extract_google_text(payload: dict[str, object]) -> str:
    provider = LLMServiceProvider.GOOGLE
    feedback = payload.get("promptFeedback")
    if isinstance(feedback, dict):
        feedback_obj = _normalize_json_object(cast(dict[object, object], feedback))
        block_reason = feedback_obj.get("blockReason")
        if isinstance(block_reason, str) and block_reason:
            raise ProviderSafetyBlockError(
                f"google blocked the prompt: blockReason={block_reason}.",
                provider=provider,
            )

    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        raise ProviderResponseError("google response is missing candidates.", provider=provider)
    candidate_items = cast(list[object], candidates)

    first_candidate = candidate_items[0]
    if not isinstance(first_candidate, dict):
        raise ProviderResponseError(
            "google first candidate has unexpected type.",
            provider=provider,
        )
    candidate_obj = _normalize_json_object(cast(dict[object, object], first_candidate))

    finish_reason = candidate_obj.get("finishReason")
    if isinstance(finish_reason, str) and finish_reason in GOOGLE_SAFETY_FINISH_REASONS:
        raise ProviderSafetyBlockError(
            f"google stopped generation: finishReason={finish_reason}.",
            provider=provider,
        )

    content = candidate_obj.get("content")
    if not isinstance(content, dict):
        raise ProviderResponseError("google candidate is missing content.", provider=provider)
    content_obj = _normalize_json_object(cast(dict[object, object], content))

    parts = content_obj.get("parts")
    if not isinstance(parts, list):
        raise ProviderResponseError("google candidate content has no parts.", provider=provider)

    text_chunks: list[str] = []
    for part in cast(list[object], parts):
        if not isinstance(part, dict):
            continue
        part_obj = _normalize_json_object(cast(dict[object, object], part))
        text = part_obj.get("text")
        if isinstance(text, str):
            text_chunks.append(text)

    combined = "".join(text_chunks).strip()
    if not combined:
        raise ProviderResponseError("google response contains no text content.", provider=provider)
    return combined


def _extract_together_text(payload: dict[str, object]) -> str:
    provider = LLMServiceProvider.TOGETHER
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        raise ProviderResponseError("together response is missing choices.", provider=provider)
    choice_items = cast(list[object], choices)

    first_choice = choice_items[0]
    if not isinstance(first_choice, dict):
        raise ProviderResponseError(
            "together first choice has unexpected type.",
            provider=provider,
        )
    first_choice_obj = _normalize_json_object(cast(dict[object, object], first_choice))

    finish_reason = first_choice_obj.get("finish_reason")
    if isinstance(finish_reason, str) and finish_reason in TOGETHER_SAFETY_FINISH_REASONS:
        raise ProviderSafetyBlockError(
            f"together stopped generation: finish_reason={finish_reason}.",
            provider=provider,
        )

    message = first_choice_obj.get("message")
    if not isinstance(message, dict):
        raise ProviderResponseError(
            "together first choice is missing message object.",
            provider=provider,
        )
    message_obj = _normalize_json_object(cast(dict[object, object], message))

    content = message_obj.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ProviderResponseError(
            "together message content is empty or invalid.",
            provider=provider,
        )
    return content


def _extract_usage_tokens(
    usage_obj: object,
    *,
    input_key: str,
    output_key: str,
) -> tuple[int | None, int | None]:
    if not isinstance(usage_obj, dict):
        return None, None
    usage = _normalize_json_object(cast(dict[object, object], usage_obj))

    return _as_optional_int(usage.get(input_key)), _as_optional_int(usage.get(output_key))


def _as_optional_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def _normalize_json_object(value: dict[object, object]) -> dict[str, object]:
    normalized: dict[str, object] = {}
    for key, item in value.items():
        normalized[str(key)] = item
    return normalized
