"""Provider gateway: per-call provider selection, timeout, and error normalization."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import threading
import time
from collections.abc import Callable, Mapping

import httpx

from comprehendo_app.application.llm import (
    ExerciseGenerationError,
    LLMProvider,
    LLMServiceProvider,
    ProviderCallError,
    ProviderCallRequest,
    TextGenerationPort,
)
from comprehendo_app.infrastructure.llm.clients import GoogleAIClient, TogetherAIClient
from comprehendo_app.infrastructure.llm.config import (
    LLMSettings,
    ProviderTarget,
    load_llm_settings,
)
from comprehendo_app.infrastructure.llm.errors import (
    ProviderTimeoutError,
    ProviderTransportError,
    UnknownProviderError,
)

LOGGER = logging.getLogger(__name__)

ProviderFactory = Callable[[], LLMProvider]
SettingsLoader = Callable[[], LLMSettings]

DEFAULT_PROVIDER_FACTORIES: Mapping[LLMServiceProvider, ProviderFactory] = {
    LLMServiceProvider.GOOGLE: GoogleAIClient,
    LLMServiceProvider.TOGETHER: TogetherAIClient,
}


class _LazyProviderCell:
    """Holds one provider client created on first use, exactly once."""

    def __init__(self, factory: ProviderFactory) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._instance: LLMProvider | None = None

    def get(self) -> LLMProvider:
        instance = self._instance
        if instance is not None:
            return instance
        with self._lock:
            if self._instance is None:
                self._instance = self._factory()
            return self._instance

    def take(self) -> LLMProvider | None:
        with self._lock:
            instance, self._instance = self._instance, None
            return instance


class LazyProviderRegistry:
    """Process-wide provider clients, each initialized once under concurrent first use."""

    def __init__(
        self,
        factories: Mapping[LLMServiceProvider, ProviderFactory] | None = None,
    ) -> None:
        resolved_factories = factories or DEFAULT_PROVIDER_FACTORIES
        self._cells = {
            provider: _LazyProviderCell(factory)
            for provider, factory in resolved_factories.items()
        }

    def get(self, provider: LLMServiceProvider) -> LLMProvider:
        """Return shared client for provider, creating it on first call."""
        cell = self._cells.get(provider)
        if cell is None:
            raise UnknownProviderError(f"Provider client is not configured: {provider.value}")
        return cell.get()

    async def aclose(self) -> None:
        """Close every client created so far; later calls recreate them."""
        for cell in self._cells.values():
            instance = cell.take()
            if instance is not None:
                await instance.aclose()


class ProviderGateway(TextGenerationPort):
    """Call the configured provider and return its raw text output."""

    def __init__(
        self,
        *,
        registry: LazyProviderRegistry | None = None,
        settings_loader: SettingsLoader = load_llm_settings,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._registry = registry or LazyProviderRegistry()
        self._settings_loader = settings_loader
        self._monotonic = monotonic

    async def call(self, prompt: str) -> str:
        """Generate text for prompt; every failure leaves as ProviderCallError or config error."""
        settings = self._settings_loader()
        target = settings.active_target()
        provider = self._registry.get(target.provider)
        request = ProviderCallRequest(
            model=target.model,
            api_key=target.api_key,
            prompt=prompt,
            max_output_tokens=settings.sampling.max_output_tokens,
            temperature=settings.sampling.temperature,
            top_p=settings.sampling.top_p,
            top_k=settings.sampling.top_k,
            timeout_seconds=settings.timeout_seconds,
        )
        prompt_hash = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
        started = self._monotonic()

        try:
            async with asyncio.timeout(settings.timeout_seconds):
                response = await provider.generate(request)
        except ExerciseGenerationError as exc:
            self._log_failure(target, prompt_hash, started, exc)
            raise
        except (TimeoutError, httpx.TimeoutException) as exc:
            self._log_failure(target, prompt_hash, started, exc)
            raise ProviderTimeoutError(
                f"{target.provider.value} call exceeded {settings.timeout_seconds}s timeout.",
                provider=target.provider,
            ) from exc
        except httpx.HTTPError as exc:
            self._log_failure(target, prompt_hash, started, exc)
            raise ProviderTransportError(
                f"{target.provider.value} transport failure: {exc.__class__.__name__}.",
                provider=target.provider,
            ) from exc
        except Exception as exc:
            self._log_failure(target, prompt_hash, started, exc)
            raise ProviderCallError(
                f"{target.provider.value} call failed: {exc}",
                provider=target.provider,
            ) from exc

        LOGGER.info(
            (
                "event=llm_call_success provider=%s model=%s prompt_hash=%s latency_ms=%s "
                "input_tokens=%s output_tokens=%s output_length=%s"
            ),
            target.provider.value,
            target.model,
            prompt_hash,
            _compute_latency_ms(started, self._monotonic()),
            response.input_tokens,
            response.output_tokens,
            len(response.output_text),
        )
        return response.output_text

    async def aclose(self) -> None:
        """Release provider clients owned by the registry."""
        await self._registry.aclose()

    def _log_failure(
        self,
        target: ProviderTarget,
        prompt_hash: str,
        started: float,
        error: Exception,
    ) -> None:
        LOGGER.warning(
            (
                "event=llm_call_failed provider=%s model=%s prompt_hash=%s latency_ms=%s "
                "error_type=%s"
            ),
            target.provider.value,
            target.model,
            prompt_hash,
            _compute_latency_ms(started, self._monotonic()),
            error.__class__.__name__,
        )


def _compute_latency_ms(started: float, now: float) -> int:
    return max(0, int((now - started) * 1000))
