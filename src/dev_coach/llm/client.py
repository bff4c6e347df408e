# src/dev_coach/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import OpenAI

from ..core.ports import ChatMessage, ChatResult, ConfigRepo

logger = logging.getLogger(__name__)

BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible servers answer 404 for models they do not serve.
    return isinstance(exc, openai.NotFoundError)


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def friendly_llm_error_message(err: Exception | str) -> str:
    msg = str(err).strip() or "LLM error."
    if "API key is not set" in msg:
        return "AI is not configured (missing API key). Set DEV_COACH_OPENAI_API_KEY or `/config set ai_api_key <key>`."
    if "model list is empty" in msg:
        return "AI is not configured (no models). Set DEV_COACH_LLM_MODELS or `/config set ai_model <model>`."
    if "base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set DEV_COACH_OPENAI_BASE_URL."
    return msg


def _extract_text(completion: Any) -> str:
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError):
        return ""
    return (content or "").strip()


class OpenAIChatClient:
    """
    OpenAI-compatible chat client (OpenAI, OpenRouter, local servers).

    Behavior:
    - Tries the configured `ai_model` first, then the settings model list, in order.
    - 404 (model not available) -> cooldown for that model, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    - SDK retries are disabled to allow quick fallback across models.

    The API key may be overridden at runtime through the config store
    (`ai_api_key`); the underlying SDK client is rebuilt when it changes.
    """

    def __init__(self, settings: Any, config: ConfigRepo | None = None) -> None:
        self._settings = settings
        self._config = config
        self._client: OpenAI | None = None
        self._client_key: str | None = None
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    def _config_value(self, key: str) -> str | None:
        if self._config is None:
            return None
        try:
            v = self._config.get(key)
        except Exception:
            logger.exception("Config lookup failed for %s", key)
            return None
        return v.strip() if v and v.strip() else None

    def _api_key(self) -> str | None:
        return self._config_value("ai_api_key") or getattr(self._settings, "openai_api_key", None)

    def models(self) -> list[str]:
        preferred = self._config_value("ai_model")
        models = [m.strip() for m in (getattr(self._settings, "llm_models", []) or []) if m and m.strip()]
        if preferred:
            models = [preferred, *[m for m in models if m != preferred]]
        return models

    def _get_client(self) -> OpenAI:
        api_key = self._api_key()
        base_url = str(getattr(self._settings, "openai_base_url", "") or "")

        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set.")
        if not base_url.strip():
            raise RuntimeError("LLM base URL is not set.")

        if self._client is not None and self._client_key == api_key:
            return self._client

        timeout = _make_timeout(
            connect_s=float(getattr(self._settings, "llm_connect_timeout_seconds", 5.0)),
            read_s=float(getattr(self._settings, "llm_read_timeout_seconds", 30.0)),
        )
        self._client = OpenAI(base_url=base_url, api_key=str(api_key), timeout=timeout, max_retries=0)
        self._client_key = api_key
        return self._client

    def chat(self, messages: list[ChatMessage]) -> ChatResult:
        models = self.models()
        if not models:
            return None, friendly_llm_error_message("LLM model list is empty.")

        try:
            client = self._get_client()
        except RuntimeError as e:
            return None, friendly_llm_error_message(e)

        headers: dict[str, str] = dict(getattr(self._settings, "extra_headers", {}) or {})
        last_error: Exception | None = None
        now = time.monotonic()

        for model in models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s", model)
            t0 = time.monotonic()
            try:
                completion = client.chat.completions.create(
                    model=model,
                    messages=messages,
                    extra_headers=headers or None,
                )
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    logger.warning("LLM: authentication failed on model=%s", model)
                    return None, "AI authentication failed. Check your API key."

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            text = _extract_text(completion)
            if text:
                logger.info("LLM: reply from model=%s (%.2fs)", model, time.monotonic() - t0)
                return text, None
            last_error = RuntimeError(f"Model returned no content: {model}")

        if last_error is not None and _is_rate_limit_error(last_error):
            return None, "AI is rate-limited. Try again later."
        if last_error is not None and _is_connection_error(last_error):
            return None, "AI network/timeout error. Try again later or change models."
        return None, "All AI models failed."
