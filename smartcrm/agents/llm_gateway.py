"""
SmartCRM - Unified LLM Gateway
Provides a single interface for all LLM calls (email composer, SDR agents).

Features:
- Resilient chat-completion client with health checks and retries
- Provider routing: configured provider -> hard fail (callers fall back to templates)
- Request tracing with stage names
- Logging redaction (no secrets or full prompts in logs)
"""

import json
import logging
import re
import time
import uuid
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from smartcrm.config import LLM_API_BASE, LLM_API_KEY, LLM_MODEL, LLM_TIMEOUT

logger = logging.getLogger("smartcrm.agents.llm_gateway")

# Retry config
MAX_RETRIES = 3
RETRY_BACKOFF_BASE = 2  # seconds

_JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


# ─── CHAT COMPLETION CLIENT ───────────────────────────────────

class LLMError(Exception):
    """Raised when the provider returns an error or is unreachable."""
    pass


class ModelNotFoundError(LLMError):
    """Raised when the requested model is not available."""
    pass


class ProviderNotConfiguredError(LLMError):
    """Raised when no API key is configured."""
    pass


class ChatCompletionClient:
    """Resilient client for an OpenAI-compatible chat completions API."""

    def __init__(self, api_base: str = None, api_key: str = None,
                 model: str = None, timeout: int = None):
        self.api_base = (api_base or LLM_API_BASE).rstrip("/")
        self.api_key = LLM_API_KEY if api_key is None else api_key
        self.model = model or LLM_MODEL
        self.timeout = timeout or LLM_TIMEOUT
        self._healthy = None

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def health_check(self) -> dict:
        """Check the provider is reachable and the model is listed.

        Returns:
            {"healthy": bool, "models": [...], "model_available": bool, "error": str|None}
        """
        result = {"healthy": False, "models": [], "model_available": False, "error": None}

        if not self.api_key:
            result["error"] = "No API key configured. Set LLM_API_KEY or OPENAI_API_KEY."
            self._healthy = False
            return result

        try:
            req = Request(f"{self.api_base}/models", headers=self._headers(), method="GET")
            with urlopen(req, timeout=10) as resp:
                data = json.loads(resp.read().decode())
                models = [m.get("id", "") for m in data.get("data", [])]
                result["models"] = models
                result["healthy"] = True
                result["model_available"] = self.model in models

                if not result["model_available"]:
                    result["error"] = (
                        f"Model '{self.model}' not listed. Available: {', '.join(models[:5])}"
                    )

        except HTTPError as e:
            result["error"] = f"Provider at {self.api_base} returned HTTP {e.code}"
            logger.warning("LLM health check failed: HTTP %s", e.code)
        except URLError as e:
            result["error"] = f"Cannot reach LLM provider at {self.api_base}: {e.reason}"
            logger.warning("LLM health check failed: %s", e)
        except Exception as e:
            result["error"] = f"Unexpected error during health check: {e}"
            logger.error("LLM health check error: %s", e)

        self._healthy = result["healthy"] and result["model_available"]
        return result

    def generate(self, prompt: str, model: str = None, temperature: float = 0.7,
                 max_tokens: int = 1000, system: str = None,
                 json_mode: bool = False) -> dict:
        """Send a chat completion request with retries.

        Returns:
            {"response": str, "model": str, "total_tokens": int}

        Raises:
            ProviderNotConfiguredError: No API key.
            ModelNotFoundError: The model does not exist.
            LLMError: On unrecoverable failure.
        """
        if not self.api_key:
            raise ProviderNotConfiguredError("LLM API key not configured")

        model = model or self.model
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        body = json.dumps(payload).encode("utf-8")

        last_error = None
        for attempt in range(MAX_RETRIES):
            try:
                req = Request(
                    f"{self.api_base}/chat/completions",
                    data=body,
                    headers=self._headers(),
                    method="POST",
                )
                with urlopen(req, timeout=self.timeout) as resp:
                    data = json.loads(resp.read().decode())
                    choices = data.get("choices") or []
                    if not choices:
                        raise LLMError("Provider returned no choices")
                    content = choices[0].get("message", {}).get("content") or ""
                    return {
                        "response": content,
                        "model": data.get("model", model),
                        "total_tokens": data.get("usage", {}).get("total_tokens", 0),
                    }

            except HTTPError as e:
                error_body = ""
                try:
                    error_body = e.read().decode()
                except Exception:
                    pass
                if e.code == 404 or "model_not_found" in error_body:
                    raise ModelNotFoundError(f"Model '{model}' not found at {self.api_base}")
                if e.code in (401, 403):
                    raise LLMError(f"Provider rejected credentials (HTTP {e.code})")
                last_error = f"HTTP {e.code}: {error_body[:200]}"
                logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, MAX_RETRIES, last_error)

            except URLError as e:
                last_error = f"Connection error: {e.reason}"
                logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, MAX_RETRIES, last_error)

            except LLMError as e:
                last_error = str(e)
                logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, MAX_RETRIES, last_error)

            except Exception as e:
                last_error = str(e)
                logger.warning("LLM attempt %d/%d failed: %s", attempt + 1, MAX_RETRIES, last_error)

            # Exponential backoff
            if attempt < MAX_RETRIES - 1:
                sleep_time = RETRY_BACKOFF_BASE ** (attempt + 1)
                logger.info("Retrying in %ss...", sleep_time)
                time.sleep(sleep_time)

        raise LLMError(
            f"LLM provider failed after {MAX_RETRIES} attempts. Last error: {last_error}. "
            f"Base: {self.api_base}, Model: {model}."
        )


# ─── LLM GATEWAY (unified interface) ──────────────────────────

class LLMGateway:
    """Unified LLM interface for every content-generating handler.

    Usage:
        gateway = get_gateway()
        if gateway.is_configured:
            result = gateway.generate(prompt="Write a cold email...", stage_name="cold_email")
    """

    def __init__(self, client: ChatCompletionClient = None):
        self.client = client or ChatCompletionClient()
        self._initialized = False

    @property
    def is_configured(self) -> bool:
        return bool(self.client.api_key)

    @property
    def provider_name(self) -> str:
        return "openai" if self.is_configured else "template"

    @property
    def model_name(self) -> str:
        return self.client.model if self.is_configured else "template-v1"

    def initialize(self) -> dict:
        """Run startup health check.

        Returns:
            {"provider": str, "status": "ok"|"degraded"|"unavailable", "details": {...}}
        """
        self._initialized = True
        if not self.is_configured:
            logger.warning("LLM Gateway: no API key, handlers will use templates")
            return {"provider": "template", "status": "degraded",
                    "details": {"error": "No API key configured"}}

        health = self.client.health_check()
        if health["healthy"] and health["model_available"]:
            logger.info("LLM Gateway ready: %s, model %s", self.client.api_base, self.client.model)
            return {"provider": "openai", "status": "ok", "details": health}

        logger.error("LLM Gateway unavailable: %s", health.get("error", "unknown"))
        return {"provider": "openai", "status": "unavailable", "details": health}

    def generate(self, prompt: str, stage_name: str = "unknown",
                 model: str = None, temperature: float = 0.7,
                 max_tokens: int = 1000, system: str = None,
                 json_mode: bool = False, request_id: str = None) -> dict:
        """Generate text via the configured provider.

        Returns:
            {"response": str, "provider": str, "model": str, "request_id": str,
             "stage": str, "duration_ms": int}

        Raises:
            LLMError: If the provider fails or is not configured.
        """
        request_id = request_id or uuid.uuid4().hex[:12]
        start = time.time()

        prompt_preview = prompt[:80].replace("\n", " ") + ("..." if len(prompt) > 80 else "")
        logger.info("[%s] LLM request: stage=%s, prompt='%s'", request_id, stage_name, prompt_preview,
                    extra={"request_id": request_id})

        try:
            result = self.client.generate(
                prompt=prompt, model=model, temperature=temperature,
                max_tokens=max_tokens, system=system, json_mode=json_mode,
            )
        except ModelNotFoundError as e:
            logger.error("[%s] Model not found: %s", request_id, e)
            raise
        except LLMError as e:
            logger.warning("[%s] LLM failed: %s", request_id, e)
            raise

        duration_ms = int((time.time() - start) * 1000)
        logger.info("[%s] LLM responded in %dms, tokens=%s",
                    request_id, duration_ms, result.get("total_tokens", "?"),
                    extra={"request_id": request_id, "duration_ms": duration_ms})
        return {
            "response": result["response"],
            "provider": "openai",
            "model": result.get("model", self.client.model),
            "request_id": request_id,
            "stage": stage_name,
            "duration_ms": duration_ms,
        }


def extract_json(text: str) -> dict:
    """Parse the first {...} block in a completion.

    Raises:
        ValueError: No JSON object could be parsed.
    """
    if not text:
        raise ValueError("Empty completion")
    match = _JSON_BLOCK.search(text)
    candidate = match.group(0) if match else text
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ValueError(f"Completion is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Completion JSON is not an object")
    return parsed


# ─── MODULE-LEVEL SINGLETON ───────────────────────────────────

_gateway_instance = None


def get_gateway() -> LLMGateway:
    """Get or create the module-level LLM Gateway singleton."""
    global _gateway_instance
    if _gateway_instance is None:
        _gateway_instance = LLMGateway()
    return _gateway_instance


def set_gateway(gateway: LLMGateway = None):
    """Replace the singleton (None resets it to a fresh default on next use)."""
    global _gateway_instance
    _gateway_instance = gateway
