"""LLM client setup and inference — wraps the openai SDK.

Talks to any OpenAI-compatible chat completions endpoint: Perplexity by
default, or another provider's compatible base URL.  The ``create_client``
factory handles API-key resolution.

The public interface is ``ChatClient.complete(prompt, model=..., system=...)``
returning an object with a ``.text`` attribute, which keeps call sites and
mocks stable.  ``call_llm`` adds retries on transient errors, strips markdown
fences and stray prose around the JSON object, and makes one repair call when
the reply is not valid JSON.
"""

import json
import logging
import os
import re
import time

import openai as _openai

from literatus.models import Config, LLMError

logger = logging.getLogger(__name__)

#: Waits before each retry of a transient failure; one retry per entry.
_RETRY_DELAYS_S = (1.0, 2.0)

_STATUS_IN_MESSAGE = re.compile(r"Error code:\s*(\d{3})", re.IGNORECASE)

#: Checked in order when ``Config.api_key`` is not set.
_API_KEY_ENV_VARS = ("LLM_API_KEY", "PERPLEXITY_API_KEY", "ANTHROPIC_API_KEY")


# ---------------------------------------------------------------------------
# Client wrapper
# ---------------------------------------------------------------------------


class _CompletionResponse:
    """Thin wrapper presenting an openai chat response as ``response.text``."""

    __slots__ = ("text",)

    def __init__(self, text: str) -> None:
        self.text = text


class ChatClient:
    """OpenAI-compatible chat client.

    Wraps ``openai.OpenAI``.  A default model is stored at construction time;
    individual calls may override it, since extraction and analysis use
    different models.

    Attributes:
        model:    Default model identifier for completion requests.
        base_url: API base URL, kept for log messages.
    """

    def __init__(
        self,
        model: str,
        base_url: str,
        api_key: str,
        timeout_s: int = 120,
        max_output_tokens: int | None = None,
    ) -> None:
        self.model = model
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.max_output_tokens = max_output_tokens
        self._client = _openai.OpenAI(base_url=base_url, api_key=api_key)

    def complete(
        self, prompt: str, model: str | None = None, system: str | None = None
    ) -> _CompletionResponse:
        """Send a chat completion request and return the model's reply."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        kwargs: dict = dict(
            model=model or self.model,
            messages=messages,
            timeout=self.timeout_s,
        )
        if self.max_output_tokens is not None:
            kwargs["max_tokens"] = self.max_output_tokens
        response = self._client.chat.completions.create(**kwargs)
        return _CompletionResponse(text=response.choices[0].message.content or "")


# ---------------------------------------------------------------------------
# Public helpers
# ---------------------------------------------------------------------------


def resolve_api_key(config: Config) -> str | None:
    """Return the API key from config or the environment, or ``None``.

    Resolution order: ``config.api_key``, then the ``LLM_API_KEY``,
    ``PERPLEXITY_API_KEY`` and ``ANTHROPIC_API_KEY`` environment variables.
    """
    if config.api_key:
        return config.api_key
    for name in _API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def create_client(config: Config) -> ChatClient:
    """Create a client from configuration.

    Raises:
        LLMError: if no API key can be resolved.
    """
    api_key = resolve_api_key(config)
    if api_key is None:
        raise LLMError(
            "No API key configured; set LLM_API_KEY (or PERPLEXITY_API_KEY) "
            "or pass --api-key"
        )
    return ChatClient(
        model=config.analyze_model,
        base_url=config.base_url,
        api_key=api_key,
        timeout_s=config.timeout_s,
        max_output_tokens=config.max_output_tokens,
    )



def call_llm(
    client: ChatClient,
    prompt: str,
    model: str | None = None,
    system: str | None = None,
) -> dict:
    """Send ``prompt`` and return the JSON object in the model's reply.

    Transient backend errors (HTTP 429 and 5xx) are retried after
    ``_RETRY_DELAYS_S``.  A reply that does not parse gets exactly one repair
    request; if that fails too, the error for the first reply is raised.

    Raises:
        LLMError: if the call keeps failing or no JSON object can be read.
    """
    model_name = model or client.model
    logger.info("Calling LLM  model=%s  backend=%s", model_name, client.base_url)
    started = time.monotonic()
    text = _complete_with_retries(client, prompt, model, system)
    logger.info(
        "Response received (%.1fs, %s chars)",
        time.monotonic() - started,
        f"{len(text):,}",
    )

    try:
        return _extract_json(text)
    except LLMError as first_error:
        logger.warning("Reply from %s is not valid JSON; asking for a repair", model_name)
        repaired = _request_repair(client, text, model)
        if repaired is not None:
            try:
                return _extract_json(repaired)
            except LLMError:
                pass
        raise first_error


def _strip_code_fences(text: str) -> str:
    """Drop markdown code fences (```json ... ```) wrapped around a reply."""
    return text.replace("```json", "").replace("```", "").strip()


def _extract_json(text: str) -> dict:
    """Parse the JSON object embedded in ``text``.

    The object is taken to run from the first ``{`` to the last ``}`` once
    code fences are removed, so prose before or after it is ignored.

    Raises:
        LLMError: if there is no brace-delimited span or it does not parse.
    """
    body = _strip_code_fences(text)
    start = body.find("{")
    end = body.rfind("}") + 1
    if start < 0 or end <= start:
        raise LLMError(f"No JSON object found in LLM response: {text[:200]!r}")
    try:
        return json.loads(body[start:end])
    except json.JSONDecodeError as e:
        raise LLMError(f"LLM response is not valid JSON: {e}") from e


_REPAIR_PROMPT = """\
The text below should be one JSON object describing a research paper, but it
does not parse. Return that object with its syntax corrected: fix quoting,
escaping, commas and brackets only. Keep every key and value you can, add no
new information, and reply with the JSON alone.

{payload}"""


def _request_repair(client: ChatClient, bad_text: str, model: str | None) -> str | None:
    """One syntax-repair request; ``None`` if the request itself fails."""
    try:
        return client.complete(_REPAIR_PROMPT.format(payload=bad_text), model=model).text
    except Exception as exc:
        logger.warning("JSON repair request failed: %s", exc)
        return None


def _complete_with_retries(
    client: ChatClient, prompt: str, model: str | None, system: str | None
) -> str:
    """Run one completion, waiting and retrying on transient backend errors."""
    delays = iter(_RETRY_DELAYS_S)
    attempt = 0
    while True:
        attempt += 1
        try:
            return client.complete(prompt, model=model, system=system).text
        except Exception as exc:
            delay_s = next(delays, None) if _is_transient(exc) else None
            if delay_s is None:
                raise LLMError(f"LLM call failed: {exc}") from exc
            logger.warning(
                "Transient LLM error on attempt %d (%s); retrying in %.1fs",
                attempt,
                exc,
                delay_s,
            )
            time.sleep(delay_s)


def _is_transient(exc: Exception) -> bool:
    """Rate limits (429) and server-side errors (5xx) are worth retrying."""
    status = _status_code(exc)
    return status is not None and (status == 429 or 500 <= status <= 599)


def _status_code(exc: Exception) -> int | None:
    """HTTP status carried by an SDK exception, or parsed from its message."""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    match = _STATUS_IN_MESSAGE.search(str(exc))
    return int(match.group(1)) if match else None
