"""Heuristic checks for whether an endpoint honors request parameters.

Every probe sends exactly one chat-completion request and returns a
ProbeOutcome. A probe never raises: transport, decode and response-shape
failures become the outcome's error, and an errored probe never passes.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from ..utils.logging_config import StructuredLogger
from .client import ProbeClient, truncate_text
from .config import DetectorConfig
from .errors import ProbeError, ResponseShapeError, TokenCountError
from .models import ProbeOutcome, TokenCounts
from .tokens import count_tokens

logger = StructuredLogger(__name__)

MAX_TOKENS = "max_tokens"
LOGPROBS = "logprobs"
MULTIPLE = "multiple"
STOP_SEQUENCE = "stop_sequence"

MAX_TOKENS_BOUND = 10
MAX_TOKENS_PROMPT = (
    "# The history, present state and future of artificial intelligence\n\n"
    "Artificial intelligence (AI)"
)

LOGPROBS_PROMPT = "What is the capital of France?"
TOP_LOGPROBS = 5

MULTIPLE_PROMPT = "Tell me a short joke"
MULTIPLE_N = 3
MULTIPLE_TEMPERATURE = 1.0

STOP_MARKER = "THE_END"
STOP_PROMPT = f"Write a short story. Do not include the word {STOP_MARKER}."

ProbeFunc = Callable[[ProbeClient, DetectorConfig], ProbeOutcome]


def _payload(config: DetectorConfig, prompt: str, **extra: Any) -> dict[str, Any]:
    return {
        "model": config.model,
        "messages": [{"role": "user", "content": prompt}],
        **extra,
    }


def _choices(body: dict[str, Any]) -> list:
    choices = body.get("choices")
    if not isinstance(choices, list):
        raise ResponseShapeError("response has no choices array")
    return choices


def _first_choice(body: dict[str, Any]) -> dict[str, Any]:
    choices = _choices(body)
    if not choices or not isinstance(choices[0], dict):
        raise ResponseShapeError("response has no usable first choice")
    return choices[0]


def _message_content(choice: dict[str, Any]) -> str | None:
    message = choice.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None


def _usage_int(body: dict[str, Any], key: str) -> int | None:
    usage = body.get("usage")
    if not isinstance(usage, dict):
        return None
    value = usage.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # json.loads accepts NaN and Infinity.
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def _local_count(text: str) -> int:
    try:
        return count_tokens(text)
    except TokenCountError as exc:
        logger.warning("Local token count failed", error=str(exc))
        return -1


def check_max_tokens(client: ProbeClient, config: DetectorConfig) -> ProbeOutcome:
    """Pass when the completion stays within a small max_tokens bound.

    The API-reported usage.completion_tokens is preferred; without it the
    returned text is counted locally.
    """
    local = _local_count(MAX_TOKENS_PROMPT)
    payload = _payload(config, MAX_TOKENS_PROMPT, max_tokens=MAX_TOKENS_BOUND)
    try:
        response = client.post_json(config, payload)
    except ProbeError as exc:
        return ProbeOutcome.failed(MAX_TOKENS, str(exc), tokens=TokenCounts(local=local))

    body = response.body
    completion = _usage_int(body, "completion_tokens")
    total = _usage_int(body, "total_tokens") or 0
    content = None
    choices = body.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        content = _message_content(choices[0])

    if completion is None:
        if content is None:
            return ProbeOutcome.failed(
                MAX_TOKENS,
                "response has neither usage.completion_tokens nor message content, "
                f"body: {truncate_text(response.text)}",
                raw_response=response.text,
                tokens=TokenCounts(local=local, total=total),
            )
        try:
            completion = count_tokens(content)
        except TokenCountError as exc:
            return ProbeOutcome.failed(
                MAX_TOKENS,
                f"usage missing and local count failed: {exc}",
                raw_response=response.text,
                tokens=TokenCounts(local=local, total=total),
            )
        source = "local"
    else:
        source = "api"

    passed = completion <= MAX_TOKENS_BOUND
    logger.info(
        "Max tokens check",
        bound=MAX_TOKENS_BOUND,
        local_prompt_tokens=local,
        completion_tokens=completion,
        completion_source=source,
        total_tokens=total,
        passed=passed,
    )
    logger.debug("Max tokens check content", content=content)
    return ProbeOutcome(
        name=MAX_TOKENS,
        passed=passed,
        raw_response=response.text,
        tokens=TokenCounts(local=local, completion=completion, total=total),
    )


def check_logprobs(client: ProbeClient, config: DetectorConfig) -> ProbeOutcome:
    payload = _payload(config, LOGPROBS_PROMPT, logprobs=True, top_logprobs=TOP_LOGPROBS)
    try:
        response = client.post_json(config, payload)
        choice = _first_choice(response.body)
    except ProbeError as exc:
        return ProbeOutcome.failed(LOGPROBS, str(exc))

    has_logprobs = isinstance(choice.get("logprobs"), dict)
    logger.info("Logprobs check", requested=True, returned=has_logprobs)
    return ProbeOutcome(name=LOGPROBS, passed=has_logprobs, raw_response=response.text)


def check_multiple_responses(client: ProbeClient, config: DetectorConfig) -> ProbeOutcome:
    payload = _payload(config, MULTIPLE_PROMPT, n=MULTIPLE_N, temperature=MULTIPLE_TEMPERATURE)
    try:
        response = client.post_json(config, payload)
        count = len(_choices(response.body))
    except ProbeError as exc:
        return ProbeOutcome.failed(MULTIPLE, str(exc))

    logger.info("Multiple responses check", requested_n=MULTIPLE_N, returned_n=count)
    return ProbeOutcome(name=MULTIPLE, passed=count > 1, raw_response=response.text)


def check_stop_sequence(client: ProbeClient, config: DetectorConfig) -> ProbeOutcome:
    """Pass when the reply does not contain the stop marker.

    Weak signal: a model that simply obeys the instruction in the prompt
    passes even when the stop parameter was dropped on the way.
    """
    payload = _payload(config, STOP_PROMPT, stop=[STOP_MARKER])
    try:
        response = client.post_json(config, payload)
        content = _message_content(_first_choice(response.body))
        if content is None:
            raise ResponseShapeError("first choice has no message content")
    except ProbeError as exc:
        return ProbeOutcome.failed(STOP_SEQUENCE, str(exc))

    passed = STOP_MARKER not in content
    preview = content if len(content) <= 40 else content[:40] + "..."
    logger.info("Stop sequence check", stop=STOP_MARKER, passed=passed, preview=preview)
    return ProbeOutcome(name=STOP_SEQUENCE, passed=passed, raw_response=response.text)


# Fixed execution order of a detection cycle.
PROBES: tuple[tuple[str, ProbeFunc], ...] = (
    (MAX_TOKENS, check_max_tokens),
    (LOGPROBS, check_logprobs),
    (MULTIPLE, check_multiple_responses),
    (STOP_SEQUENCE, check_stop_sequence),
)

PROBE_LABELS = {
    MAX_TOKENS: "Max tokens",
    LOGPROBS: "Logprobs",
    MULTIPLE: "Multiple",
    STOP_SEQUENCE: "Stop sequence",
}
