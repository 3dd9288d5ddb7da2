"""Records produced by probes and detection cycles."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class TokenCounts:
    local: int = 0
    completion: int = 0
    total: int = 0


@dataclass(frozen=True)
class ProbeOutcome:
    name: str
    passed: bool
    error: str | None = None
    raw_response: str | None = None
    tokens: TokenCounts | None = None

    def __post_init__(self):
        if self.error is not None and self.passed:
            raise ValueError("a probe that errored cannot pass")

    @classmethod
    def failed(
        cls,
        name: str,
        error: str,
        *,
        raw_response: str | None = None,
        tokens: TokenCounts | None = None,
    ) -> "ProbeOutcome":
        return cls(name=name, passed=False, error=error, raw_response=raw_response, tokens=tokens)


@dataclass(frozen=True)
class Result:
    timestamp: datetime
    endpoint: str
    is_real_api: bool = False
    max_tokens_ok: bool = False
    logprobs_ok: bool = False
    multiple_ok: bool = False
    stop_sequence_ok: bool = False
    error: str | None = None
    raw_response: str | None = None
    local_token_count: int = 0
    api_token_count: int = 0
    api_total_tokens: int = 0
    outcomes: tuple[ProbeOutcome, ...] = field(default=(), repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("outcomes")
        data["timestamp"] = self.timestamp.isoformat()
        return data
