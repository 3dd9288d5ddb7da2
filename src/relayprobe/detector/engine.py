"""Detection cycles: run the probe suite and fold it into one Result."""

from __future__ import annotations

import threading
from datetime import datetime, UTC
from typing import Iterable

import httpx

from ..utils.logging_config import StructuredLogger
from .client import ProbeClient
from .config import DetectorConfig
from .history import ResultHistory
from .models import ProbeOutcome, Result, TokenCounts
from .probes import MAX_TOKENS, LOGPROBS, MULTIPLE, PROBES, PROBE_LABELS, STOP_SEQUENCE, ProbeFunc

logger = StructuredLogger(__name__)


class Detector:
    """Owns the configuration, the HTTP client and the result history.

    Cycles are serialized: a cycle that is triggered while another one runs
    waits for it, so history order is cycle start order.
    """

    def __init__(
        self,
        config: DetectorConfig,
        *,
        client: ProbeClient | None = None,
        transport: httpx.BaseTransport | None = None,
        probes: Iterable[tuple[str, ProbeFunc]] = PROBES,
    ):
        self._config = config.model_copy()
        self._config_lock = threading.Lock()
        self._client = client or ProbeClient(transport=transport)
        self._probes = tuple(probes)
        self._history = ResultHistory(config.max_history)
        self._cycle_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._running = 0
        self._started_at: datetime | None = None
        # A detect_now trigger that has not reached the cycle lock yet.
        self._trigger_pending = False

    @property
    def config(self) -> DetectorConfig:
        with self._config_lock:
            return self._config.model_copy()

    def update_config(self, config: DetectorConfig) -> None:
        with self._config_lock:
            self._config = config.model_copy()
        self._history.resize(config.max_history)
        logger.info("Detector configuration updated", **config.masked())

    def get_results(self) -> list[Result]:
        return self._history.all()

    def get_latest_result(self) -> Result | None:
        return self._history.latest()

    def is_detecting(self) -> bool:
        with self._state_lock:
            return self._running > 0

    def detection_started_at(self) -> datetime | None:
        with self._state_lock:
            return self._started_at if self._running > 0 else None

    def _run_probe(self, name: str, probe: ProbeFunc, config: DetectorConfig) -> ProbeOutcome:
        try:
            return probe(self._client, config)
        except Exception as exc:
            logger.error("Probe raised unexpectedly", probe=name, error=str(exc))
            return ProbeOutcome.failed(name, f"unexpected error: {exc}")

    def _begin(self) -> None:
        with self._state_lock:
            self._begin_locked()

    def _begin_locked(self) -> None:
        self._running += 1
        if self._running == 1:
            self._started_at = datetime.now(UTC)

    def _end(self) -> None:
        with self._state_lock:
            self._running -= 1

    def _serialized_cycle(self, *, triggered: bool = False) -> Result:
        try:
            with self._cycle_lock:
                if triggered:
                    with self._state_lock:
                        self._trigger_pending = False
                return self._cycle()
        finally:
            self._end()

    def detect_once(self) -> Result:
        """Run every probe once, append the Result to history and return it."""
        self._begin()
        return self._serialized_cycle()

    def _cycle(self) -> Result:
        config = self.config
        timestamp = datetime.now(UTC)
        logger.info("Detection cycle started", endpoint=config.endpoint, model=config.model)

        outcomes = {name: self._run_probe(name, probe, config) for name, probe in self._probes}

        errors = [
            f"{PROBE_LABELS.get(name, name)} check error: {outcome.error}"
            for name, outcome in outcomes.items()
            if outcome.error is not None
        ]
        raw_response = None
        if config.save_raw_response:
            for outcome in outcomes.values():
                if outcome.raw_response is not None:
                    raw_response = outcome.raw_response

        def passed(name: str) -> bool:
            outcome = outcomes.get(name)
            return outcome is not None and outcome.passed

        tokens = outcomes[MAX_TOKENS].tokens if MAX_TOKENS in outcomes else None
        tokens = tokens or TokenCounts()

        result = Result(
            timestamp=timestamp,
            endpoint=config.endpoint,
            is_real_api=bool(outcomes) and all(o.passed for o in outcomes.values()),
            max_tokens_ok=passed(MAX_TOKENS),
            logprobs_ok=passed(LOGPROBS),
            multiple_ok=passed(MULTIPLE),
            stop_sequence_ok=passed(STOP_SEQUENCE),
            error="; ".join(errors) if errors else None,
            raw_response=raw_response,
            local_token_count=tokens.local,
            api_token_count=tokens.completion,
            api_total_tokens=tokens.total,
            outcomes=tuple(outcomes.values()),
        )
        self._history.append(result)

        logger.info(
            "Detection cycle finished",
            endpoint=config.endpoint,
            verdict="genuine" if result.is_real_api else "relay",
            max_tokens_ok=result.max_tokens_ok,
            logprobs_ok=result.logprobs_ok,
            multiple_ok=result.multiple_ok,
            stop_sequence_ok=result.stop_sequence_ok,
            error=result.error,
        )
        return result

    def detect_now(self) -> bool:
        """Start a cycle on a background thread and return immediately.

        Triggers coalesce: while one triggered cycle is still waiting for the
        cycle lock, further calls return False without queueing another.
        """
        with self._state_lock:
            if self._trigger_pending:
                logger.info("Detection already pending, trigger coalesced")
                return False
            self._trigger_pending = True
            self._begin_locked()
        thread = threading.Thread(target=self._detect_in_background, name="relayprobe-detect", daemon=True)
        thread.start()
        return True

    def _detect_in_background(self) -> None:
        try:
            self._serialized_cycle(triggered=True)
        except Exception as exc:
            logger.exception("Background detection failed", error=str(exc))

    def check_endpoint_available(self) -> bool:
        return self._client.check_endpoint_available(self.config.endpoint)

    def close(self) -> None:
        self._client.close()
