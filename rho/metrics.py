"""Token and cost metrics reported by the agent server."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def _as_count(value: Any) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def _as_float(value: Any) -> float | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


@dataclass
class MetricsState:
    """Elapsed time, token counts and accumulated cost."""

    elapsed_seconds: int = 0
    elapsed_base: int = 0
    start_time: float | None = None
    total_tokens: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    reasoning_tokens: int = 0
    per_turn_tokens: int = 0
    total_cost: float = 0.0
    context_window: int = 0

    def parse(self, value: Any) -> None:
        """Update from a metrics JSON value.

        Accepts either ``{"usage_to_metrics": {id: {...}}}``, whose entries are
        summed, or the direct ``{"accumulated_cost": ..., "accumulated_token_usage": ...}``.
        """
        if not isinstance(value, Mapping):
            return

        usage_map = value.get("usage_to_metrics")
        if isinstance(usage_map, Mapping):
            self.total_cost = 0.0
            self.prompt_tokens = 0
            self.completion_tokens = 0
            self.cache_read_tokens = 0
            self.cache_write_tokens = 0
            self.reasoning_tokens = 0
            self.per_turn_tokens = 0

            for entry in usage_map.values():
                if not isinstance(entry, Mapping):
                    continue
                cost = _as_float(entry.get("accumulated_cost"))
                if cost is not None:
                    self.total_cost += cost
                if "accumulated_token_usage" in entry:
                    self._accumulate_usage(entry["accumulated_token_usage"])
            self.total_tokens = self.prompt_tokens + self.completion_tokens
            self._log_if_nonzero()
            return

        cost = _as_float(value.get("accumulated_cost"))
        if cost is not None:
            self.total_cost = cost
        if "accumulated_token_usage" in value:
            self._accumulate_usage(value["accumulated_token_usage"])
            self.total_tokens = self.prompt_tokens + self.completion_tokens
            self._log_if_nonzero()

    def _accumulate_usage(self, usage: Any) -> None:
        if not isinstance(usage, Mapping):
            return
        for key, attr in (
            ("prompt_tokens", "prompt_tokens"),
            ("completion_tokens", "completion_tokens"),
            ("cache_read_tokens", "cache_read_tokens"),
            ("cache_write_tokens", "cache_write_tokens"),
            ("reasoning_tokens", "reasoning_tokens"),
        ):
            count = _as_count(usage.get(key))
            if count is not None:
                setattr(self, attr, getattr(self, attr) + count)

        per_turn = _as_count(usage.get("per_turn_token"))
        if per_turn is not None:
            self.per_turn_tokens = per_turn

        context = _as_count(usage.get("context_window"))
        if context:
            self.context_window = context

    def _log_if_nonzero(self) -> None:
        if self.total_tokens > 0 or self.total_cost > 0.0:
            logger.info(
                "Updated metrics: tokens=%d (prompt=%d, completion=%d), cost=%s, context=%d",
                self.total_tokens,
                self.prompt_tokens,
                self.completion_tokens,
                self.total_cost,
                self.context_window,
            )