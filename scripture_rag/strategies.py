"""
Ordered fallback over named strategies.

A strategy is tried only after the previous one failed with a transient
error (as judged by the caller's predicate). Non-transient errors
propagate immediately. The outcome is either Succeeded, carrying the
failures collected on the way, or Exhausted.
"""
from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from scripture_rag.logging_config import get_logger
from scripture_rag.logging_utils import short_error

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Strategy(Generic[T]):
    name: str
    run: Callable[[], T]


@dataclass(frozen=True)
class StrategyFailure:
    strategy: str
    error: Exception


@dataclass
class Succeeded(Generic[T]):
    value: T
    strategy: str
    failures: list[StrategyFailure] = field(default_factory=list)


@dataclass
class Exhausted:
    failures: list[StrategyFailure] = field(default_factory=list)

    @property
    def last_error(self) -> Exception | None:
        return self.failures[-1].error if self.failures else None


def run_strategies(
    strategies: list[Strategy[T]],
    is_transient: Callable[[Exception], bool],
    label: str = "strategies",
) -> Succeeded[T] | Exhausted:
    """
    Run strategies in order until one returns.

    Args:
        strategies: Ordered strategies to try
        is_transient: True if the error should advance to the next strategy
        label: Name used in log records

    Raises:
        Whatever a strategy raises when is_transient() rejects it.
    """
    failures: list[StrategyFailure] = []
    for strategy in strategies:
        try:
            value = strategy.run()
        except Exception as e:
            if not is_transient(e):
                raise
            failures.append(StrategyFailure(strategy.name, e))
            logger.warning(f"{label} | strategy={strategy.name} failed | err={short_error(e)}")
            continue

        if failures:
            logger.info(f"{label} | strategy={strategy.name} succeeded after {len(failures)} failure(s)")
        return Succeeded(value=value, strategy=strategy.name, failures=failures)

    logger.warning(f"{label} exhausted | tried={len(strategies)}")
    return Exhausted(failures=failures)
