"""Per-request resolution state machine"""

from enum import Enum
from typing import List, Optional, Sequence

from loguru import logger

from .models import ErrorKind, Outcome, Strategy, StrategyFailure


class Phase(Enum):
    """Resolution phases"""

    INIT = "init"
    TRYING = "trying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


class Transition(Enum):
    """What the resolver must do after an outcome is recorded"""

    RETRY = "retry"  # Same strategy, next attempt, after backoff
    ADVANCE = "advance"  # Next strategy, first attempt
    DONE = "done"  # Succeeded or exhausted


class ResolutionState:
    """
    Explicit state for one logical request.

    INIT -> TRYING(i, attempt) -> SUCCEEDED | EXHAUSTED. Transitions are driven
    only by classified outcomes, so the retry and fallthrough rules live here
    and nowhere else.
    """

    def __init__(self, strategies: Sequence[Strategy], max_attempts: int):
        self.strategies = list(strategies)
        self.max_attempts = max_attempts
        self.phase = Phase.INIT
        self.strategy_index = 0
        self.attempt = 0
        self.total_attempts = 0
        self.tried: List[Strategy] = []
        self.failures: List[StrategyFailure] = []

    @property
    def current_strategy(self) -> Optional[Strategy]:
        if self.phase is not Phase.TRYING:
            return None
        return self.strategies[self.strategy_index]

    def start(self) -> Phase:
        if self.phase is not Phase.INIT:
            raise RuntimeError(f"Resolution already started (phase={self.phase.value})")
        if not self.strategies:
            self.phase = Phase.EXHAUSTED
        else:
            self._enter(0)
        return self.phase

    def begin_attempt(self) -> None:
        """Count an attempt that is about to be issued"""
        if self.phase is not Phase.TRYING:
            raise RuntimeError(f"No attempt possible in phase {self.phase.value}")
        self.total_attempts += 1

    def record(
        self,
        outcome: Outcome,
        error_kind: Optional[ErrorKind] = None,
        message: str = "",
    ) -> Transition:
        if self.phase is not Phase.TRYING:
            raise RuntimeError(f"Cannot record outcome in phase {self.phase.value}")

        if outcome is Outcome.SUCCESS:
            self.phase = Phase.SUCCEEDED
            return Transition.DONE

        if outcome is Outcome.TRANSIENT_FAILURE and self.attempt < self.max_attempts:
            self.attempt += 1
            return Transition.RETRY

        strategy = self.strategies[self.strategy_index]
        self.failures.append(
            StrategyFailure(
                strategy=strategy,
                error_kind=error_kind or ErrorKind.NETWORK_ERROR,
                message=message,
                attempts=self.attempt,
            )
        )
        logger.debug(
            f"   {strategy.value} gave up after {self.attempt} attempt(s) "
            f"({outcome.value})"
        )

        if self.strategy_index + 1 >= len(self.strategies):
            self.phase = Phase.EXHAUSTED
            return Transition.DONE

        self._enter(self.strategy_index + 1)
        return Transition.ADVANCE

    def _enter(self, index: int) -> None:
        self.phase = Phase.TRYING
        self.strategy_index = index
        self.attempt = 1
        self.tried.append(self.strategies[index])
