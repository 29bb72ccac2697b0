"""
backend/scorehub/providers/results.py

Purpose:
    Pluggable settlement sources. Bets are settled by an ``OutcomeDecider``,
    predictions are scored against a ``ResultProvider``. The simulated
    implementations keep the settlement state machine usable without an
    authoritative result feed; ``football_data`` plugs in real final scores.

Dependencies:
    - scorehub.config
    - scorehub.models.bet
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from scorehub.config import settings
from scorehub.models.bet import BetStatus, Outcome


@dataclass(frozen=True)
class MatchScore:
    home: int
    away: int

    @property
    def outcome(self) -> Outcome:
        if self.home > self.away:
            return Outcome.HOME
        if self.home < self.away:
            return Outcome.AWAY
        return Outcome.DRAW


@dataclass(frozen=True)
class OutcomeDecision:
    status: BetStatus  # WON | LOST
    actual_outcome: Outcome


class ResultProvider(ABC):
    """Source of final scores, keyed by external match id."""

    @abstractmethod
    async def get_result(self, match_id: str) -> Optional[MatchScore]:
        """Return the final score, or None while no result is available."""
        ...


class OutcomeDecider(ABC):
    """Decides how a pending bet settles."""

    @abstractmethod
    async def decide(self, bet: dict) -> Optional[OutcomeDecision]:
        """Return the settlement for ``bet``, or None to leave it pending."""
        ...


class CoinFlipDecider(OutcomeDecider):
    """Simulation rule: the actual outcome is a fair coin flip between HOME and AWAY.

    DRAW is never drawn, so DRAW bets always lose under this rule.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    async def decide(self, bet: dict) -> OutcomeDecision:
        actual = self._rng.choice((Outcome.HOME, Outcome.AWAY))
        won = actual.value == bet["selected_outcome"]
        return OutcomeDecision(BetStatus.WON if won else BetStatus.LOST, actual)


class ScoreOutcomeDecider(OutcomeDecider):
    """Settles a bet against the final score from a ResultProvider."""

    def __init__(self, provider: ResultProvider):
        self._provider = provider

    async def decide(self, bet: dict) -> Optional[OutcomeDecision]:
        score = await self._provider.get_result(bet["match_id"])
        if score is None:
            return None
        actual = score.outcome
        won = actual.value == bet["selected_outcome"]
        return OutcomeDecision(BetStatus.WON if won else BetStatus.LOST, actual)


class EchoResultProvider(ResultProvider):
    """Simulation rule: the "actual" score is the one the user predicted.

    An exact-score prediction therefore always wins.
    """

    def __init__(self, predictions: list[dict]):
        self._scores = {
            p["match_id"]: MatchScore(int(p["home_score"]), int(p["away_score"]))
            for p in predictions
            if p.get("home_score") is not None and p.get("away_score") is not None
        }

    async def get_result(self, match_id: str) -> Optional[MatchScore]:
        return self._scores.get(match_id)


def get_outcome_decider() -> OutcomeDecider:
    if settings.BET_RESULT_SOURCE == "football_data":
        from scorehub.providers.football_data import football_data_provider
        return ScoreOutcomeDecider(football_data_provider)
    return CoinFlipDecider()


def get_prediction_result_provider(predictions: list[dict]) -> ResultProvider:
    if settings.PREDICTION_RESULT_SOURCE == "football_data":
        from scorehub.providers.football_data import football_data_provider
        return football_data_provider
    return EchoResultProvider(predictions)
