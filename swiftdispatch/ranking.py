# swiftdispatch/ranking.py
"""
Candidate ranking policies for delivery-to-driver matching.

Two policies are kept apart:

1. **NearestFirst**: used for single-delivery assignment. Orders available
   drivers by distance to the pickup point (closest first).

2. **RoundRobin**: used for batch assignment. Ignores distance and spreads
   the pending queue across the available pool by position
   (delivery i -> driver i mod pool size).

Key Design Principles:
1. Only ``available`` drivers are candidates
2. An empty candidate set is a normal result, not an error
3. Orderings are fully deterministic (no dependence on input order for ties)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from . import utils
from .models import Delivery, Driver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candidate:
    """A ranked driver together with its distance to the pickup point."""
    driver: Driver
    distance_km: float

    def __repr__(self) -> str:
        return f"Candidate({self.driver.id}, {self.distance_km:.2f}km)"


def eligible_drivers(drivers: Sequence[Driver]) -> List[Driver]:
    """Drivers that may receive a new assignment (status == available), input order kept."""
    return [d for d in drivers if d.is_available]


def distance_to_pickup(driver: Driver, delivery: Delivery) -> float:
    return utils.distance(driver.location, delivery.pickup_loc)


class RankingPolicy:
    """Common interface: order the eligible drivers for a delivery, best first."""

    name: str = "base"

    def rank(self, delivery: Delivery, drivers: Sequence[Driver]) -> List[Driver]:
        raise NotImplementedError

    def best_match(self, delivery: Delivery, drivers: Sequence[Driver]) -> Optional[Driver]:
        """First driver of the ordering, or None when nobody is eligible."""
        ranked = self.rank(delivery, drivers)
        return ranked[0] if ranked else None


class NearestFirst(RankingPolicy):
    """
    Nearest available driver first.

    Sort key:
        1. ascending distance from the driver's location to the pickup
        2. descending rating (tie-break)
        3. ascending driver id (final tie-break, keeps the result input-order independent)
    """

    name = "nearest_first"

    def score(self, delivery: Delivery, drivers: Sequence[Driver]) -> List[Candidate]:
        """Ranked candidates with their pickup distance, for display."""
        candidates = [
            Candidate(driver=d, distance_km=distance_to_pickup(d, delivery))
            for d in eligible_drivers(drivers)
        ]
        candidates.sort(key=lambda c: (c.distance_km, -c.driver.rating, c.driver.id))
        logger.debug(f"Ranked {len(candidates)} candidates for delivery {delivery.id}: {candidates}")
        return candidates

    def rank(self, delivery: Delivery, drivers: Sequence[Driver]) -> List[Driver]:
        return [c.driver for c in self.score(delivery, drivers)]


class RoundRobin(RankingPolicy):
    """
    Positional load spreading over a fixed driver pool.

    The pool is the snapshot of available drivers in the order given.
    ``pick(i, pool)`` returns ``pool[i % len(pool)]``. Distance plays no part.
    """

    name = "round_robin"

    def rank(self, delivery: Delivery, drivers: Sequence[Driver]) -> List[Driver]:
        return eligible_drivers(drivers)

    def pick(self, index: int, pool: Sequence[Driver]) -> Optional[Driver]:
        if not pool:
            return None
        return pool[index % len(pool)]


_NEAREST = NearestFirst()
_ROUND_ROBIN = RoundRobin()

# Policy lookup table
POLICIES: Dict[str, RankingPolicy] = {
    _NEAREST.name: _NEAREST,
    _ROUND_ROBIN.name: _ROUND_ROBIN,
}


def get_policy(name: str) -> RankingPolicy:
    """
    Look up a ranking policy by name.

    Args:
        name: 'nearest_first' or 'round_robin'

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return POLICIES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown ranking policy '{name}'. Options: {', '.join(POLICIES)}")


def rank_candidates(delivery: Delivery, drivers: Sequence[Driver]) -> List[Driver]:
    """Nearest-first ordering of the available drivers for a delivery."""
    return _NEAREST.rank(delivery, drivers)


def score_candidates(delivery: Delivery, drivers: Sequence[Driver]) -> List[Candidate]:
    """Nearest-first candidates with their distances."""
    return _NEAREST.score(delivery, drivers)
