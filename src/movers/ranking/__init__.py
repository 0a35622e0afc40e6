"""Ranking layer -- percent-change, volume and funding tables plus volume exclusions."""

from movers.ranking.exclusion import ExclusionEngine
from movers.ranking.ranker import MarketRanker

__all__ = ["ExclusionEngine", "MarketRanker"]
