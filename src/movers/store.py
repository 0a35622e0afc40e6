"""In-memory store of the latest committed ranking tables.

Each refresh loop owns one section (gainers, volume, funding) and replaces
it wholesale with a new frozen object once every table in it is built.
Replacement is a single attribute assignment, so readers need no lock and
never observe a half-written section. A failed cycle never commits, which
leaves the previous section in place.
"""

import time
from dataclasses import dataclass
from typing import Any

from movers.exceptions import SectionNotReadyError
from movers.logging import get_logger
from movers.market_data.timeframes import Timeframe
from movers.models import (
    FundingEntry,
    FundingSection,
    GainerEntry,
    GainersSection,
    VolumeEntry,
    VolumeSection,
)

logger = get_logger(__name__)

GAINERS = "gainers"
VOLUME = "volume"
FUNDING = "funding"


@dataclass(frozen=True)
class RankingView:
    """An ordered ranking table with the time its section was committed."""

    entries: tuple[GainerEntry, ...] | tuple[VolumeEntry, ...] | tuple[FundingEntry, ...]
    updated_at: float


class MarketDataStore:
    """Holds the current gainers, volume and funding sections.

    Readers call the table accessors; each raises SectionNotReadyError
    until the owning loop has committed at least once.
    """

    def __init__(self) -> None:
        self._gainers: GainersSection | None = None
        self._volume: VolumeSection | None = None
        self._funding: FundingSection | None = None

    # ──────────────────────────────────────────────
    # Writers (one per refresh loop)
    # ──────────────────────────────────────────────

    def commit_gainers(self, section: GainersSection) -> None:
        self._gainers = section
        logger.debug("section_committed", section=GAINERS, updated_at=section.updated_at)

    def commit_volume(self, section: VolumeSection) -> None:
        self._volume = section
        logger.debug("section_committed", section=VOLUME, updated_at=section.updated_at)

    def commit_funding(self, section: FundingSection) -> None:
        self._funding = section
        logger.debug("section_committed", section=FUNDING, updated_at=section.updated_at)

    # ──────────────────────────────────────────────
    # Readers
    # ──────────────────────────────────────────────

    def gainers_section(self) -> GainersSection:
        section = self._gainers
        if section is None:
            raise SectionNotReadyError(GAINERS)
        return section

    def volume_section(self) -> VolumeSection:
        section = self._volume
        if section is None:
            raise SectionNotReadyError(VOLUME)
        return section

    def funding_section(self) -> FundingSection:
        section = self._funding
        if section is None:
            raise SectionNotReadyError(FUNDING)
        return section

    def top_gainers(self, timeframe: Timeframe) -> RankingView:
        section = self.gainers_section()
        return RankingView(section.tables[timeframe.value].top_gainers, section.updated_at)

    def top_losers(self, timeframe: Timeframe) -> RankingView:
        section = self.gainers_section()
        return RankingView(section.tables[timeframe.value].top_losers, section.updated_at)

    def volume_gaining(self, timeframe: Timeframe) -> RankingView:
        section = self.volume_section()
        return RankingView(section.tables[timeframe.value].top_gaining, section.updated_at)

    def volume_losing(self, timeframe: Timeframe) -> RankingView:
        section = self.volume_section()
        return RankingView(section.tables[timeframe.value].top_losing, section.updated_at)

    def funding_positive(self) -> RankingView:
        section = self.funding_section()
        return RankingView(section.top_positive, section.updated_at)

    def funding_negative(self) -> RankingView:
        section = self.funding_section()
        return RankingView(section.top_negative, section.updated_at)

    def is_ready(self, section: str) -> bool:
        return self._section(section) is not None

    def status(self) -> dict[str, Any]:
        """Readiness and age of every section."""
        now = time.time()
        result: dict[str, Any] = {}
        for name in (GAINERS, VOLUME, FUNDING):
            section = self._section(name)
            if section is None:
                result[name] = {"ready": False, "updated_at": None, "age_seconds": None}
            else:
                result[name] = {
                    "ready": True,
                    "updated_at": section.updated_at,
                    "age_seconds": round(now - section.updated_at, 1),
                }
        return result

    def _section(self, name: str) -> GainersSection | VolumeSection | FundingSection | None:
        if name == GAINERS:
            return self._gainers
        if name == VOLUME:
            return self._volume
        if name == FUNDING:
            return self._funding
        raise ValueError(f"Unknown section {name!r}")
