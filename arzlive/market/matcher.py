"""Instrument matcher: upstream records -> catalog ids.

Identification strategies, in priority order:
    1. exact symbol / slug / key lookup (case-insensitive)
    2. substring match of localized name fragments

Records are identified inconsistently across endpoints (``symbol`` on one,
``slug`` or only a Persian ``name`` on another), hence the two tiers.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping
from typing import Any

from arzlive.market.catalog import DEFAULT_CATALOG, FeedSection, InstrumentSpec

Record = Mapping[str, Any]

# Record fields holding an exact identifier / a human-readable name
SYMBOL_FIELDS: tuple[str, ...] = ("symbol", "slug", "key", "code")
NAME_FIELDS: tuple[str, ...] = ("name", "name_en", "title")


def field_values(record: Record, fields: tuple[str, ...]) -> list[str]:
    values: list[str] = []
    for field in fields:
        raw = record.get(field)
        if isinstance(raw, str | int) and not isinstance(raw, bool):
            text = str(raw).strip().lower()
            if text:
                values.append(text)
    return values


class InstrumentMatcher:
    """Resolve upstream records to catalog instrument ids.

    Example:
        >>> matcher = InstrumentMatcher()
        >>> matcher.match({"symbol": "USD", "price": "705,000"}, FeedSection.CURRENCY)
        'usd'
        >>> matcher.match({"name": "سکه امامی"}, FeedSection.GOLD)
        'coin_emami'
    """

    def __init__(self, catalog: Iterable[InstrumentSpec] = DEFAULT_CATALOG) -> None:
        self._specs: tuple[InstrumentSpec, ...] = tuple(catalog)
        self._by_symbol: dict[str, InstrumentSpec] = {}
        for spec in self._specs:
            for symbol in spec.symbols:
                self._by_symbol[symbol.lower()] = spec
        self._strategies: tuple[Callable[[Record, FeedSection], str | None], ...] = (
            self._match_symbol,
            self._match_name,
        )

    @property
    def specs(self) -> tuple[InstrumentSpec, ...]:
        return self._specs

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def _match_symbol(self, record: Record, section: FeedSection) -> str | None:
        for value in field_values(record, SYMBOL_FIELDS):
            spec = self._by_symbol.get(value)
            if spec is not None and section.accepts(spec.section):
                return spec.id
        return None

    def _match_name(self, record: Record, section: FeedSection) -> str | None:
        names = field_values(record, NAME_FIELDS)
        if not names:
            return None
        for spec in self._specs:
            if not section.accepts(spec.section):
                continue
            for fragment in spec.name_fragments:
                needle = fragment.lower()
                if any(needle in name for name in names):
                    return spec.id
        return None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match(self, record: Record, section: FeedSection) -> str | None:
        """Catalog id for *record*, or None when no strategy recognises it."""
        for strategy in self._strategies:
            asset_id = strategy(record, section)
            if asset_id is not None:
                return asset_id
        return None

    def match_all(
        self,
        records: Iterable[Record],
        section: FeedSection,
        taken: Collection[str] = (),
    ) -> list[tuple[str, Record]]:
        """Match a whole section, at most one record per id.

        Ids in *taken* (matched from an earlier section of the same cycle)
        are never returned.

        Strategies run tier by tier over the section: every exact symbol hit
        is claimed before any name fragment is tried, so a loosely named
        record ("دلار کانادا") cannot take an id that a later record names
        exactly. Within a tier the first record wins.
        """
        pending = [r for r in records if isinstance(r, Mapping)]
        claimed: dict[str, Record] = {}
        order: list[str] = []
        taken = set(taken)

        for strategy in self._strategies:
            remaining: list[Record] = []
            for record in pending:
                asset_id = strategy(record, section)
                if asset_id is None:
                    remaining.append(record)
                elif asset_id not in claimed and asset_id not in taken:
                    claimed[asset_id] = record
                    order.append(asset_id)
                # duplicates of an already-claimed id are dropped
            pending = remaining

        return [(asset_id, claimed[asset_id]) for asset_id in order]
