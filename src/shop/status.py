"""Status resolution over fetched reference rows.

Statuses are configured in the database, so nothing here knows a numeric
id. Lookups go by case-insensitive name:
- "new" is the default for fresh quotes (else the first row)
- "converted" marks a quote that has become an order; it is read-only
  and never offered as a manual choice

An empty list resolves to None ("unresolved"), which callers must treat as
"wait for reference data", not as a status.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.schemas.shop import Quote, StatusRef
from src.shop.errors import ReferenceDataUnavailableError

DEFAULT_STATUS_NAME = "new"
CONVERTED_STATUS_NAME = "converted"


def _named(statuses: Iterable[StatusRef], name: str) -> StatusRef | None:
    wanted = name.casefold()
    return next((s for s in statuses if s.name.strip().casefold() == wanted), None)


class StatusResolver:
    """Answers status questions for one reference list."""

    def __init__(self, statuses: Iterable[StatusRef], status_type: str | None = None) -> None:
        rows = list(statuses)
        if status_type is not None:
            # Rows without a type apply to every screen
            rows = [s for s in rows if s.status_type in (None, status_type)]
        self.statuses = rows

    @property
    def is_loaded(self) -> bool:
        return bool(self.statuses)

    def default_status_id(self) -> int | None:
        """Id of "new", else the first status; None while nothing is loaded."""
        status = _named(self.statuses, DEFAULT_STATUS_NAME)
        if status is not None:
            return status.id
        if self.statuses:
            return self.statuses[0].id
        return None

    def require_default_status_id(self) -> int:
        """Like default_status_id(), but blocks submission when unresolved.

        Raises:
            ReferenceDataUnavailableError: If no status could be resolved.
        """
        status_id = self.default_status_id()
        if status_id is None:
            raise ReferenceDataUnavailableError()
        return status_id

    def converted_status_id(self) -> int | None:
        status = _named(self.statuses, CONVERTED_STATUS_NAME)
        return status.id if status is not None else None

    def is_read_only(self, quote: Quote | None) -> bool:
        """True once the quote has been converted to an order."""
        if quote is None:
            return False
        converted = self.converted_status_id()
        return converted is not None and quote.status == converted

    def selectable_statuses(self) -> list[StatusRef]:
        """Statuses a user may pick by hand (everything but converted)."""
        converted = self.converted_status_id()
        return [s for s in self.statuses if s.id != converted]

    def is_selectable(self, status_id: int | None) -> bool:
        return any(s.id == status_id for s in self.selectable_statuses())

    def ids_named(self, names: Iterable[str]) -> set[int]:
        """Ids of every status whose name is in names (case-insensitive)."""
        wanted = {n.casefold() for n in names}
        return {s.id for s in self.statuses if s.name.strip().casefold() in wanted}
