"""
Merge the row-sets of several aggregate queries into one row per entity.

Each query describes one facet of the same campaigns (or repair orders), so
rows are correlated by a join-key column. Rows are merged with last-write-wins
on overlapping fields; output order is the order in which key values were
first seen.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional


class Consolidator:
    """
    Insertion-ordered key -> row map with the overlay rules used by every report.
    Args:
        key (str): Join-key column present in every row.
    """

    def __init__(self, key: str):
        self.key = key
        self._rows: Dict[Any, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, value) -> bool:
        return value in self._rows

    def add(
        self,
        rows: Iterable[Mapping[str, Any]],
        constants: Optional[Mapping[str, Any]] = None,
        overwrite_constants: bool = True,
    ) -> "Consolidator":
        """
        Fold one query's rows into the consolidated set.
        Args:
            rows: Rows of a single query.
            constants: Fields stamped on every row, e.g. the dealer name.
            overwrite_constants (bool): Re-apply constants when overlaying an existing
                row. When False they are only set on rows created by this call.
        Returns:
            Consolidator: self, so calls can be chained.
        """
        constants = constants or {}
        for row in rows:
            value = row[self.key]
            existing = self._rows.get(value)
            if existing is None:
                self._rows[value] = {**row, **constants}
            elif overwrite_constants:
                self._rows[value] = {**existing, **row, **constants}
            else:
                self._rows[value] = {**existing, **row}
        return self

    def keys(self) -> List[Any]:
        return list(self._rows)

    def rows(self) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._rows.values()]


def consolidate(
    row_sets: Iterable[Iterable[Mapping[str, Any]]],
    key: str,
    constants: Optional[Mapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Consolidate query row-sets, processed in the order the queries were issued.
    Args:
        row_sets: One iterable of rows per query.
        key (str): Join-key column.
        constants: Fields stamped on every consolidated row (last write wins).
    Returns:
        list: One row per distinct key value, in first-seen order.
    """
    consolidator = Consolidator(key)
    for rows in row_sets:
        consolidator.add(rows, constants)
    return consolidator.rows()
