"""
FilterBuilder for assembling SELECT statements with optional filters.

Each filter contributes a clause and the parameters it binds; the final template
is rendered once, so user-supplied values never reach the SQL text.
"""

from typing import Any, Dict, List, Optional, Tuple

LIKE_ESCAPE = "!"


def escape_like(value: str) -> str:
    """Make ``value`` match literally inside a LIKE pattern that uses ``ESCAPE '!'``."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class FilterBuilder:
    """
    Accumulates ``(clause, params)`` pairs on top of a base SELECT.

    Example:
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where_equals("c.status", "status", "active")
        template, params = builder.order_by("c.created_at DESC").render()

    Pass ``has_where=True`` when the base query already ends in a WHERE clause;
    filters are then AND-ed onto it.
    """

    def __init__(self, base_query: str, has_where: bool = False):
        self.base_query = base_query.rstrip()
        self.has_where = has_where
        self._clauses: List[Tuple[str, Dict[str, Any]]] = []
        self._order_by: Optional[str] = None
        self._limit: Optional[int] = None
        self._offset: int = 0

    def where(self, clause: str, **params: Any) -> "FilterBuilder":
        """Add a raw clause; every value it needs must be passed as a named parameter."""
        self._clauses.append((clause, params))
        return self

    def where_equals(self, column: str, name: str, value: Any) -> "FilterBuilder":
        """Add ``column = :name`` unless ``value`` is None or empty."""
        if value is None or value == "":
            return self
        return self.where(f"{column} = :{name}", **{name: value})

    def where_contains(self, columns: List[str], name: str, term: Optional[str]) -> "FilterBuilder":
        """Case-insensitive literal substring match of ``term`` across ``columns`` (OR-ed)."""
        if not term or not term.strip():
            return self
        pattern = f"%{escape_like(term.strip().lower())}%"
        conditions = " OR ".join(f"LOWER({column}) LIKE :{name} ESCAPE '{LIKE_ESCAPE}'" for column in columns)
        return self.where(f"({conditions})", **{name: pattern})

    def order_by(self, expression: str) -> "FilterBuilder":
        self._order_by = expression
        return self

    def paginate(self, limit: Optional[int], offset: int = 0) -> "FilterBuilder":
        self._limit = limit
        self._offset = offset or 0
        return self

    @property
    def params(self) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for clause, params in self._clauses:
            for name, value in params.items():
                if name in merged and merged[name] != value:
                    raise ValueError(f"Parameter '{name}' bound twice with different values")
                merged[name] = value
        return merged

    def render(self) -> Tuple[str, Dict[str, Any]]:
        """Return the final template and its bound parameters."""
        parts = [self.base_query]
        params = self.params
        if self._clauses:
            keyword = "AND" if self.has_where else "WHERE"
            parts.append(f"{keyword} " + " AND ".join(clause for clause, _ in self._clauses))
        if self._order_by:
            parts.append(f"ORDER BY {self._order_by}")
        if self._limit is not None:
            parts.append("LIMIT :limit OFFSET :offset")
            params["limit"] = self._limit
            params["offset"] = self._offset
        return "\n".join(parts), params
