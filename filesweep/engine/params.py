"""Enumeration of search parameterizations that expose different result windows.

The search API only ever returns the first 1000 matches of a query, so the
sampler issues many cheap variants of the same query. Every distinct
``(sort, order, term)`` combination tends to surface a different slice of
the matching files.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator


class SortMode(str, Enum):
    """Sort states accepted by the code search endpoint."""

    DEFAULT = "default"
    INDEXED = "indexed"


class OrderMode(str, Enum):
    DESC = "desc"
    ASC = "asc"


@dataclass(frozen=True, slots=True)
class QueryParameterization:
    """One concrete probe into the result population."""

    sort_mode: SortMode
    order_mode: OrderMode | None
    search_term: str
    target_filename: str

    def query(self, language_hint: str | None = None) -> str:
        parts = [self.search_term] if self.search_term else []
        parts.append(f"filename:{self.target_filename}")
        if language_hint:
            parts.append(f"language:{language_hint}")
        return " ".join(parts)

    def request_params(self) -> dict[str, str]:
        """Sort/order query parameters; empty under the default sort."""

        if self.sort_mode is SortMode.DEFAULT:
            return {}
        params = {"sort": self.sort_mode.value}
        if self.order_mode is not None:
            params["order"] = self.order_mode.value
        return params

    def describe(self) -> str:
        order = f"/{self.order_mode.value}" if self.order_mode else ""
        term = self.search_term or "<any>"
        return f"{self.target_filename}[{self.sort_mode.value}{order}] {term}"


def _unique_terms(vocabulary: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    terms: list[str] = []
    for raw in vocabulary:
        term = raw.strip()
        if term and term not in seen:
            seen.add(term)
            terms.append(term)
    return terms


def enumerate_parameterizations(
    target_filename: str, vocabulary: Iterable[str] = ()
) -> Iterator[QueryParameterization]:
    """Yield every parameterization for ``target_filename`` in a fixed order.

    With a known vocabulary: one default-sort probe per term, then one
    ``indexed`` probe per (order, term). Without one: the same three sort
    states with an empty term. Order only varies under ``indexed`` sort, the
    default sort ignores it.
    """

    terms = _unique_terms(vocabulary) or [""]
    for term in terms:
        yield QueryParameterization(SortMode.DEFAULT, None, term, target_filename)
    for order in (OrderMode.DESC, OrderMode.ASC):
        for term in terms:
            yield QueryParameterization(SortMode.INDEXED, order, term, target_filename)


def count_parameterizations(target_filename: str, vocabulary: Iterable[str] = ()) -> int:
    return sum(1 for _ in enumerate_parameterizations(target_filename, vocabulary))


__all__ = [
    "OrderMode",
    "QueryParameterization",
    "SortMode",
    "count_parameterizations",
    "enumerate_parameterizations",
]
