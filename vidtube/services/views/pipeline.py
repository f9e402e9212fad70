"""
VidTube View Pipelines — declarative read-model composition.

A pipeline is an immutable sequence of stages evaluated over documents (plain
dicts) of one collection:

  select  : keep documents whose fields match the given conditions
  search  : case-insensitive substring match over a set of text fields
  expand  : attach related documents of another collection as an array
  derive  : compute new fields from already-attached data
  project : keep (include) or drop (exclude) fields
  sort    : order by one field
  page    : skip / limit window

Pipelines are data: building one never touches the store. ``ViewComposer``
(see ``composer.py``) executes them.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple


# ═══════════════════════════════════════════════════════════════════════
# Select conditions
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OneOf:
    values: Tuple[Any, ...]

    def matches(self, value: Any) -> bool:
        return value in self.values


@dataclass(frozen=True)
class NotNull:

    def matches(self, value: Any) -> bool:
        return value is not None


def one_of(*values: Any) -> OneOf:
    return OneOf(tuple(values))


def not_null() -> NotNull:
    return NotNull()


def condition_matches(condition: Any, value: Any) -> bool:
    if isinstance(condition, (OneOf, NotNull)):
        return condition.matches(value)
    return value == condition


# ═══════════════════════════════════════════════════════════════════════
# Derive expressions
# ═══════════════════════════════════════════════════════════════════════

def _items(doc: Dict[str, Any], source: str) -> List[Any]:
    return doc.get(source) or []


@dataclass(frozen=True)
class Size:
    source: str

    def evaluate(self, doc: Dict[str, Any]) -> int:
        return len(_items(doc, self.source))


@dataclass(frozen=True)
class Contains:
    """True when any element of ``source`` has ``key == value``.

    A ``None`` value (anonymous viewer) never matches.
    """
    source: str
    key: str
    value: Any

    def evaluate(self, doc: Dict[str, Any]) -> bool:
        if self.value is None:
            return False
        return any(item.get(self.key) == self.value for item in _items(doc, self.source))


@dataclass(frozen=True)
class FirstOrNull:
    source: str

    def evaluate(self, doc: Dict[str, Any]) -> Any:
        items = _items(doc, self.source)
        return items[0] if items else None


@dataclass(frozen=True)
class SumOf:
    source: str
    key: str

    def evaluate(self, doc: Dict[str, Any]) -> Any:
        return sum((item.get(self.key) or 0) for item in _items(doc, self.source))


def size(source: str) -> Size:
    return Size(source)


def contains(source: str, key: str, value: Any) -> Contains:
    return Contains(source, key, value)


def first_or_null(source: str) -> FirstOrNull:
    return FirstOrNull(source)


def sum_of(source: str, key: str) -> SumOf:
    return SumOf(source, key)


# ═══════════════════════════════════════════════════════════════════════
# Stages
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Select:
    conditions: Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class Search:
    text: str
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class Expand:
    local_key: str
    collection: str
    foreign_key: str
    as_: str
    pipeline: Optional["Pipeline"] = None


@dataclass(frozen=True)
class Derive:
    fields: Tuple[Tuple[str, Any], ...]


@dataclass(frozen=True)
class Project:
    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Sort:
    field: str
    descending: bool = True


@dataclass(frozen=True)
class Page:
    skip: int
    limit: int


@dataclass(frozen=True)
class Pipeline:
    collection: Optional[str] = None
    stages: Tuple[Any, ...] = ()

    @classmethod
    def over(cls, collection: str) -> "Pipeline":
        return cls(collection=collection)

    def _then(self, stage: Any) -> "Pipeline":
        return replace(self, stages=self.stages + (stage,))

    def select(self, **conditions: Any) -> "Pipeline":
        return self._then(Select(tuple(conditions.items())))

    def search(self, text: str, fields: Iterable[str]) -> "Pipeline":
        return self._then(Search(text, tuple(fields)))

    def expand(
        self,
        local_key: str,
        collection: str,
        foreign_key: str = "id",
        *,
        as_: str,
        pipeline: Optional["Pipeline"] = None,
    ) -> "Pipeline":
        if pipeline is not None and any(isinstance(s, Page) for s in pipeline.stages):
            raise ValueError("page() is not supported inside an expand pipeline")
        return self._then(Expand(local_key, collection, foreign_key, as_, pipeline))

    def derive(self, **fields: Any) -> "Pipeline":
        return self._then(Derive(tuple(fields.items())))

    def project(self, *include: str, exclude: Iterable[str] = ()) -> "Pipeline":
        exclude = tuple(exclude)
        if include and exclude:
            raise ValueError("project() takes either included or excluded fields, not both")
        return self._then(Project(tuple(include), exclude))

    def sort(self, field: str, descending: bool = True) -> "Pipeline":
        return self._then(Sort(field, descending))

    def page(self, page: int, limit: int) -> "Pipeline":
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        return self._then(Page(skip=(page - 1) * limit, limit=limit))
