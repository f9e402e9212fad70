"""
VidTube View Composer — executes view pipelines against the store.

Execution model:
  1. The leading run of select/search stages, optionally followed by one sort
     on a stored column and one page window, compiles to a single SQL query.
  2. Every remaining stage runs in memory, in order, over the fetched
     documents.
  3. An expand stage issues one ``WHERE foreign_key IN (...)`` query for all
     input documents at once (no N+1); its nested pipeline is pushed down the
     same way and evaluated over the whole foreign set before grouping.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from sqlalchemy import Uuid, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.core.database import Base
from vidtube.core.errors import StoreError
from vidtube.models.models import COLLECTIONS
from vidtube.services.views.pipeline import (
    Derive,
    Expand,
    NotNull,
    OneOf,
    Page,
    Pipeline,
    Project,
    Search,
    Select,
    Sort,
    condition_matches,
)

logger = logging.getLogger(__name__)

# Carries an expanded document's join key through its nested pipeline
_GROUP_KEY = "__expand_key__"


class ViewComposer:
    """Runs ``Pipeline`` descriptors over the ORM collections."""

    def __init__(self, collections: Mapping[str, Type[Base]]):
        self._collections = dict(collections)

    # ── Public API ───────────────────────────────────────────────────────

    async def run(self, db: AsyncSession, pipeline: Pipeline) -> List[Dict[str, Any]]:
        if not pipeline.collection:
            raise ValueError("Only a rooted pipeline (Pipeline.over) can be run")
        return await self._evaluate(db, pipeline.collection, pipeline.stages)

    async def first(self, db: AsyncSession, pipeline: Pipeline) -> Optional[Dict[str, Any]]:
        docs = await self.run(db, pipeline)
        return docs[0] if docs else None

    async def count(self, db: AsyncSession, pipeline: Pipeline) -> int:
        """Count documents matched by the pipeline's pushed-down selects."""
        model = self._model(pipeline.collection)
        where, _, _, _ = self._compile(model, pipeline.stages, scoped=False)
        query = select(func.count()).select_from(model).where(*where)
        try:
            return int(await db.scalar(query) or 0)
        except SQLAlchemyError as e:
            raise StoreError() from e

    # ── Evaluation ───────────────────────────────────────────────────────

    async def _evaluate(
        self,
        db: AsyncSession,
        collection: str,
        stages: Sequence[Any],
        scope: Optional[Tuple[str, List[Any]]] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(collection)
        where, order_by, window, rest = self._compile(model, stages, scoped=scope is not None)

        query = select(model).where(*where)
        if scope is not None:
            field, keys = scope
            column = self._column(model, field)
            query = query.where(column.in_([self._coerce(column, k) for k in keys]))
        if order_by is not None:
            query = query.order_by(order_by)
        if window is not None:
            query = query.offset(window.skip).limit(window.limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Pipeline over '{collection}' failed: {e}")
            raise StoreError() from e

        docs = [row.as_document() for row in result.scalars().all()]
        if scope is not None:
            field, _ = scope
            docs = [{**doc, _GROUP_KEY: doc.get(field)} for doc in docs]

        for stage in rest:
            docs = await self._apply(db, stage, docs)
        return docs

    def _compile(self, model: Type[Base], stages: Sequence[Any], scoped: bool):
        """Split ``stages`` into a SQL prefix and the in-memory remainder."""
        where: List[Any] = []
        order_by = None
        window: Optional[Page] = None
        index = 0
        for index, stage in enumerate(stages):
            if isinstance(stage, (Select, Search)) and order_by is None and window is None:
                where.extend(self._where(model, stage))
            elif (
                isinstance(stage, Sort)
                and order_by is None
                and window is None
                and stage.field in model.__table__.columns
            ):
                column = self._column(model, stage.field)
                order_by = column.desc() if stage.descending else column.asc()
            elif isinstance(stage, Page) and window is None and not scoped:
                window = stage
            else:
                return where, order_by, window, list(stages[index:])
        return where, order_by, window, []

    def _where(self, model: Type[Base], stage: Any) -> List[Any]:
        if isinstance(stage, Search):
            text = stage.text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{text}%"
            return [
                or_(*(self._column(model, f).ilike(pattern, escape="\\") for f in stage.fields))
            ]

        clauses = []
        for field, condition in stage.conditions:
            column = self._column(model, field)
            if isinstance(condition, OneOf):
                clauses.append(column.in_([self._coerce(column, v) for v in condition.values]))
            elif isinstance(condition, NotNull):
                clauses.append(column.is_not(None))
            elif condition is None:
                clauses.append(column.is_(None))
            else:
                clauses.append(column == self._coerce(column, condition))
        return clauses

    async def _apply(self, db: AsyncSession, stage: Any, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if isinstance(stage, Select):
            return [
                doc for doc in docs
                if all(condition_matches(cond, doc.get(field)) for field, cond in stage.conditions)
            ]
        if isinstance(stage, Search):
            needle = stage.text.lower()
            return [
                doc for doc in docs
                if any(needle in str(doc.get(f) or "").lower() for f in stage.fields)
            ]
        if isinstance(stage, Expand):
            return await self._expand(db, stage, docs)
        if isinstance(stage, Derive):
            return [
                {**doc, **{name: expr.evaluate(doc) for name, expr in stage.fields}}
                for doc in docs
            ]
        if isinstance(stage, Project):
            return [self._project(stage, doc) for doc in docs]
        if isinstance(stage, Sort):
            return self._sort(stage, docs)
        if isinstance(stage, Page):
            return docs[stage.skip:stage.skip + stage.limit]
        raise TypeError(f"Unknown pipeline stage: {stage!r}")

    async def _expand(self, db: AsyncSession, stage: Expand, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        keys = set()
        for doc in docs:
            value = doc.get(stage.local_key)
            if isinstance(value, list):
                keys.update(v for v in value if v is not None)
            elif value is not None:
                keys.add(value)

        matches: List[Dict[str, Any]] = []
        if keys:
            nested = stage.pipeline.stages if stage.pipeline is not None else ()
            matches = await self._evaluate(
                db, stage.collection, nested, scope=(stage.foreign_key, sorted(keys)),
            )

        grouped: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
        for match in matches:
            key = match.pop(_GROUP_KEY, None)
            grouped[key].append(match)

        expanded = []
        for doc in docs:
            value = doc.get(stage.local_key)
            if isinstance(value, list):
                # membership order; duplicates collapse to their first position
                related = [m for key in dict.fromkeys(value) for m in grouped.get(key, ())]
            else:
                related = list(grouped.get(value, [])) if value is not None else []
            expanded.append({**doc, stage.as_: related})
        return expanded

    # ── Helpers ──────────────────────────────────────────────────────────

    @staticmethod
    def _project(stage: Project, doc: Dict[str, Any]) -> Dict[str, Any]:
        if stage.include:
            keep = ("id", *stage.include, _GROUP_KEY)
            return {k: doc[k] for k in keep if k in doc}
        return {k: v for k, v in doc.items() if k not in stage.exclude}

    @staticmethod
    def _sort(stage: Sort, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        present = [d for d in docs if d.get(stage.field) is not None]
        missing = [d for d in docs if d.get(stage.field) is None]
        present.sort(key=lambda d: d[stage.field], reverse=stage.descending)
        return present + missing

    def _model(self, collection: Optional[str]) -> Type[Base]:
        try:
            return self._collections[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection!r}") from None

    @staticmethod
    def _column(model: Type[Base], field: str):
        try:
            return model.__table__.columns[field]
        except KeyError:
            raise ValueError(f"{model.__tablename__} has no field {field!r}") from None

    @staticmethod
    def _coerce(column, value: Any) -> Any:
        if isinstance(column.type, Uuid) and not isinstance(value, uuid.UUID):
            return uuid.UUID(str(value))
        return value


view_composer = ViewComposer(COLLECTIONS)
