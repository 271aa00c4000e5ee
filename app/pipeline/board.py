"""
app/pipeline/board.py — Stage-grouped pipeline state with explicit commands.

PipelineBoard holds the records of one entity grouped by a stage field.
move() applies the change locally first, then persists it through the
DataSource and reports a MoveResult; a failed write puts the record back
where it was.

EditSession holds an edit copy of one record, saves only the fields that
differ from the original and adopts the server's reply as the new state.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from app.db.models import DealStage, SubmissionStatus
from app.pipeline.datasource import DataSource, DataSourceError

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    ok: bool
    error: Optional[str] = None
    item: Optional[dict[str, Any]] = None


@dataclass
class SaveResult:
    ok: bool
    error: Optional[str] = None
    changed: list[str] = field(default_factory=list)


class PipelineBoard:
    def __init__(self, source: DataSource, entity: str, stage_field: str, stages: list[str]):
        self.source = source
        self.entity = entity
        self.stage_field = stage_field
        self.stages = list(stages)
        self.items: dict[str, dict[str, Any]] = {}

    @classmethod
    def for_deals(cls, source: DataSource) -> "PipelineBoard":
        return cls(source, "deals", "stage", [s.value for s in DealStage])

    @classmethod
    def for_submissions(cls, source: DataSource) -> "PipelineBoard":
        return cls(source, "submissions", "status", [s.value for s in SubmissionStatus])

    def load(self, **filters: Any) -> "PipelineBoard":
        self.items = {str(item["id"]): item for item in self.source.list(self.entity, **filters)}
        logger.debug("Loaded %d %s onto board.", len(self.items), self.entity)
        return self

    def columns(self) -> dict[str, list[dict[str, Any]]]:
        """Items grouped by stage, in board order; unknown stages are left out."""
        grouped: dict[str, list[dict[str, Any]]] = {stage: [] for stage in self.stages}
        for item in self.items.values():
            stage = item.get(self.stage_field)
            if stage in grouped:
                grouped[stage].append(item)
        return grouped

    def stage_of(self, item_id: str) -> Optional[str]:
        item = self.items.get(str(item_id))
        return item.get(self.stage_field) if item else None

    def move(self, item_id: str, stage: str) -> MoveResult:
        """
        Move an item to another stage.

        The local record changes immediately; if the data source rejects
        the write the previous record is restored and ok is False.
        """
        item_id = str(item_id)
        if stage not in self.stages:
            return MoveResult(ok=False, error=f"Unknown stage: {stage}")
        current = self.items.get(item_id)
        if current is None:
            return MoveResult(ok=False, error="Item not found")
        if current.get(self.stage_field) == stage:
            return MoveResult(ok=True, item=current)

        previous = copy.deepcopy(current)
        self.items[item_id] = {**current, self.stage_field: stage}

        try:
            stored = self.source.update(self.entity, item_id, {self.stage_field: stage})
        except DataSourceError as e:
            self.items[item_id] = previous
            logger.warning("Move of %s %s to %s failed, reverted: %s", self.entity, item_id, stage, e)
            return MoveResult(ok=False, error=str(e), item=previous)

        self.items[item_id] = stored
        logger.info("Moved %s %s → %s", self.entity, item_id, stage)
        return MoveResult(ok=True, item=stored)

    def edit(self, item_id: str) -> "EditSession":
        item_id = str(item_id)
        if item_id not in self.items:
            raise KeyError(item_id)

        def _adopt(saved: dict[str, Any]) -> None:
            self.items[item_id] = saved

        return EditSession(self.source, self.entity, self.items[item_id], on_saved=_adopt)


class EditSession:
    """Edit copy of one record, saved as a diff."""

    def __init__(
        self,
        source: DataSource,
        entity: str,
        record: dict[str, Any],
        on_saved: Optional[Callable[[dict[str, Any]], None]] = None,
    ):
        self.source = source
        self.entity = entity
        self.original = copy.deepcopy(record)
        self.draft = copy.deepcopy(record)
        self.on_saved = on_saved

    def set(self, name: str, value: Any) -> None:
        self.draft[name] = value

    def diff(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.draft.items()
            if key != "id" and self.original.get(key) != value
        }

    def discard(self) -> None:
        self.draft = copy.deepcopy(self.original)

    def save(self) -> SaveResult:
        changes = self.diff()
        if not changes:
            return SaveResult(ok=True)

        try:
            stored = self.source.update(self.entity, str(self.original["id"]), changes)
        except DataSourceError as e:
            logger.warning("Saving %s %s failed: %s", self.entity, self.original["id"], e)
            return SaveResult(ok=False, error=str(e), changed=list(changes))

        self.original = copy.deepcopy(stored)
        self.draft = copy.deepcopy(stored)
        if self.on_saved:
            self.on_saved(stored)
        return SaveResult(ok=True, changed=list(changes))
