"""Data containers shared by the import pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_EDITABILITY = "Editable"
DEFAULT_REQUIREDNESS = "Optional"
ITEM_LIST_MODE = "Incremental"


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """Binding between a source column and one target form field."""

    source_column: str
    friendly_name: str
    database_name: str
    field_guid: str
    column_type_hint: str = ""
    explicit_choice: bool = False

    @property
    def is_valid(self) -> bool:
        return bool(self.field_guid.strip() and self.database_name.strip())

    @property
    def display_name(self) -> str:
        return self.friendly_name or self.database_name


@dataclass(frozen=True, slots=True)
class DetailColumnMapping:
    """Binding between a detail sheet column and one item list column."""

    source_column: str
    friendly_name: str
    database_name: str
    column_guid: str
    column_type_hint: str = ""
    explicit_choice: bool = False

    @property
    def is_valid(self) -> bool:
        return bool(self.column_guid.strip() and self.database_name.strip())


@dataclass(slots=True)
class SourceRow:
    """Raw spreadsheet row; ``position`` is 1-based among data rows."""

    position: int
    values: dict[str, Any]


@dataclass(slots=True)
class Row:
    """One unit of import work keyed by a stable ``row_id``."""

    row_id: str
    fields: dict[str, Any]
    position: int = 0


@dataclass(slots=True)
class FieldPayload:
    guid: str
    wire_type: str
    display_value: str
    name: str
    value: Any
    editability: str = DEFAULT_EDITABILITY
    requiredness: str = DEFAULT_REQUIREDNESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "guid": self.guid,
            "type": self.wire_type,
            "svalue": self.display_value,
            "name": self.name,
            "formLayout": {
                "editability": self.editability,
                "requiredness": self.requiredness,
            },
            "value": self.value,
        }


@dataclass(slots=True)
class DetailCell:
    guid: str
    display_value: str
    value: Any

    def to_dict(self) -> dict[str, Any]:
        return {"guid": self.guid, "svalue": self.display_value, "value": self.value}


class RowState(str, Enum):
    PENDING = "Pending"
    SKIPPED = "Skipped"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(slots=True)
class RowOutcome:
    row_id: str
    state: RowState
    message: str = ""


@dataclass(slots=True)
class ItemListSettings:
    guid: str
    name: str


@dataclass(slots=True)
class ImportSettings:
    """Per-run identifiers and switches consumed by the driver."""

    workflow_guid: str
    form_type_guid: str
    business_entity_guid: str | None = None
    item_list: ItemListSettings | None = None
    detail_enabled: bool = False
    source_timezone: str | None = None

    @property
    def uses_detail(self) -> bool:
        return self.detail_enabled and self.item_list is not None


@dataclass(slots=True)
class ImportResult:
    """Counters and failures aggregated over one run."""

    total: int = 0
    processed: int = 0
    success_count: int = 0
    error_count: int = 0
    skipped_count: int = 0
    failures: list[RowOutcome] = field(default_factory=list)
    cancelled: bool = False
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return max(0.0, end - self.started_at)

    @property
    def has_errors(self) -> bool:
        return self.error_count > 0

    def finish(self) -> None:
        self.finished_at = time.monotonic()


__all__ = [
    "DEFAULT_EDITABILITY",
    "DEFAULT_REQUIREDNESS",
    "ITEM_LIST_MODE",
    "FieldMapping",
    "DetailColumnMapping",
    "SourceRow",
    "Row",
    "FieldPayload",
    "DetailCell",
    "RowState",
    "RowOutcome",
    "ItemListSettings",
    "ImportSettings",
    "ImportResult",
]
