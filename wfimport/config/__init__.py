"""Configuration helpers for wfimport import jobs.

Import jobs live under the ``imports`` section of ``profiles.yaml``. Each job
names the ``bps`` connection profile it talks to, the workflow and form type
identifiers, the workbook layout and the optional item list binding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wfimport.core.errors import ConfigError
from wfimport.services.bps.config import load_profiles_document
from wfimport.services.importer.models import ImportSettings, ItemListSettings
from wfimport_io.schema import WorkbookLayout

DEFAULT_JOB = "default"


class ItemListConfig(BaseModel):
    """Target item list receiving the detail sheet rows."""

    model_config = ConfigDict(extra="allow")

    guid: str
    name: str


class ImportJobConfig(BaseModel):
    """One ``imports.<name>`` entry from profiles.yaml."""

    model_config = ConfigDict(extra="allow")

    connection: str = DEFAULT_JOB
    workflow_guid: str
    form_type_guid: str
    business_entity_guid: Optional[str] = None
    workbook: WorkbookLayout = Field(default_factory=WorkbookLayout)
    item_list: Optional[ItemListConfig] = None
    detail: bool = False
    choice_columns: List[str] = Field(default_factory=list)
    source_timezone: str = "UTC"

    @field_validator("source_timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {value}") from exc
        return value

    def to_settings(self, *, detail: Optional[bool] = None) -> ImportSettings:
        """Build driver settings; *detail* overrides the configured switch."""

        item_list = ItemListSettings(guid=self.item_list.guid, name=self.item_list.name) if self.item_list else None
        return ImportSettings(
            workflow_guid=self.workflow_guid,
            form_type_guid=self.form_type_guid,
            business_entity_guid=self.business_entity_guid or None,
            item_list=item_list,
            detail_enabled=self.detail if detail is None else detail,
            source_timezone=self.source_timezone,
        )


def load_import_job(name: Optional[str] = None, *, config_path: str | Path | None = None) -> ImportJobConfig:
    """Load and validate an import job from profiles.yaml.

    Raises:
        ConfigError: When the file, the ``imports`` section or the job is missing,
            or when the job fails validation.
    """

    job_name = name or DEFAULT_JOB
    document = load_profiles_document(config_path)
    section = document.get("imports")
    if not isinstance(section, dict):
        raise ConfigError("profiles.yaml missing 'imports' section")
    raw: Any = section.get(job_name)
    if not isinstance(raw, dict):
        raise ConfigError(f"import job '{job_name}' not found in profiles.yaml")
    try:
        return ImportJobConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid import job '{job_name}': {exc}") from exc


__all__ = ["DEFAULT_JOB", "ImportJobConfig", "ItemListConfig", "load_import_job"]
