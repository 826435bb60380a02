"""
Configuration loading – YAML file, environment overrides and credentials.

Example ``sources.yml``::

    batch_size: 3
    interval_hours: 6
    daily_cron: "0 6 * * *"
    sources:
      - name: Stanford Graduate Fellowships
        url: https://vpge.stanford.edu/fellowships-funding
        category: academic-site
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .adapters import AdapterOptions
from .infra.scheduler import Scheduler
from .interfaces import OpportunityStore
from .models import Source, SourceCategory

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "sources.yml"


class SourceConfig(BaseModel):
    """One source entry as written in the config file."""
    name: str
    url: str
    category: SourceCategory
    is_active: bool = True
    credential: Optional[str] = None
    id: Optional[str] = None

    def to_source(self) -> Source:
        # stable id so re-seeding a persistent store does not duplicate sources
        source_id = self.id or str(uuid.uuid5(uuid.NAMESPACE_URL, f"{self.category.value}:{self.url}"))
        return Source(
            id=source_id,
            name=self.name,
            url=self.url,
            category=self.category,
            is_active=self.is_active,
            credential=self.credential,
        )


class Settings(BaseModel):
    batch_size: int = Field(3, ge=1)
    batch_delay_s: float = Field(3.0, ge=0)
    interval_hours: int = Field(6, ge=1)
    daily_cron: str = "0 6 * * *"
    timezone: str = "UTC"
    db_path: Optional[str] = None
    http_timeout_s: float = Field(15.0, gt=0)
    render_timeout_s: float = Field(30.0, gt=0)
    settle_delay_s: Optional[float] = Field(None, ge=0)
    sources: List[SourceConfig] = Field(default_factory=list)

    @field_validator("daily_cron")
    @classmethod
    def _valid_cron(cls, value: str) -> str:
        if len(value.split()) != 5 or not Scheduler.validate_cron_expression(value):
            raise ValueError(f"Invalid cron expression: {value}")
        return value

    def adapter_options(self) -> AdapterOptions:
        """Adapter knobs plus platform credentials from the environment."""
        return AdapterOptions(
            http_timeout=self.http_timeout_s,
            render_timeout=self.render_timeout_s,
            settle_delay=self.settle_delay_s,
            linkedin_api_key=os.getenv("LINKEDIN_API_KEY"),
            facebook_api_key=os.getenv("FACEBOOK_API_KEY"),
            sam_api_key=os.getenv("SAM_GOV_API_KEY"),
        )


def load_config(config_path: Optional[str] = None) -> Settings:
    """Load settings from YAML; a missing file yields defaults and no sources."""
    path = Path(config_path or os.getenv("FUNDING_RADAR_CONFIG", DEFAULT_CONFIG_PATH))

    if path.exists():
        with path.open() as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping at the top level")
    else:
        logger.warning(f"Config file not found: {path} - using defaults with no sources")
        data = {}

    # environment wins over the file
    if os.getenv("SCHEDULER_TIMEZONE"):
        data["timezone"] = os.environ["SCHEDULER_TIMEZONE"]
    if os.getenv("FUNDING_RADAR_DB"):
        data["db_path"] = os.environ["FUNDING_RADAR_DB"]

    settings = Settings.model_validate(data)
    logger.info(f"Loaded {len(settings.sources)} source(s) from {path}")
    return settings


async def seed_sources(store: OpportunityStore, settings: Settings) -> int:
    """Register every configured source with *store*; returns the count."""
    for entry in settings.sources:
        source = await store.add_source(entry.to_source())
        logger.debug(f"Seeded source {source.name} ({source.category.value})")
    return len(settings.sources)
