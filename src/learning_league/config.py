"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from learning_league.models.catalog import Catalog


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
            flattened['catalog_path'] = data['storage'].get('catalog_path')
        if 'progression' in data:
            flattened['xp_level_base'] = data['progression'].get('xp_level_base')
        if 'penalty' in data:
            penalty = data['penalty']
            flattened['penalty_weekly_xp_threshold'] = penalty.get('weekly_xp_threshold')
            flattened['penalty_checkpoint_day'] = penalty.get('checkpoint_day')
            flattened['penalty_reason'] = penalty.get('reason')
            flattened['penalty_redemption_task'] = penalty.get('redemption_task')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Authentication (optional: None disables auth)
    app_secret: str | None = Field(default=None)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Progression
    xp_level_base: int = Field(default=100, gt=0)

    # Penalty box (day index: Sunday = 0 ... Saturday = 6)
    penalty_weekly_xp_threshold: int = Field(default=10, ge=0)
    penalty_checkpoint_day: int = Field(default=4, ge=0, le=6)
    penalty_reason: str = Field(
        default="Low weekly engagement. Earn at least 10 XP this week."
    )
    penalty_redemption_task: str = Field(
        default="Complete one quest to exit the Penalty Box."
    )

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)
    data_dir: Path | None = Field(default=None)
    catalog_path: Path | None = Field(default=None)

    @property
    def users_dir(self) -> Path:
        d = (self.data_dir or self.project_root / "data") / "users"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def tutor_records_dir(self) -> Path:
        d = (self.data_dir or self.project_root / "data") / "tutor_records"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def resolved_catalog_path(self) -> Path:
        return self.catalog_path or self.project_root / "config" / "catalog.yaml"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()


def load_catalog(path: Path | None = None) -> Catalog:
    """Load the lesson/shop/badge/goal catalog from YAML."""
    catalog_path = path or get_settings().resolved_catalog_path
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")
    with open(catalog_path, encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    return Catalog.model_validate(data.get('catalog', {}))
