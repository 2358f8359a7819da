import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from studyflow.domain.constants import DEFAULT_QUIET_HOURS_END, DEFAULT_QUIET_HOURS_START
from studyflow.domain.errors import ConfigFileError
from studyflow.domain.models import NotificationFrequency, SchedulingPreferences, StudyMode


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/studyflow/config.toml",
        Path.home() / ".studyflow.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for studyflow.
    Supports loading from:
    1. Config file (~/.config/studyflow/config.toml or ~/.studyflow.toml)
    2. Environment variables (STUDYFLOW_*)
    3. Manual overrides (CLI)
    """

    model_config = SettingsConfigDict(
        env_prefix="STUDYFLOW_",
        extra="ignore",
    )

    # Storage
    store_backend: Literal["yaml", "memory"] = "yaml"
    deck_path: Path = Field(default_factory=lambda: Path.home() / ".config/studyflow/cards.yaml")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".config/studyflow/logs")

    # Presets (applied before the explicit fields below)
    study_mode: StudyMode | None = None
    frequency: NotificationFrequency | None = None

    # Scheduling preferences
    daily_card_budget: int | None = None
    quiet_hours_start: int = DEFAULT_QUIET_HOURS_START
    quiet_hours_end: int = DEFAULT_QUIET_HOURS_END
    notification_interval_minutes: int | None = None
    max_notifications_per_day: int | None = None
    max_cards_per_batch: int | None = None
    weekends_enabled: bool = True
    priority_class_id: str | None = None
    notifications_enabled: bool = True
    allow_card_repetition: bool = True

    # Random seed for reproducible plans
    seed: int | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Sources listed first win: CLI overrides, then env, then the file.
        toml_file = next((f for f in config_files() if f.exists()), None)
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("deck_path", "log_dir", mode="before")
    @classmethod
    def resolve_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    def to_preferences(self) -> SchedulingPreferences:
        """
        Build the preferences snapshot: defaults, then presets, then explicit values.
        """
        if self.study_mode is not None:
            prefs = SchedulingPreferences.from_study_mode(self.study_mode)
        else:
            prefs = SchedulingPreferences()
        if self.frequency is not None:
            prefs = prefs.with_frequency(self.frequency)

        return SchedulingPreferences(
            daily_card_budget=_pick(self.daily_card_budget, prefs.daily_card_budget),
            quiet_hours_start=self.quiet_hours_start,
            quiet_hours_end=self.quiet_hours_end,
            notification_interval_minutes=_pick(
                self.notification_interval_minutes, prefs.notification_interval_minutes
            ),
            max_notifications_per_day=_pick(
                self.max_notifications_per_day, prefs.max_notifications_per_day
            ),
            max_cards_per_batch=_pick(self.max_cards_per_batch, prefs.max_cards_per_batch),
            weekends_enabled=self.weekends_enabled,
            priority_class_id=self.priority_class_id,
            notifications_enabled=self.notifications_enabled,
            allow_card_repetition=self.allow_card_repetition,
        )


def _pick(value: int | None, fallback: int) -> int:
    return fallback if value is None else value


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/studyflow/config.toml (if exists)
    3. Environment variables (STUDYFLOW_*)
    4. cli_overrides (passed from Typer; None values are dropped)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    try:
        return AppConfig(**overrides)
    except tomllib.TOMLDecodeError as e:
        raise ConfigFileError(f"Could not parse config file: {e}") from e

