import pytest

from studyflow.application.config import AppConfig, resolve_config
from studyflow.domain.errors import ConfigFileError
from studyflow.domain.models import NotificationFrequency, SchedulingPreferences, StudyMode


def _write_config(home, text):
    path = home / ".config" / "studyflow" / "config.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def test_defaults(mock_home):
    config = resolve_config()

    assert config.store_backend == "yaml"
    assert config.deck_path == mock_home / ".config/studyflow/cards.yaml"
    assert config.seed is None
    assert config.to_preferences() == SchedulingPreferences()


def test_toml_file_is_loaded(mock_home):
    _write_config(
        mock_home,
        'daily_card_budget = 12\nquiet_hours_start = 8\nfrequency = "aggressive"\n',
    )

    prefs = resolve_config().to_preferences()

    assert prefs.daily_card_budget == 12
    assert prefs.quiet_hours_start == 8
    assert prefs.notification_interval_minutes == 30


def test_dotfile_is_used_when_no_xdg_config(mock_home):
    (mock_home / ".studyflow.toml").write_text("weekends_enabled = false\n")
    assert resolve_config().weekends_enabled is False


def test_env_beats_file(mock_home, monkeypatch):
    _write_config(mock_home, "daily_card_budget = 12\n")
    monkeypatch.setenv("STUDYFLOW_DAILY_CARD_BUDGET", "7")

    assert resolve_config().daily_card_budget == 7


def test_cli_overrides_beat_env(mock_home, monkeypatch):
    monkeypatch.setenv("STUDYFLOW_DAILY_CARD_BUDGET", "7")

    config = resolve_config({"daily_card_budget": 3, "seed": None})

    assert config.daily_card_budget == 3
    assert config.seed is None


def test_deck_path_is_expanded(mock_home):
    config = resolve_config({"deck_path": "~/decks/spanish.yaml"})
    assert config.deck_path == (mock_home / "decks/spanish.yaml").resolve()


def test_study_mode_preset(mock_home):
    prefs = AppConfig(study_mode=StudyMode.EXAM).to_preferences()

    assert prefs.daily_card_budget == 100
    assert prefs.max_cards_per_batch == 5
    assert prefs.max_notifications_per_day == 16


def test_explicit_values_beat_presets(mock_home):
    config = AppConfig(
        study_mode=StudyMode.INTENSIVE,
        frequency=NotificationFrequency.CONSERVATIVE,
        max_notifications_per_day=2,
        max_cards_per_batch=1,
    )

    prefs = config.to_preferences()

    assert prefs.daily_card_budget == 50
    assert prefs.notification_interval_minutes == 150
    assert prefs.max_notifications_per_day == 2
    assert prefs.max_cards_per_batch == 1


def test_invalid_quiet_hours_are_left_to_the_planner(mock_home):
    prefs = AppConfig(quiet_hours_start=23, quiet_hours_end=9).to_preferences()
    assert (prefs.quiet_hours_start, prefs.quiet_hours_end) == (23, 9)


def test_broken_config_file(mock_home):
    _write_config(mock_home, "daily_card_budget = = 3\n")

    with pytest.raises(ConfigFileError):
        resolve_config()
