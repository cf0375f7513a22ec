"""User settings stored as key/value rows."""
from flashdeck.db import get_connection
from flashdeck.fsrs import validate_config
from flashdeck.models import FSRSConfig, StudyMode

DEFAULT_USER_ID = "local"
DEFAULT_DAILY_GOAL = 20


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_user_id(db_path: str) -> str:
    return get_setting(db_path, "user_id", DEFAULT_USER_ID)


def get_default_study_mode(db_path: str) -> StudyMode:
    value = get_setting(db_path, "default_study_mode", StudyMode.SPACED_REPETITION.value)
    try:
        return StudyMode(value)
    except ValueError:
        return StudyMode.SPACED_REPETITION


def set_default_study_mode(db_path: str, mode: StudyMode) -> None:
    set_setting(db_path, "default_study_mode", StudyMode(mode).value)


def get_daily_goal(db_path: str) -> int:
    return int(get_setting(db_path, "daily_goal_cards", str(DEFAULT_DAILY_GOAL)))


def set_daily_goal(db_path: str, cards: int) -> None:
    if cards < 1:
        raise ValueError("Daily goal must be at least 1 card")
    set_setting(db_path, "daily_goal_cards", str(cards))


def get_fsrs_config(db_path: str) -> FSRSConfig:
    """FSRS options, falling back to the library defaults for unset keys."""
    defaults = FSRSConfig()
    return FSRSConfig(
        request_retention=float(get_setting(
            db_path, "fsrs_request_retention", str(defaults.request_retention))),
        maximum_interval=int(get_setting(
            db_path, "fsrs_maximum_interval", str(defaults.maximum_interval))),
        enable_fuzz=get_setting(
            db_path, "fsrs_enable_fuzz", "1" if defaults.enable_fuzz else "0") == "1",
    )


def set_fsrs_config(db_path: str, config: FSRSConfig) -> None:
    validate_config(config)
    set_setting(db_path, "fsrs_request_retention", str(config.request_retention))
    set_setting(db_path, "fsrs_maximum_interval", str(config.maximum_interval))
    set_setting(db_path, "fsrs_enable_fuzz", "1" if config.enable_fuzz else "0")
