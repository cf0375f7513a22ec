# tests/test_preferences.py
import pytest

from flashdeck.db import init_db
from flashdeck.models import FSRSConfig, StudyMode
from flashdeck.preferences import (
    get_daily_goal, get_default_study_mode, get_fsrs_config, get_setting, get_user_id,
    set_daily_goal, set_default_study_mode, set_fsrs_config, set_setting,
)


def test_get_setting_default(tmp_db):
    init_db(tmp_db)
    assert get_setting(tmp_db, "missing") is None
    assert get_setting(tmp_db, "missing", "x") == "x"


def test_set_setting_overwrites(tmp_db):
    init_db(tmp_db)
    set_setting(tmp_db, "k", "1")
    set_setting(tmp_db, "k", "2")
    assert get_setting(tmp_db, "k") == "2"


def test_user_id_default(tmp_db):
    init_db(tmp_db)
    assert get_user_id(tmp_db) == "local"


def test_default_study_mode(tmp_db):
    init_db(tmp_db)
    assert get_default_study_mode(tmp_db) is StudyMode.SPACED_REPETITION
    set_default_study_mode(tmp_db, StudyMode.FSRS)
    assert get_default_study_mode(tmp_db) is StudyMode.FSRS


def test_unknown_stored_mode_falls_back(tmp_db):
    init_db(tmp_db)
    set_setting(tmp_db, "default_study_mode", "cram")
    assert get_default_study_mode(tmp_db) is StudyMode.SPACED_REPETITION


def test_daily_goal(tmp_db):
    init_db(tmp_db)
    assert get_daily_goal(tmp_db) == 20
    set_daily_goal(tmp_db, 50)
    assert get_daily_goal(tmp_db) == 50
    with pytest.raises(ValueError):
        set_daily_goal(tmp_db, 0)


def test_fsrs_config_round_trip(tmp_db):
    init_db(tmp_db)
    assert get_fsrs_config(tmp_db) == FSRSConfig()
    config = FSRSConfig(request_retention=0.85, maximum_interval=365, enable_fuzz=False)
    set_fsrs_config(tmp_db, config)
    assert get_fsrs_config(tmp_db) == config


def test_fsrs_config_validation(tmp_db):
    init_db(tmp_db)
    with pytest.raises(ValueError):
        set_fsrs_config(tmp_db, FSRSConfig(request_retention=1.5))
    with pytest.raises(ValueError):
        set_fsrs_config(tmp_db, FSRSConfig(maximum_interval=0))
