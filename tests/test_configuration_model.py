# tests/test_configuration_model.py
import json
from datetime import timedelta

import pytest

from schedule_buddy.models.configuration_model import ConfigurationData, ConfigurationModel


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config.json"


def test_defaults_when_file_missing(config_file):
    model = ConfigurationModel(str(config_file))
    config = model.config_data

    assert config.pre_event_lead == timedelta(minutes=15)
    assert config.repeat_interval == timedelta(minutes=5)
    assert config.reconcile_interval == timedelta(minutes=1)
    assert config.sound_enabled is True
    assert config.catch_up_on_startup is True
    assert model.data_file == config_file.parent / "schedules.json"
    assert not config_file.exists()


def test_update_saves_and_reloads(config_file):
    model = ConfigurationModel(str(config_file))

    assert model.update_configuration(pre_event_minutes=30, sound_enabled=False) is True

    reloaded = ConfigurationModel(str(config_file))
    assert reloaded.config_data.pre_event_minutes == 30
    assert reloaded.config_data.sound_enabled is False


def test_update_without_save_leaves_file_alone(config_file):
    model = ConfigurationModel(str(config_file))

    model.update_configuration(save=False, data_file="~/elsewhere.json")

    assert not config_file.exists()
    assert model.data_file.name == "elsewhere.json"
    assert "~" not in str(model.data_file)


@pytest.mark.parametrize(
    "changes",
    [
        {"repeat_interval_minutes": 0},
        {"pre_event_minutes": -1},
        {"reconcile_interval_minutes": "often"},
    ],
)
def test_invalid_update_is_rejected(config_file, changes):
    model = ConfigurationModel(str(config_file))

    assert model.update_configuration(**changes) is False
    assert model.config_data.validate() == []
    assert not config_file.exists()


def test_malformed_file_falls_back_to_defaults(config_file):
    config_file.write_text("{not json", encoding="utf-8")

    model = ConfigurationModel(str(config_file))

    assert model.load_configuration() is False
    assert model.config_data.repeat_interval_minutes == 5


def test_invalid_values_in_file_fall_back_to_defaults(config_file):
    config_file.write_text(json.dumps({"repeat_interval_minutes": -5}), encoding="utf-8")

    model = ConfigurationModel(str(config_file))

    assert model.config_data.repeat_interval_minutes == 5


def test_change_callbacks_receive_new_data(config_file):
    model = ConfigurationModel(str(config_file))
    seen = []
    model.add_config_changed_callback(seen.append)

    model.update_configuration(save=False, minimize_to_tray=False)

    assert len(seen) == 1
    assert seen[0].minimize_to_tray is False


def test_configuration_data_round_trip():
    data = ConfigurationData(data_file="/tmp/s.json", pre_event_minutes=10, catch_up_on_startup=False)

    restored = ConfigurationData.from_dict(data.to_dict())

    assert restored.to_dict() == data.to_dict()
