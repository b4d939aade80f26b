import yaml

from clipstash.utils import ConfigManager, get_data_dir


def test_defaults_are_loaded(tmp_path):
    config = ConfigManager(str(tmp_path / "missing.yaml"))

    assert config.get("clipboard.backend") == "qt"
    assert config.get("clipboard.check_interval") == 500
    assert config.get("history.max_history_length") == 50
    assert config.get("storage.database_path") is None
    assert config.validate()


def test_user_config_is_merged(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({"clipboard": {"backend": "pyperclip"}, "extra": {"key": 1}}))

    config = ConfigManager(str(path))

    assert config.get("clipboard.backend") == "pyperclip"
    assert config.get("clipboard.check_interval") == 500
    assert config.get("extra.key") == 1


def test_get_with_missing_keys_returns_default(tmp_path):
    config = ConfigManager(str(tmp_path / "settings.yaml"))

    assert config.get("clipboard.nope", "fallback") == "fallback"
    assert config.get("clipboard.backend.deeper", 3) == 3


def test_set_and_save(tmp_path):
    path = tmp_path / "nested" / "settings.yaml"
    config = ConfigManager(str(path))

    config.set("history.auto_delete_days", 14)
    config.set("new.section.value", "x")
    assert config.save()

    reloaded = ConfigManager(str(path))
    assert reloaded.get("history.auto_delete_days") == 14
    assert reloaded.get("new.section.value") == "x"


def test_get_all_is_a_copy(tmp_path):
    config = ConfigManager(str(tmp_path / "settings.yaml"))

    snapshot = config.get_all()
    snapshot["clipboard"]["backend"] = "memory"

    assert config.get("clipboard.backend") == "qt"


def test_reset_discards_changes(tmp_path):
    config = ConfigManager(str(tmp_path / "settings.yaml"))
    config.set("clipboard.check_interval", 1000)

    config.reset()

    assert config.get("clipboard.check_interval") == 500


def test_validate_rejects_bad_values(tmp_path):
    config = ConfigManager(str(tmp_path / "settings.yaml"))

    config.set("clipboard.check_interval", 50)
    assert not config.validate()

    config.reset()
    config.set("history.max_history_length", 5)
    assert not config.validate()

    config.reset()
    config.set("history.auto_delete_count", -1)
    assert not config.validate()

    config.reset()
    config.set("clipboard.backend", "carrier pigeon")
    assert not config.validate()


def test_invalid_yaml_keeps_defaults(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("clipboard: [unclosed")

    config = ConfigManager(str(path))

    assert config.get("clipboard.backend") == "qt"


def test_data_dir_override(isolated_data_dir):
    assert get_data_dir() == isolated_data_dir
    assert isolated_data_dir.is_dir()
