from form_registration.config import get_config, get_value, reload_config
from form_registration.models import DetectionSettings


def test_packaged_defaults():
    assert get_value("detection.threshold") == 160
    assert get_value("detection.min_size") == 15
    assert get_value("corner_cache.max_entries") is None
    assert get_value("detection.missing", "fallback") == "fallback"


def test_environment_overrides_keep_types(env_config):
    env_config.setenv("FORMREG_DETECTION_THRESHOLD", "140")
    env_config.setenv("FORMREG_DETECTION_MIN_SIZE", "12")
    env_config.setenv("FORMREG_CORNER_CACHE_MAX_ENTRIES", "64")
    reload_config()

    assert get_value("detection.threshold") == 140
    assert get_value("detection.min_size") == 12
    assert get_value("corner_cache.max_entries") == 64


def test_unknown_environment_keys_are_ignored(env_config):
    env_config.setenv("FORMREG_NOT_A_SECTION", "1")
    reload_config()

    assert get_value("not") is None


def test_config_path_from_environment(env_config, tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("detection:\n  min_size: 9\n  threshold: 120\n  padding: 2\n", encoding="utf-8")
    env_config.setenv("FORMREG_CONFIG", str(path))
    reload_config()

    settings = DetectionSettings.from_config()

    assert (settings.min_size, settings.threshold, settings.padding) == (9, 120, 2)


def test_settings_from_explicit_loader():
    settings = DetectionSettings.from_config(get_config())
    assert settings == DetectionSettings()


def test_boolean_and_string_overrides(env_config):
    env_config.setenv("FORMREG_LOGGING_FILE_ENABLED", "yes")
    env_config.setenv("FORMREG_LOGGING_LEVEL", "DEBUG")
    env_config.setenv("FORMREG_DETECTION_PADDING", "not-a-number")
    reload_config()

    assert get_value("logging.file.enabled") is True
    assert get_value("logging.level") == "DEBUG"
    assert get_value("detection.padding") == "not-a-number"
