import json
from pathlib import Path

import pytest

from moltsum.config import Config, load_settings
from moltsum.errors import ConfigurationError


def test_defaults_without_token_are_rejected():
    config = Config(environ={})

    with pytest.raises(ConfigurationError) as excinfo:
        load_settings(config)

    assert "ANTHROPIC_AUTH_TOKEN" in str(excinfo.value)


def test_defaults_allowed_without_token_when_not_required():
    settings = load_settings(Config(environ={}), require_token=False)

    assert settings.auth_token is None
    assert settings.base_url == "https://ai.ppbox.top"
    assert settings.model == "claude-sonnet-4-5-20250929"
    assert settings.batch_size == 3
    assert settings.batch_delay == 1.0
    assert settings.min_content_length == 50
    assert settings.max_retries == 3
    assert settings.data_dir == Path("data")
    assert settings.buckets == ("hot", "top", "new", "rising")


def test_named_environment_variables():
    settings = load_settings(Config(environ={
        "ANTHROPIC_AUTH_TOKEN": "tok",
        "ANTHROPIC_BASE_URL": "https://example.test/",
        "SUMMARY_MODEL": "some-model",
        "SUMMARY_BATCH_SIZE": "5",
        "SUMMARY_BATCH_DELAY_MS": "250",
        "SUMMARY_MIN_CONTENT_LENGTH": "80",
        "MOLTSUM_DATA_DIR": "/srv/data",
    }))

    assert settings.auth_token == "tok"
    assert settings.base_url == "https://example.test"
    assert settings.model == "some-model"
    assert settings.batch_size == 5
    assert settings.batch_delay == 0.25
    assert settings.min_content_length == 80
    assert settings.data_dir == Path("/srv/data")


def test_prefixed_overrides_use_double_underscore():
    config = Config(environ={
        "MOLTSUM_SUMMARY__BATCH_SIZE": "4",
        "MOLTSUM_FEEDS__BUCKETS": '["hot", "new"]',
    })

    assert config.get("summary.batch_size") == 4
    assert config.get("feeds.buckets") == ["hot", "new"]


def test_yaml_file_is_layered_under_environment(tmp_path):
    path = tmp_path / "moltsum.yaml"
    path.write_text("summary:\n  batch_size: 6\n  min_content_length: 10\n", encoding="utf-8")

    config = Config(str(path), environ={"SUMMARY_BATCH_SIZE": "2"})

    assert config.get("summary.batch_size") == 2
    assert config.get("summary.min_content_length") == 10
    assert config.get("summary.batch_delay_ms") == 1000


def test_json_file(tmp_path):
    path = tmp_path / "moltsum.json"
    path.write_text(json.dumps({"generation": {"model": "from-file"}}), encoding="utf-8")

    assert Config(str(path), environ={}).get("generation.model") == "from-file"


def test_missing_or_unsupported_file_is_an_error(tmp_path):
    with pytest.raises(ConfigurationError):
        Config(str(tmp_path / "absent.yaml"), environ={})

    other = tmp_path / "config.toml"
    other.write_text("x = 1", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        Config(str(other), environ={})


@pytest.mark.parametrize("key, value", [
    ("SUMMARY_BATCH_SIZE", "0"),
    ("SUMMARY_BATCH_DELAY_MS", "-5"),
    ("SUMMARY_MIN_CONTENT_LENGTH", "many"),
])
def test_invalid_knobs_are_rejected(key, value):
    config = Config(environ={"ANTHROPIC_AUTH_TOKEN": "tok", key: value})

    with pytest.raises(ConfigurationError):
        load_settings(config)


def test_get_and_set_dotted_keys():
    config = Config(environ={})
    config.set("summary.batch_size", 9)

    assert config.get("summary.batch_size") == 9
    assert config.get("summary.unknown", "fallback") == "fallback"
    assert config.get("summary.batch_size.deeper") is None
