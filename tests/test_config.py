from __future__ import annotations

import json

import pytest

from modcache import AppConfig, DirCacher, load_config


def test_load_config_from_json(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "cache": {"directory": " /var/cache/goproxy "},
                "sync": {"timeout_seconds": 5},
                "logging": {"level": "debug"},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.cache.directory == "/var/cache/goproxy"
    assert config.sync.timeout_seconds == 5.0
    assert config.logging.level == "DEBUG"
    assert DirCacher.from_config(config).root.as_posix() == "/var/cache/goproxy"


def test_load_config_from_yaml(tmp_path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("cache:\n  directory: data/modcache\n", encoding="utf-8")

    config = load_config(path)

    assert config.cache.directory == "data/modcache"
    assert config.sync.timeout_seconds == 30.0
    assert config.logging.level == "INFO"


def test_defaults_need_no_file() -> None:
    config = AppConfig()

    assert config.cache.directory == "data/cache"


@pytest.mark.parametrize(
    "payload",
    [
        {"cache": {"directory": "   "}},
        {"sync": {"timeout_seconds": 0}},
        {"logging": {"level": "LOUD"}},
        {"unknown_section": {}},
    ],
)
def test_invalid_config_raises_value_error(tmp_path, payload) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_config(path)


def test_non_object_root_is_rejected(tmp_path) -> None:
    path = tmp_path / "config.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    with pytest.raises(ValueError, match="root must be an object"):
        load_config(path)
