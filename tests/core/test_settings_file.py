from __future__ import annotations

import json

import pytest

from ditacraft.core import settings_file


def test_write_then_load_round_trip(tmp_path):
    target = tmp_path / "nested" / "settings.json"

    written = settings_file.write_json(target, {"ditaOtPath": "/opt/dita"})

    assert written == target
    assert settings_file.load_json(target) == {"ditaOtPath": "/opt/dita"}
    assert not list(target.parent.glob("*.tmp"))


def test_load_json_reports_missing_file(tmp_path):
    with pytest.raises(settings_file.SettingsFileError, match="not found"):
        settings_file.load_json(tmp_path / "missing.json")


def test_load_json_rejects_invalid_json(tmp_path):
    target = tmp_path / "settings.json"
    target.write_text("{not json", encoding="utf-8")

    with pytest.raises(settings_file.SettingsFileError, match="parse"):
        settings_file.load_json(target)


def test_load_json_requires_object(tmp_path):
    target = tmp_path / "settings.json"
    target.write_text(json.dumps(["a"]), encoding="utf-8")

    with pytest.raises(settings_file.SettingsFileError, match="object"):
        settings_file.load_json(target)


def test_merge_defaults_overrides_known_keys():
    base = {"timeout": 10, "args": [], "path": ""}

    settings_file.merge_defaults(base, {"timeout": 3, "args": ["-v"]})

    assert base == {"timeout": 3, "args": ["-v"], "path": ""}


@pytest.mark.parametrize(
    "override",
    [
        {"unknown": 1},
        {"timeout": "10"},
        {"timeout": True},
        {"args": "-v"},
    ],
)
def test_merge_defaults_rejects_bad_overrides(override):
    base = {"timeout": 10, "args": []}

    with pytest.raises(settings_file.SettingsFileError):
        settings_file.merge_defaults(base, override)
