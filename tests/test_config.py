from __future__ import annotations

import json

import pytest

from scenetree import BuildOptions, load_options


def test_defaults(monkeypatch):
    monkeypatch.delenv("SCENETREE_STRICT_FIELDS", raising=False)
    monkeypatch.delenv("SCENETREE_MAX_DEPTH", raising=False)

    options = BuildOptions()

    assert options.strict_fields is False
    assert options.max_depth is None
    assert options.post_process == ()


def test_environment_defaults(monkeypatch):
    monkeypatch.setenv("SCENETREE_STRICT_FIELDS", "yes")
    monkeypatch.setenv("SCENETREE_MAX_DEPTH", "12")

    options = BuildOptions()

    assert options.strict_fields is True
    assert options.max_depth == 12


def test_bad_environment_values_are_ignored(monkeypatch):
    monkeypatch.setenv("SCENETREE_STRICT_FIELDS", "maybe")
    monkeypatch.setenv("SCENETREE_MAX_DEPTH", "deep")

    options = BuildOptions()

    assert options.strict_fields is False
    assert options.max_depth is None


def test_invalid_max_depth():
    with pytest.raises(ValueError):
        BuildOptions(max_depth=0)


def test_from_mapping(monkeypatch):
    monkeypatch.delenv("SCENETREE_MAX_DEPTH", raising=False)

    options = BuildOptions.from_mapping(
        {"strict_fields": "true", "post_process": "triangulate", "extra": 1}
    )

    assert options.strict_fields is True
    assert options.max_depth is None
    assert options.post_process == ("triangulate",)


def test_from_mapping_rejects_bad_values():
    with pytest.raises(ValueError):
        BuildOptions.from_mapping({"strict_fields": "sometimes"})
    with pytest.raises(ValueError):
        BuildOptions.from_mapping({"max_depth": "many"})


def test_load_json(tmp_path):
    path = tmp_path / "options.json"
    path.write_text(json.dumps({"max_depth": 64, "post_process": ["triangulate", "flip_uvs"]}))

    options = load_options(path)

    assert options.max_depth == 64
    assert options.post_process == ("triangulate", "flip_uvs")


def test_load_yaml(tmp_path):
    pytest.importorskip("yaml")
    path = tmp_path / "options.yaml"
    path.write_text("strict_fields: true\nmax_depth: 8\n")

    options = load_options(path)

    assert options.strict_fields is True
    assert options.max_depth == 8


def test_load_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "options.toml"
    path.write_text("max_depth = 3\n")

    with pytest.raises(ValueError):
        load_options(path)


def test_load_rejects_non_mapping(tmp_path):
    path = tmp_path / "options.json"
    path.write_text("[1, 2]")

    with pytest.raises(ValueError):
        load_options(path)
