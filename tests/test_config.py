from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from folio.config import BuildMode, Config, load_config


def _write_project_config(root: Path) -> Path:
    config_text = (
        "mode: development\n"
        "output_dir: public\n"
        "cache_dir: .cache\n"
        "templates_dir: theme\n"
        "site:\n"
        "  title: Ada's notes\n"
        "  base_url: https://ada.example.com/\n"
        "blog:\n"
        "  source_dir: posts\n"
        "  section: /writing/\n"
        "projects:\n"
        "  enabled: true\n"
        "  owner: ada\n"
        "  names: [folio]\n"
        "  snapshot_path: data/projects.json\n"
        "feeds:\n"
        "  timezone: Europe/Madrid\n"
    )
    cfg_path = root / "folio.yml"
    cfg_path.write_text(config_text, encoding="utf-8")
    return cfg_path


def test_load_config_resolves_paths_relative_to_config_directory(tmp_path: Path) -> None:
    project = tmp_path / "project"
    project.mkdir()
    _write_project_config(project)

    # A directory argument finds folio.yml inside it.
    cfg = load_config(project)

    assert cfg.mode is BuildMode.DEVELOPMENT
    assert cfg.include_drafts is True
    assert cfg.output_dir == (project / "public").resolve()
    assert cfg.cache_dir == (project / ".cache").resolve()
    assert cfg.templates_dir == (project / "theme").resolve()
    assert cfg.blog.source_dir == (project / "posts").resolve()
    assert cfg.blog.section == "writing"
    assert cfg.media_log.source_dir == (project / "content" / "media-log").resolve()
    assert cfg.projects.snapshot_path == (project / "data" / "projects.json").resolve()
    assert cfg.site.base_url == "https://ada.example.com"
    assert cfg.feeds.timezone == "Europe/Madrid"


def test_load_config_accepts_file_path(tmp_path: Path) -> None:
    cfg_path = _write_project_config(tmp_path)
    cfg = load_config(cfg_path)
    assert cfg.output_dir == (tmp_path / "public").resolve()


def test_directory_without_config_uses_defaults(tmp_path: Path) -> None:
    cfg = load_config(tmp_path)
    assert cfg.mode is BuildMode.PRODUCTION
    assert cfg.include_drafts is False
    assert cfg.output_dir == (tmp_path / "site").resolve()
    assert cfg.blog.source_dir == (tmp_path / "content" / "blog").resolve()
    assert cfg.about_path == (tmp_path / "content" / "about.md").resolve()
    assert cfg.projects.enabled is False


def test_missing_config_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yml")


def test_non_mapping_config_rejected(tmp_path: Path) -> None:
    cfg_path = tmp_path / "folio.yml"
    cfg_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_config(cfg_path)


def test_invalid_values_are_validation_errors() -> None:
    with pytest.raises(ValidationError):
        Config(mode="staging")
    with pytest.raises(ValidationError):
        Config(pics={"quality": 0})
