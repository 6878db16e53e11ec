from pathlib import Path

import pytest

from cytomark.utils.paths import CytoMarkPathManager, get_output_dir


def test_component_dirs_are_not_created_eagerly(tmp_path):
    manager = CytoMarkPathManager(tmp_path / "out")
    assert manager.sweep_dir == (tmp_path / "out" / "sweep").resolve()
    assert not manager.sweep_dir.exists()


def test_ensure_dir(tmp_path):
    manager = CytoMarkPathManager(tmp_path)
    directory = manager.ensure_dir(manager.component_dir("forest"))
    assert directory.is_dir()


def test_unknown_component(tmp_path):
    with pytest.raises(ValueError):
        CytoMarkPathManager(tmp_path).component_dir("shap")


def test_get_output_dir_creates(tmp_path):
    path = get_output_dir("clustering", base_dir=tmp_path)
    assert Path(path).is_dir()
    assert Path(path).name == "clustering"


def test_relative_path_under_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    manager = CytoMarkPathManager(tmp_path)
    assert manager.get_relative_path(Path.cwd() / "models") == "models"
