import os

from engine import paths


def test_config_path_defaults_to_config_dir(monkeypatch) -> None:
    monkeypatch.delenv("SOMI_CONFIG_PATH", raising=False)

    assert paths.resolve_config_path() == os.path.join(paths.CONFIG_DIR, "config.json")


def test_config_path_honours_environment(monkeypatch, tmp_path) -> None:
    target = tmp_path / "somi.json"
    monkeypatch.setenv("SOMI_CONFIG_PATH", str(target))

    assert paths.resolve_config_path() == str(target)


def test_relative_config_path_is_under_config_dir(monkeypatch) -> None:
    monkeypatch.delenv("SOMI_CONFIG_PATH", raising=False)

    assert paths.resolve_config_path("custom.json") == os.path.abspath(os.path.join(paths.CONFIG_DIR, "custom.json"))


def test_build_service_paths_creates_directories(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(paths, "DB_PATH", tmp_path / "database" / "scores.sqlite")
    monkeypatch.setattr(paths, "LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(paths, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.delenv("SOMI_CONFIG_PATH", raising=False)

    service_paths = paths.build_service_paths()

    assert (tmp_path / "database").is_dir()
    assert (tmp_path / "logs").is_dir()
    assert service_paths.db_path == str(tmp_path / "database" / "scores.sqlite")
    assert service_paths.config_path == os.path.join(tmp_path / "config", "config.json")
