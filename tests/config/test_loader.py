from __future__ import annotations

import yaml

from channel_ranking.config import ConfigLocator, ConfigRepository, DashboardConfig


def test_locator_creates_directories(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("CHANNEL_RANKING_HOME", str(tmp_path / "home"))
    locator = ConfigLocator()

    assert locator.project_root == (tmp_path / "home").resolve()
    assert locator.data_dir.is_dir()
    assert locator.outputs_dir.is_dir()
    assert locator.logs_dir.is_dir()
    assert locator.config_path().name == "dashboard_config.yaml"


def test_load_config_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    path = temp_config_repository.locator.config_path()
    assert not path.exists()

    config = temp_config_repository.load_config()

    assert config == DashboardConfig()
    assert path.exists()
    stored = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert stored["page_size"] == 20
    assert stored["source"]["adapter"] == "snapshot"


def test_save_and_reload_round_trip(temp_config_repository: ConfigRepository) -> None:
    config = DashboardConfig.model_validate(
        {
            "source": {"endpoint": "https://rankings.example.com/api", "adapter": "api"},
            "page_size": 50,
            "prefetch": False,
        }
    )
    temp_config_repository.save_config(config)

    fresh = ConfigRepository(temp_config_repository.locator)
    loaded = fresh.load_config()

    assert loaded.source.endpoint == "https://rankings.example.com/api"
    assert loaded.source.adapter == "api"
    assert loaded.page_size == 50
    assert loaded.prefetch is False


def test_resolved_config_anchors_under_home(temp_config_repository: ConfigRepository, tmp_path) -> None:
    resolved = temp_config_repository.resolved_config()

    assert resolved.outputs_dir == (tmp_path / "data" / "outputs").resolve()
    assert resolved.selection_store == (tmp_path / "data" / "selection.db").resolve()
