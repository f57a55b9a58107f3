from __future__ import annotations

from pathlib import Path

from hiringpanel.config import ConfigManager
from hiringpanel.container import create_container
from hiringpanel.service import HiringService
from hiringpanel.store import MemoryStore


def test_create_container_defaults():
    container = create_container()

    service = container.service()

    assert isinstance(service, HiringService)
    assert container.store() is container.store()
    assert isinstance(container.store(), MemoryStore)


def test_create_container_with_overrides():
    container = create_container(
        settings={
            "capacity": {"count_closed_interviews": True},
            "lifecycle": {"max_work_length": 100},
            "service": {"admin_id": "admin", "hiring_channel": "panel"},
        }
    )

    capacity = container.capacity()
    lifecycle = container.lifecycle()
    service = container.service()

    assert capacity.counts_closed_interviews is True
    assert lifecycle._config.max_work_length == 100
    assert lifecycle.is_admin("admin")
    assert service._config.hiring_channel == "panel"
    assert service._capacity is capacity
    assert container.matching()._capacity is capacity


def test_config_manager_loads_named_yaml(tmp_path: Path):
    (tmp_path / "panel.yaml").write_text("service:\n  admin_id: boss\n", encoding="utf-8")
    manager = ConfigManager(tmp_path)

    assert manager.load("panel") == {"service": {"admin_id": "boss"}}
    assert manager.load_app_config("panel").service.admin_id == "boss"
    assert manager.load_app_config("missing").service.admin_id is None
