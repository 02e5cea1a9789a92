"""Tests for option store backends."""

import pytest

from featurelab.storage.options import (
    MemoryOptionStore,
    YamlOptionStore,
    create_option_store,
)
from featurelab.storage.sql import SqlOptionStore
from featurelab.utils.config import OptionsConfig


def test_memory_store():
    store = MemoryOptionStore({"a": 1})
    assert store.get_option("a") == 1
    assert store.get_option("b", "fallback") == "fallback"
    store.update_option("b", "x")
    assert store.all_options() == {"a": 1, "b": "x"}
    assert store.delete_option("a") is True
    assert store.delete_option("a") is False


def test_yaml_store_persists_between_instances(tmp_path):
    path = tmp_path / "nested" / "options.yaml"
    store = YamlOptionStore(path)
    assert store.get_option("elementor_experiment-x") is None

    store.update_option("elementor_experiment-x", 1)
    store.update_option("elementor_allow_tracking", "yes")
    assert path.exists()

    again = YamlOptionStore(path)
    assert again.get_option("elementor_experiment-x") == 1
    assert again.all_options() == {"elementor_experiment-x": 1, "elementor_allow_tracking": "yes"}

    assert again.delete_option("elementor_allow_tracking") is True
    assert again.delete_option("elementor_allow_tracking") is False
    store.reload()
    assert store.get_option("elementor_allow_tracking") is None


def test_yaml_store_reads_once_until_reload(tmp_path):
    path = tmp_path / "options.yaml"
    path.write_text("k: 1\n")
    store = YamlOptionStore(path)
    assert store.get_option("k") == 1
    path.write_text("k: 2\n")
    assert store.get_option("k") == 1
    store.reload()
    assert store.get_option("k") == 2


def test_yaml_store_backup(tmp_path):
    path = tmp_path / "options.yaml"
    store = YamlOptionStore(path, backup=True)
    store.update_option("k", 1)
    assert list(tmp_path.glob("*.bak")) == []
    store.update_option("k", 2)
    backups = list(tmp_path.glob("options.*.bak"))
    assert len(backups) == 1
    assert "k: 1" in backups[0].read_text()


def test_yaml_store_rejects_non_mapping(tmp_path):
    path = tmp_path / "options.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        YamlOptionStore(path).get_option("k")


def test_sql_store(tmp_path):
    store = SqlOptionStore(f"sqlite:///{tmp_path / 'db' / 'options.db'}")
    assert store.get_option("k", 0) == 0
    store.update_option("k", 1)
    store.update_option("k", 2)
    store.update_option("other", {"nested": ["v"]})
    assert store.get_option("k") == 2
    assert store.all_options() == {"k": 2, "other": {"nested": ["v"]}}
    assert store.delete_option("k") is True
    assert store.delete_option("k") is False
    store.close()

    reopened = SqlOptionStore(f"sqlite:///{tmp_path / 'db' / 'options.db'}")
    assert reopened.get_option("other") == {"nested": ["v"]}
    reopened.close()


def test_create_option_store(tmp_path):
    assert isinstance(create_option_store(OptionsConfig(backend="memory")), MemoryOptionStore)

    yaml_store = create_option_store(OptionsConfig(backend="yaml", path=str(tmp_path / "o.yaml")))
    assert isinstance(yaml_store, YamlOptionStore)

    sql_store = create_option_store(OptionsConfig(backend="sql", url=f"sqlite:///{tmp_path / 'o.db'}"))
    assert isinstance(sql_store, SqlOptionStore)
    sql_store.close()

    with pytest.raises(ValueError):
        create_option_store(OptionsConfig(backend="redis"))
