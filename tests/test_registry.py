"""Registry, config and serialization tests."""

import json
import logging
from dataclasses import dataclass, field

import pytest

from ngm.config import CONFIG_VERSION, NgmConfig, load_config
from ngm.registry import (
    REGISTRY_FILE,
    Project,
    Registry,
    RegistryError,
    Repository,
    primary_url,
    repository_id,
)
from ngm.serializable import MissingFieldError, Serializable


class TestRepositoryIdentity:
    def test_id_is_stable(self, tmp_path):
        a = Repository.create(tmp_path / "r", {"origin": "u"}, ["main"])
        b = Repository.create(tmp_path / "r", {"origin": "u"}, ["main", "dev"])
        assert a.id == b.id
        assert len(a.id) == 32

    def test_id_depends_on_path_and_remotes(self, tmp_path):
        base = Repository.create(tmp_path / "r", {"origin": "u"}, [])
        assert Repository.create(tmp_path / "s", {"origin": "u"}, []).id != base.id
        assert Repository.create(tmp_path / "r", {"origin": "v"}, []).id != base.id

    def test_remote_order_does_not_matter(self):
        assert repository_id("/x", {"a": "1", "b": "2"}) == repository_id("/x", {"b": "2", "a": "1"})

    def test_path_is_canonical(self, tmp_path):
        (tmp_path / "r").mkdir()
        repo = Repository.create(tmp_path / "r" / ".." / "r", {}, [])
        assert repo.path == str((tmp_path / "r").resolve())


class TestPrimaryUrl:
    @pytest.mark.parametrize(
        "remote, expected",
        [
            ({"origin": "git@github.com:team/app.git"}, "https://github.com/team/app"),
            ({"origin": "https://github.com/team/app.git"}, "https://github.com/team/app"),
            ({"origin": "ssh://git@host.io/team/app.git"}, "https://host.io/team/app"),
            ({"upstream": "https://x.org/y"}, "https://x.org/y"),
            ({"upstream": "https://x.org/a", "origin": "https://x.org/b"}, "https://x.org/b"),
            ({}, ""),
        ],
    )
    def test_url(self, remote, expected):
        assert primary_url(remote) == expected


class TestMaps:
    def test_lookup_maps(self, registry, tmp_path):
        assert registry.project_map["P1"].name == "web"
        assert registry.project_name_map["api"].id == "P2"
        repo = registry.repository_path_map[str((tmp_path / "repoA").resolve())]
        assert registry.repository_map[repo.id] is repo

    def test_duplicate_project_name_rejected(self, tmp_path):
        with pytest.raises(RegistryError, match="Duplicate project name"):
            Registry(tmp_path, [Project("a", "x", "b"), Project("b", "x", "b")])

    def test_add_project_duplicate(self, registry):
        with pytest.raises(ValueError, match="already exists"):
            registry.add_project(Project("P3", "web", "b"))

    def test_upsert_replaces_same_path(self, registry, tmp_path):
        before = len(registry.repositories)
        replacement = Repository.create(tmp_path / "repoA", {"origin": "other"}, ["main"])
        registry.upsert_repository(replacement)
        assert len(registry.repositories) == before
        assert registry.repository_path_map[replacement.path] is replacement


class TestPersistence:
    def test_save_and_load(self, registry):
        assert registry.save() is True
        loaded = Registry.load(registry.root)
        assert [p.to_dict() for p in loaded.projects] == [p.to_dict() for p in registry.projects]
        assert [r.to_dict() for r in loaded.repositories] == [
            r.to_dict() for r in registry.repositories
        ]
        assert loaded.config == registry.config

    def test_save_leaves_no_temp_files(self, registry):
        registry.save()
        leftovers = [p.name for p in registry.root.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_save_failure_returns_false(self, tmp_path):
        missing_root = tmp_path / "gone"
        registry = Registry(missing_root)
        assert registry.save() is False

    def test_corrupt_file(self, tmp_path):
        (tmp_path / REGISTRY_FILE).write_text("{not json")
        with pytest.raises(RegistryError, match="Corrupt registry file"):
            Registry.load(tmp_path)

    def test_newer_version_refused(self, tmp_path):
        (tmp_path / REGISTRY_FILE).write_text(json.dumps({"version": 99}))
        with pytest.raises(RegistryError, match="not supported"):
            Registry.load(tmp_path)

    def test_missing_required_field(self, tmp_path):
        data = {"projects": [{"id": "P1", "name": "web"}]}
        (tmp_path / REGISTRY_FILE).write_text(json.dumps(data))
        with pytest.raises(RegistryError, match="branch"):
            Registry.load(tmp_path)

    def test_unknown_member_ids_dropped(self, tmp_path, caplog):
        data = {"projects": [{"id": "P1", "name": "web", "branch": "b", "repository_ids": ["zz"]}]}
        (tmp_path / REGISTRY_FILE).write_text(json.dumps(data))
        with caplog.at_level(logging.WARNING):
            registry = Registry.load(tmp_path)
        assert registry.project_map["P1"].repository_ids == []
        assert "unknown repositories" in caplog.text

    def test_find_walks_up(self, registry, tmp_path):
        registry.save()
        found = Registry.find(tmp_path / "lib" / "repoC")
        assert found.root == registry.root
        assert "web" in found.project_name_map

    def test_find_without_file_discovers(self, tmp_path):
        (tmp_path / "plain").mkdir()
        found = Registry.find(tmp_path)
        assert found.root == tmp_path.resolve()
        assert found.repositories == []
        assert not (tmp_path / REGISTRY_FILE).exists()


class TestConfig:
    def test_defaults(self):
        config = load_config(None)
        assert config.default_command == "status"
        assert config.fallback_branches == ["dev", "development", "master", "main"]
        assert config.version == CONFIG_VERSION

    def test_overrides(self):
        config = load_config({"default_command": "project", "fallback_branches": ["trunk"]})
        assert config.default_command == "project"
        assert config.fallback_branches == ["trunk"]

    def test_unknown_keys_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = load_config({"colour": "always"})
        assert config == NgmConfig()
        assert "colour" in caplog.text

    def test_newer_version_refused(self):
        with pytest.raises(ValueError, match="newer"):
            load_config({"version": CONFIG_VERSION + 1})

    @pytest.mark.parametrize("key", ["git_timeout", "max_workers"])
    def test_non_positive_limits_refused(self, key):
        with pytest.raises(ValueError, match=key):
            load_config({key: 0})

    def test_config_section_in_registry(self, tmp_path):
        data = {"config": {"default_command": "project"}}
        (tmp_path / REGISTRY_FILE).write_text(json.dumps(data))
        assert Registry.load(tmp_path).config.default_command == "project"


@dataclass
class Inner(Serializable):
    name: str
    tags: list[str] = field(default_factory=list)


@dataclass
class Outer(Serializable):
    inner: Inner
    items: list[Inner] = field(default_factory=list)
    by_key: dict[str, Inner] = field(default_factory=dict)
    note: str | None = None


class TestSerializable:
    def test_nested_round_trip(self):
        obj = Outer(Inner("a", ["x"]), [Inner("b")], {"k": Inner("c")}, "n")
        assert Outer.from_dict(obj.to_dict()) == obj

    def test_missing_optional_fields_use_defaults(self):
        obj = Outer.from_dict({"inner": {"name": "a"}})
        assert obj.items == [] and obj.note is None

    def test_missing_required_field(self):
        with pytest.raises(MissingFieldError, match="Inner is missing required field 'name'"):
            Inner.from_dict({})
