"""Tests for policy loading, validation, env defaults, and the policy store."""

import os
from pathlib import Path

import pytest
import yaml

from gitpolicy.config.defaults import CONFIG_FILENAME, DEFAULT_YAML, env_defaults
from gitpolicy.config.loader import ConfigError, load_config
from gitpolicy.config.schema import PolicyConfig, validate_policy
from gitpolicy.config.store import PolicyStore, PolicyWriteError


def _bump_mtime(path: Path) -> None:
    st = path.stat()
    os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000_000))


class TestPolicyValidation:
    def test_defaults_valid(self):
        validate_policy(PolicyConfig())

    def test_empty_prefix(self):
        with pytest.raises(ValueError):
            validate_policy(PolicyConfig(feature_prefix=""))

    def test_overlapping_prefixes(self):
        with pytest.raises(ValueError, match="prefixes"):
            validate_policy(PolicyConfig(feature_prefix="fix/", hotfix_prefix="fix/urgent/"))

    def test_empty_integration_branch(self):
        with pytest.raises(ValueError):
            validate_policy(PolicyConfig(integration_branch=""))

    def test_error_severity_rejected_for_integration_commits(self):
        with pytest.raises(ValueError):
            validate_policy(PolicyConfig(integration_commit_severity="error"))

    def test_no_commit_types(self):
        with pytest.raises(ValueError):
            validate_policy(PolicyConfig(allowed_commit_types=()))

    def test_to_dict_uses_lists(self):
        data = PolicyConfig().to_dict()
        assert data["protected_branches"] == ["main", "master"]
        assert isinstance(data["allowed_commit_types"], list)


class TestEnvDefaults:
    def test_no_env(self):
        assert env_defaults({}) == PolicyConfig()

    def test_overrides(self):
        cfg = env_defaults(
            {
                "GITPOLICY_PROTECTED": "prod, release",
                "GITPOLICY_INTEGRATION_BRANCH": "staging",
                "GITPOLICY_FEATURE_PREFIX": "feat/",
                "GITPOLICY_HOTFIX_PREFIX": "fix/",
                "GITPOLICY_MAIN_BRANCH": "prod",
                "GITPOLICY_REPO_PATH": "/srv/repo",
            }
        )
        assert cfg.protected_branches == ("prod", "release")
        assert cfg.integration_branch == "staging"
        assert cfg.feature_prefix == "feat/"
        assert cfg.hotfix_prefix == "fix/"
        assert cfg.main_branch == "prod"
        assert cfg.repo_path == "/srv/repo"

    def test_blank_protected_list_keeps_default(self):
        assert env_defaults({"GITPOLICY_PROTECTED": " , "}).protected_branches == ("main", "master")

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("GITPOLICY_INTEGRATION_BRANCH", "dev")
        assert env_defaults().integration_branch == "dev"


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path):
        assert load_config(tmp_path / CONFIG_FILENAME) == PolicyConfig()

    def test_partial_file(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\nallow_direct_push: true\n")
        cfg = load_config(path)
        assert cfg.integration_branch == "staging"
        assert cfg.allow_direct_push is True
        assert cfg.protected_branches == ("main", "master")

    def test_default_template_parses(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text(DEFAULT_YAML)
        assert load_config(path) == PolicyConfig()

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("")
        assert load_config(path) == PolicyConfig()

    def test_unknown_keys_ignored(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("colour: blue\nmain_branch: master\n")
        assert load_config(path).main_branch == "master"

    def test_single_string_protected_branch(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("protected_branches: prod\n")
        assert load_config(path).protected_branches == ("prod",)

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("protected_branches: [main\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_top_level_list(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("- main\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_wrong_type(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("allow_direct_push: sometimes\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invariant_violation(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("feature_prefix: x/\nhotfix_prefix: x/\n")
        with pytest.raises(ConfigError):
            load_config(path)


class TestPolicyStore:
    def test_missing_file_uses_env_defaults(self, tmp_path: Path):
        store = PolicyStore(tmp_path / CONFIG_FILENAME, env={"GITPOLICY_MAIN_BRANCH": "master"})
        cfg = store.get()
        assert cfg.main_branch == "master"
        assert cfg.repo_path == str(tmp_path)

    def test_file_overrides_env(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\n")
        store = PolicyStore(path, env={"GITPOLICY_INTEGRATION_BRANCH": "dev", "GITPOLICY_MAIN_BRANCH": "master"})
        cfg = store.get()
        assert cfg.integration_branch == "staging"
        assert cfg.main_branch == "master"

    def test_invalid_file_falls_back_to_defaults(self, tmp_path: Path, caplog):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("protected_branches: [main\n")
        store = PolicyStore(path, env={})
        assert store.get() == PolicyConfig()
        assert "Ignoring policy file" in caplog.text

    def test_cached_until_mtime_changes(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\n")
        store = PolicyStore(path, env={})
        first = store.get()
        assert store.get() is first

        path.write_text("integration_branch: trunk\n")
        _bump_mtime(path)
        assert store.get().integration_branch == "trunk"

    def test_invalidate(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\n")
        store = PolicyStore(path, env={})
        first = store.get()
        store.invalidate()
        assert store.get() is not first

    def test_deleted_file_reverts_to_defaults(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\n")
        store = PolicyStore(path, env={})
        assert store.get().integration_branch == "staging"
        path.unlink()
        assert store.get().integration_branch == "develop"


class TestPolicyStoreUpdate:
    def test_creates_file(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        store = PolicyStore(path, env={})
        cfg = store.update(integration_branch="staging")
        assert cfg.integration_branch == "staging"
        text = path.read_text()
        assert text.startswith("# Updated by gitpolicy")
        assert yaml.safe_load(text) == {"integration_branch": "staging"}

    def test_partial_merge_preserves_other_keys(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("main_branch: master\ncustom_note: keep me\n")
        store = PolicyStore(path, env={})
        cfg = store.update(protected_branches=("master", "release"))
        doc = yaml.safe_load(path.read_text())
        assert doc["main_branch"] == "master"
        assert doc["custom_note"] == "keep me"
        assert doc["protected_branches"] == ["master", "release"]
        assert cfg.protected_branches == ("master", "release")
        assert cfg.main_branch == "master"

    def test_none_values_skipped(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        store = PolicyStore(path, env={})
        store.update(integration_branch="staging", main_branch=None)
        assert "main_branch" not in yaml.safe_load(path.read_text())

    def test_update_visible_to_next_get(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("integration_branch: staging\n")
        store = PolicyStore(path, env={})
        store.get()
        store.update(allow_direct_push=True)
        assert store.get().allow_direct_push is True

    def test_unknown_field(self, tmp_path: Path):
        store = PolicyStore(tmp_path / CONFIG_FILENAME, env={})
        with pytest.raises(ConfigError, match="Unknown"):
            store.update(colour="blue")

    def test_invalid_update_leaves_file_untouched(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("feature_prefix: feature/\n")
        store = PolicyStore(path, env={})
        with pytest.raises(ConfigError):
            store.update(hotfix_prefix="feature/")
        assert path.read_text() == "feature_prefix: feature/\n"

    def test_write_failure(self, tmp_path: Path):
        store = PolicyStore(tmp_path / "missing-dir" / CONFIG_FILENAME, env={})
        with pytest.raises(PolicyWriteError, match="Failed to write"):
            store.update(integration_branch="staging")

    def test_unreadable_document_replaced(self, tmp_path: Path):
        path = tmp_path / CONFIG_FILENAME
        path.write_text("- not a mapping\n")
        store = PolicyStore(path, env={})
        cfg = store.update(main_branch="master")
        assert cfg.main_branch == "master"
        assert yaml.safe_load(path.read_text()) == {"main_branch": "master"}
