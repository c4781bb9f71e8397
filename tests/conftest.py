"""Shared pytest fixtures for mgit tests."""

from __future__ import annotations

import dataclasses
import pathlib

import pygit2
import pytest

from mgit.rules import CONFIG_FILENAME, REPO_CONFIG_DIRNAME
from tests.helpers.rules import write_rule_file


@dataclasses.dataclass(slots=True)
class GitRepo:
    """Expose repository handle and path for tests."""

    repository: pygit2.Repository
    path: pathlib.Path

    def add_remote(self, name: str, url: str) -> None:
        """Register a remote in the repository configuration."""
        self.repository.remotes.create(name, url)

    def track(self, remote: str, branch: str = "main") -> None:
        """Make the local branch track ``remote/branch``."""
        head = self.repository.head.target
        self.repository.references.create(f"refs/remotes/{remote}/{branch}", head)
        local = self.repository.branches.local[branch]
        local.upstream = self.repository.branches.remote[f"{remote}/{branch}"]


@pytest.fixture
def git_repo(tmp_path: pathlib.Path) -> GitRepo:
    """Initialise a git repository with an initial commit for testing."""
    repo_path = pathlib.Path(tmp_path, "checkout")
    repo_path.mkdir()
    repository = pygit2.init_repository(str(repo_path), initial_head="main")

    config = repository.config
    config["user.name"] = "Test User"
    config["user.email"] = "test@example.com"

    seed_file = repo_path / "README.md"
    seed_file.write_text("seed\n", encoding="utf-8")

    index = repository.index
    index.add("README.md")
    index.write()
    tree_oid = index.write_tree()

    signature = pygit2.Signature("Test User", "test@example.com")
    repository.create_commit(
        "refs/heads/main",
        signature,
        signature,
        "initial commit",
        tree_oid,
        [],
    )

    repository.set_head("refs/heads/main")

    return GitRepo(repository=repository, path=repo_path)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: pathlib.Path) -> None:
    """Isolate rule-file discovery from the developer's environment."""
    monkeypatch.delenv("MGIT_CONFIG", raising=False)
    monkeypatch.delenv("MGIT_VERBOSE", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def rule_file(tmp_path: pathlib.Path) -> pathlib.Path:
    """Provide a repository-local rule file with two routing rules."""
    return write_rule_file(
        tmp_path / "repo" / REPO_CONFIG_DIRNAME / CONFIG_FILENAME,
        [
            {
                "id": "r_work",
                "host": "github.com",
                "owner": "acme",
                "key": "~/.ssh/id_work",
            },
            {
                "id": "r_personal",
                "host": "github.com",
                "owner": "*",
                "key": "~/.ssh/id_personal",
            },
        ],
    )
