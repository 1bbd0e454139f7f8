"""Tests for GitService."""

import subprocess
from pathlib import Path

import pytest

from gitx.core.cherry_pick import failure_kind
from gitx.core.git_service import GitService
from gitx.errors import (
    CherryPickConflict,
    CherryPickEmpty,
    GitError,
    GitTimeout,
    MissingObject,
    NotARepository,
    PushRejected,
    RefNotFound,
    WorkingTreeDirty,
)

from conftest import run_git


class TestGitServiceWithRepo:
    """Tests for GitService with actual git repository."""

    @pytest.fixture
    def git_service(self, git_repo: Path) -> GitService:
        """Create a GitService instance."""
        return GitService(git_repo)

    def test_is_git_repository(self, git_service: GitService, git_repo: Path) -> None:
        """Test checking if path is a git repository."""
        assert git_service.is_git_repository() is True
        assert GitService(git_repo.parent).is_git_repository() is False

    def test_get_current_branch(self, git_service: GitService) -> None:
        """Test getting current branch."""
        assert git_service.get_current_branch() == "main"

    def test_resolve_ref(self, git_service: GitService, git_repo: Path) -> None:
        """Test resolving a branch name to its tip oid."""
        assert git_service.resolve_ref("main") == run_git(git_repo, "rev-parse", "HEAD")

    def test_resolve_unknown_ref(self, git_service: GitService) -> None:
        """Test resolving a branch that does not exist."""
        with pytest.raises(RefNotFound) as exc_info:
            git_service.resolve_ref("no-such-branch")
        assert exc_info.value.ref == "no-such-branch"

    def test_list_commits_fields(
        self, git_service: GitService, git_repo: Path, make_commit
    ) -> None:
        """Test that commit metadata is parsed from the log."""
        oid = make_commit(
            git_repo, "a.txt", "a\n", "Add a\n\nLonger body", when=1700000100, author="Alice"
        )

        commits = git_service.list_commits("main")

        assert [c.oid for c in commits][0] == oid
        latest = commits[0]
        assert latest.author_name == "Alice"
        assert latest.committer_name == "Test User"
        assert latest.committer_time == 1700000100
        assert latest.summary == "Add a"
        assert latest.message == "Longer body"
        assert latest.parent_oids == [commits[1].oid]
        assert commits[1].parent_oids == []

    def test_list_commits_newest_first(
        self, git_service: GitService, git_repo: Path, make_commit
    ) -> None:
        """Test that commits come newest committer time first."""
        first = make_commit(git_repo, "a.txt", "a\n", "First", when=1700000100)
        second = make_commit(git_repo, "b.txt", "b\n", "Second", when=1700000200)

        oids = [c.oid for c in git_service.list_commits("main")]

        assert oids[:2] == [second, first]
        assert len(oids) == 3

    def test_list_commits_limit(
        self, git_service: GitService, git_repo: Path, make_commit
    ) -> None:
        """Test bounding the walk."""
        make_commit(git_repo, "a.txt", "a\n", "First", when=1700000100)
        make_commit(git_repo, "b.txt", "b\n", "Second", when=1700000200)

        assert len(git_service.list_commits("main", limit=2)) == 2

    def test_list_commits_exclude(
        self, git_service: GitService, git_repo: Path, make_commit
    ) -> None:
        """Test that excluded history is left out of the walk."""
        old_tip = git_service.resolve_ref("main")
        new = make_commit(git_repo, "a.txt", "a\n", "New", when=1700000100)

        commits = git_service.list_commits("main", exclude=[old_tip])

        assert [c.oid for c in commits] == [new]

    def test_list_commits_unknown_exclude_walks_everything(
        self, git_service: GitService
    ) -> None:
        """Test that an unknown excluded oid falls back to the full walk."""
        commits = git_service.list_commits("main", exclude=["0" * 40])

        assert len(commits) == 1

    def test_list_commits_unknown_ref(self, git_service: GitService) -> None:
        """Test listing a branch that does not exist."""
        with pytest.raises(RefNotFound):
            git_service.list_commits("no-such-branch")

    def test_list_branches(self, git_service: GitService, git_repo: Path) -> None:
        """Test listing branches."""
        run_git(git_repo, "branch", "feature")

        branches = {b.name: b for b in git_service.list_branches(include_remote=False)}

        assert set(branches) == {"main", "feature"}
        assert branches["main"].is_head is True
        assert branches["feature"].is_head is False

    def test_list_remote_branches(
        self, git_service: GitService, bare_remote: Path
    ) -> None:
        """Test that remote-tracking branches are listed without origin/HEAD."""
        names = {b.name: b for b in git_service.list_branches()}

        assert "origin/main" in names
        assert names["origin/main"].is_remote is True
        assert not any(name.endswith("/HEAD") for name in names)

    def test_list_tags(self, git_service: GitService, git_repo: Path) -> None:
        """Test listing lightweight and annotated tags."""
        head = git_service.resolve_ref("HEAD")
        run_git(git_repo, "tag", "light")
        run_git(git_repo, "tag", "-a", "v1.0", "-m", "Release 1.0")

        tags = {t.name: t for t in git_service.list_tags()}

        assert tags["light"].target_oid == head
        assert tags["light"].tagger_name is None
        assert tags["v1.0"].target_oid == head
        assert tags["v1.0"].tagger_name == "Test User"
        assert tags["v1.0"].tagger_email == "test@test.com"
        assert tags["v1.0"].message == "Release 1.0"

    def test_working_tree_state_clean(self, git_service: GitService) -> None:
        """Test the state of a clean working tree."""
        state = git_service.working_tree_state()

        assert state.branch == "main"
        assert state.is_clean is True

    def test_working_tree_state_modified(
        self, git_service: GitService, git_repo: Path
    ) -> None:
        """Test that tracked modifications make the tree dirty."""
        (git_repo / "README.md").write_text("# Modified\n")

        state = git_service.working_tree_state()

        assert state.is_clean is False
        assert "README.md" in state.changed_paths

    def test_working_tree_state_ignores_untracked(
        self, git_service: GitService, git_repo: Path
    ) -> None:
        """Test that untracked files do not make the tree dirty."""
        (git_repo / "new_file.txt").write_text("new content\n")

        assert git_service.working_tree_state().is_clean is True

    def test_commit_detail(self, git_service: GitService, git_repo: Path, make_commit) -> None:
        """Test diff stats and patch against the first parent."""
        make_commit(git_repo, "notes.txt", "one\ntwo\nthree\n", "Add notes", when=1700000100)
        oid = make_commit(git_repo, "notes.txt", "one\n3\n", "Edit notes", when=1700000200)

        detail = git_service.commit_detail(oid)

        assert detail.commit.oid == oid
        assert detail.commit.summary == "Edit notes"
        assert detail.files_changed == 1
        assert detail.insertions == 1
        assert detail.deletions == 2
        assert detail.stats == "1 files changed, 1 insertions(+), 2 deletions(-)"
        assert "diff --git a/notes.txt b/notes.txt" in detail.patch
        assert "+3" in detail.patch.splitlines()

    def test_commit_detail_root(self, git_service: GitService, git_repo: Path) -> None:
        """Test that a root commit is compared with the empty tree."""
        root = run_git(git_repo, "rev-list", "--max-parents=0", "HEAD")

        detail = git_service.commit_detail(root)

        assert detail.commit.parent_oids == []
        assert detail.files_changed == 1
        assert detail.insertions == 1
        assert "+# Test Repo" in detail.patch

    def test_commit_detail_missing(self, git_service: GitService) -> None:
        """Test asking for a commit the repository does not have."""
        with pytest.raises(MissingObject):
            git_service.commit_detail("f" * 40)

    def test_checkout(self, git_service: GitService, git_repo: Path) -> None:
        """Test checking out another branch."""
        run_git(git_repo, "branch", "feature")

        git_service.checkout("feature")

        assert git_service.get_current_branch() == "feature"

    def test_checkout_unknown_branch(self, git_service: GitService) -> None:
        """Test checking out a branch that does not exist."""
        with pytest.raises(RefNotFound):
            git_service.checkout("no-such-branch")


class TestGitServiceCherryPick:
    """Tests for GitService.cherry_pick()."""

    @pytest.fixture
    def git_service(self, git_repo: Path) -> GitService:
        return GitService(git_repo)

    @pytest.fixture
    def feature(self, git_repo: Path, make_commit) -> list[str]:
        """Two commits on ``feature``; ``main`` stays checked out."""
        run_git(git_repo, "checkout", "-b", "feature")
        oids = [
            make_commit(git_repo, "a.txt", "a\n", "Add a", when=1700000100),
            make_commit(git_repo, "b.txt", "b\n", "Add b", when=1700000200),
        ]
        run_git(git_repo, "checkout", "main")
        return oids

    def test_cherry_pick(
        self, git_service: GitService, git_repo: Path, feature: list[str]
    ) -> None:
        """Test applying a commit creates a new commit on HEAD."""
        new_oid = git_service.cherry_pick(feature[0])

        assert new_oid != feature[0]
        assert new_oid == run_git(git_repo, "rev-parse", "main")
        assert (git_repo / "a.txt").exists()
        latest = git_service.list_commits("main")[0]
        assert latest.summary == "Add a"
        assert latest.author_name == "Test User"

    def test_cherry_pick_missing_object(self, git_service: GitService) -> None:
        """Test picking an oid the repository does not have."""
        with pytest.raises(MissingObject):
            git_service.cherry_pick("0123456789abcdef0123456789abcdef01234567")

    def test_cherry_pick_empty(
        self, git_service: GitService, feature: list[str]
    ) -> None:
        """Test picking a change that is already on HEAD."""
        git_service.cherry_pick(feature[0])

        with pytest.raises(CherryPickEmpty):
            git_service.cherry_pick(feature[0])

    def test_cherry_pick_conflict_leaves_tree(
        self, git_service: GitService, git_repo: Path, feature: list[str], make_commit
    ) -> None:
        """Test that a conflict is reported and left in place."""
        make_commit(git_repo, "a.txt", "different\n", "Conflicting a", when=1700000300)

        with pytest.raises(CherryPickConflict):
            git_service.cherry_pick(feature[0])

        state = git_service.working_tree_state()
        assert state.operation == "cherry-pick"
        assert state.is_clean is False

    def test_cherry_pick_while_in_progress(
        self, git_service: GitService, git_repo: Path, feature: list[str], make_commit
    ) -> None:
        """Test that a pick on top of an unresolved pick is refused as dirty."""
        make_commit(git_repo, "a.txt", "different\n", "Conflicting a", when=1700000300)
        with pytest.raises(CherryPickConflict):
            git_service.cherry_pick(feature[0])

        with pytest.raises(WorkingTreeDirty) as exc_info:
            git_service.cherry_pick(feature[0])
        assert failure_kind(exc_info.value) == "dirty"


class TestGitServicePush:
    """Tests for GitService.push() against a bare remote."""

    @pytest.fixture
    def git_service(self, git_repo: Path) -> GitService:
        return GitService(git_repo)

    def test_push(
        self, git_service: GitService, git_repo: Path, bare_remote: Path, make_commit
    ) -> None:
        """Test a fast-forward push updates the remote."""
        oid = make_commit(git_repo, "a.txt", "a\n", "Add a", when=1700000100)

        git_service.push("origin", "main")

        assert run_git(bare_remote, "rev-parse", "main") == oid
        assert git_service.resolve_ref("origin/main") == oid

    def test_push_rejected(
        self, git_service: GitService, git_repo: Path, bare_remote: Path, temp_dir: Path, make_commit
    ) -> None:
        """Test a non-fast-forward push is rejected with the remote's message."""
        other = temp_dir / "other"
        run_git(temp_dir, "clone", str(bare_remote), str(other))
        run_git(other, "config", "commit.gpgsign", "false")
        make_commit(other, "theirs.txt", "theirs\n", "Their change", when=1700000100)
        run_git(other, "push", "origin", "HEAD:main")

        make_commit(git_repo, "ours.txt", "ours\n", "Our change", when=1700000200)

        with pytest.raises(PushRejected) as exc_info:
            git_service.push("origin", "main")
        assert "rejected" in exc_info.value.reason


class TestGitServiceErrors:
    """Tests for GitService error handling."""

    def test_not_a_repository(self, temp_dir: Path) -> None:
        """Test error when path is not a repository."""
        with pytest.raises(NotARepository, match="Not a Git repository"):
            GitService(temp_dir).verify()

    def test_timeout(self, git_repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an expired subprocess timeout raises GitTimeout."""

        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(GitTimeout, match="timed out"):
            GitService(git_repo, timeout=1).list_commits("main")

    def test_git_not_installed(self, git_repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test error when the git executable is missing."""

        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(GitError, match="not installed"):
            GitService(git_repo).list_branches()
