"""An in-memory Git accessor with deterministic oids and clock."""

import hashlib
import heapq
from pathlib import Path

from gitx.models.git import GitBranch, GitCommit, GitCommitDetail, GitTag, WorkingTreeState
from gitx.errors import (
    CherryPickConflict,
    CherryPickEmpty,
    MissingObject,
    NotARepository,
    PushRejected,
    RefNotFound,
    WorkingTreeDirty,
)


EPOCH = 1_700_000_000


class InMemoryGit:
    """A commit graph, refs and a simulated working tree held in memory.

    ``conflicts`` names oids whose cherry-pick stops with a conflict,
    ``push_rejection`` makes the next pushes fail with that message, and
    ``fail_with`` maps a method name to an exception it raises on entry.
    """

    def __init__(
        self,
        path: Path = Path("/memory/repo"),
        branch: str = "main",
        committer: str = "gitx",
    ) -> None:
        self.path = Path(path)
        self.is_repository = True
        self.commits: dict[str, GitCommit] = {}
        self.patches: dict[str, str] = {}
        self.branches: dict[str, str | None] = {branch: None}
        self.tags: dict[str, GitTag] = {}
        self.head = branch
        self.committer = committer
        self.changed_paths: list[str] = []
        self.operation: str | None = None
        self.conflicts: set[str] = set()
        self.push_rejection: str | None = None
        self.fail_with: dict[str, Exception] = {}
        self.push_calls: list[tuple[str, str]] = []
        self.fetch_calls: list[str] = []
        self.list_calls: list[tuple[str, list[str]]] = []
        self._clock = EPOCH
        self._counter = 0

    def tick(self, seconds: int = 60) -> int:
        """Advance the clock and return the new time."""
        self._clock += seconds
        return self._clock

    def _new_oid(self, seed: str) -> str:
        self._counter += 1
        return hashlib.sha1(f"{self._counter}:{seed}".encode()).hexdigest()

    def _check(self, operation: str) -> None:
        error = self.fail_with.get(operation)
        if error is not None:
            raise error

    # Building history

    def commit(
        self,
        summary: str,
        author: str = "alice",
        branch: str | None = None,
        committer_time: int | None = None,
        parents: list[str] | None = None,
        patch: str | None = None,
        message: str | None = None,
    ) -> str:
        """Add a commit on top of ``branch`` (default: HEAD) and return its oid."""
        branch = branch or self.head
        if parents is None:
            tip = self.branches.get(branch)
            parents = [tip] if tip else []
        when = committer_time if committer_time is not None else self.tick()
        oid = self._new_oid(summary)
        self.commits[oid] = GitCommit(
            oid=oid,
            author_name=author,
            author_email=f"{author}@example.com",
            author_time=when,
            committer_name=author,
            committer_email=f"{author}@example.com",
            committer_time=when,
            summary=summary,
            message=message,
            parent_oids=list(parents),
        )
        self.patches[oid] = patch or oid
        self.branches[branch] = oid
        return oid

    def create_branch(self, name: str, start: str | None = None) -> None:
        """Create a branch at ``start``, a branch name or oid (default: HEAD)."""
        start = start or self.head
        self.branches[name] = self.branches[start] if start in self.branches else start

    def tag(self, name: str, target: str, tagger: str | None = None, message: str | None = None) -> None:
        self.tags[name] = GitTag(
            name=name,
            target_oid=target,
            tagger_name=tagger,
            tagger_email=f"{tagger}@example.com" if tagger else None,
            tagger_time=self._clock if tagger else None,
            message=message,
        )

    def abort(self) -> None:
        """Simulate the operator aborting an in-progress operation."""
        self.operation = None
        self.changed_paths = []

    def _reachable(self, tip: str | None) -> list[str]:
        seen: set[str] = set()
        stack = [tip] if tip else []
        while stack:
            oid = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            stack.extend(self.commits[oid].parent_oids)
        return list(seen)

    # GitAccessor

    def verify(self) -> None:
        self._check("verify")
        if not self.is_repository:
            raise NotARepository(f"Not a Git repository: {self.path}")

    def resolve_ref(self, ref: str) -> str:
        self._check("resolve_ref")
        if ref == "HEAD":
            ref = self.head
        tip = self.branches.get(ref)
        if tip is None:
            if ref in self.commits:
                return ref
            raise RefNotFound(ref)
        return tip

    def list_commits(
        self, ref: str, limit: int = 0, exclude: list[str] | None = None
    ) -> list[GitCommit]:
        """Newest committer time first, never a parent before its children."""
        self._check("list_commits")
        self.list_calls.append((ref, list(exclude or [])))
        reachable = set(self._reachable(self.resolve_ref(ref)))
        for oid in exclude or []:
            if oid in self.commits:
                reachable.difference_update(self._reachable(oid))
        pending_children = dict.fromkeys(reachable, 0)
        for oid in reachable:
            for parent in self.commits[oid].parent_oids:
                if parent in pending_children:
                    pending_children[parent] += 1

        ready = [
            (-self.commits[oid].committer_time, oid)
            for oid, count in pending_children.items()
            if count == 0
        ]
        heapq.heapify(ready)
        commits = []
        while ready:
            _, oid = heapq.heappop(ready)
            commits.append(self.commits[oid])
            for parent in self.commits[oid].parent_oids:
                if parent not in pending_children:
                    continue
                pending_children[parent] -= 1
                if pending_children[parent] == 0:
                    heapq.heappush(ready, (-self.commits[parent].committer_time, parent))
        return commits[:limit] if limit else commits

    def commit_detail(self, oid: str) -> GitCommitDetail:
        self._check("commit_detail")
        commit = self.commits.get(oid)
        if commit is None:
            raise MissingObject(f"Commit not found: {oid}")
        patch = self.patches[oid]
        lines = patch.splitlines()
        return GitCommitDetail(
            commit=commit,
            files_changed=1 if lines else 0,
            insertions=sum(1 for line in lines if line.startswith("+")),
            deletions=sum(1 for line in lines if line.startswith("-")),
            patch=patch,
        )

    def list_branches(self, include_remote: bool = True) -> list[GitBranch]:
        self._check("list_branches")
        branches = []
        for name, tip in sorted(self.branches.items()):
            if tip is None:
                continue
            is_remote = "/" in name
            if is_remote and not include_remote:
                continue
            branches.append(
                GitBranch(name=name, target_oid=tip, is_head=name == self.head, is_remote=is_remote)
            )
        return branches

    def list_tags(self) -> list[GitTag]:
        self._check("list_tags")
        return [self.tags[name] for name in sorted(self.tags)]

    def working_tree_state(self) -> WorkingTreeState:
        self._check("working_tree_state")
        return WorkingTreeState(
            branch=self.head,
            changed_paths=list(self.changed_paths),
            operation=self.operation,
        )

    def checkout(self, branch: str) -> None:
        self._check("checkout")
        if self.branches.get(branch) is None:
            raise RefNotFound(branch)
        if self.changed_paths or self.operation:
            raise WorkingTreeDirty(self.working_tree_state().describe())
        self.head = branch

    def cherry_pick(self, oid: str) -> str:
        self._check("cherry_pick")
        if self.changed_paths or self.operation:
            raise WorkingTreeDirty(self.working_tree_state().describe())
        source = self.commits.get(oid)
        if source is None:
            raise MissingObject(f"Commit not found: {oid}")
        if oid in self.conflicts:
            self.operation = "cherry-pick"
            self.changed_paths = [f"{source.summary}.txt"]
            raise CherryPickConflict(f"could not apply {oid[:7]}... {source.summary}")

        tip = self.branches.get(self.head)
        applied = {self.patches[c] for c in self._reachable(tip)}
        if self.patches[oid] in applied:
            self.operation = "cherry-pick"
            raise CherryPickEmpty("The previous cherry-pick is now empty")

        when = self.tick()
        new_oid = self._new_oid(f"pick:{oid}")
        self.commits[new_oid] = GitCommit(
            oid=new_oid,
            author_name=source.author_name,
            author_email=source.author_email,
            author_time=source.author_time,
            committer_name=self.committer,
            committer_email=f"{self.committer}@example.com",
            committer_time=when,
            summary=source.summary,
            message=source.message,
            parent_oids=[tip] if tip else [],
        )
        self.patches[new_oid] = self.patches[oid]
        self.branches[self.head] = new_oid
        return new_oid

    def push(self, remote: str, branch: str) -> str:
        self._check("push")
        self.push_calls.append((remote, branch))
        if self.push_rejection:
            raise PushRejected(self.push_rejection)
        tip = self.resolve_ref(branch)
        self.branches[f"{remote}/{branch}"] = tip
        return f"To {remote}\n   {branch} -> {branch}"

    def fetch(self, remote: str, prune: bool = True) -> None:
        self._check("fetch")
        self.fetch_calls.append(remote)


class MemoryGitRegistry:
    """Hands out one ``InMemoryGit`` per path; usable as an accessor factory."""

    def __init__(self) -> None:
        self._repos: dict[str, InMemoryGit] = {}

    def add(self, path: Path, **kwargs) -> InMemoryGit:
        repo = InMemoryGit(path=path, **kwargs)
        self._repos[str(Path(path))] = repo
        return repo

    def __call__(self, path: Path) -> InMemoryGit:
        try:
            return self._repos[str(Path(path))]
        except KeyError:
            raise NotARepository(f"Not a Git repository: {path}")
