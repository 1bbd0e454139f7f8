"""Git service: log traversal, ref listing, cherry-pick and push via the git CLI."""

import os
import subprocess
from pathlib import Path

import logbook

from gitx.models.git import GitBranch, GitCommit, GitCommitDetail, GitTag, WorkingTreeState
from gitx.errors import (
    CherryPickConflict,
    CherryPickEmpty,
    GitError,
    GitTimeout,
    MissingObject,
    NotARepository,
    PushError,
    PushRejected,
    RefNotFound,
    WorkingTreeDirty,
)


log = logbook.Logger(__name__)

FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"

LOG_FORMAT = FIELD_SEP.join(
    ["%H", "%an", "%ae", "%at", "%cn", "%ce", "%ct", "%P", "%s", "%b"]
) + RECORD_SEP

TAG_FORMAT = FIELD_SEP.join(
    [
        "%(refname:short)",
        "%(objectname)",
        "%(objecttype)",
        "%(*objectname)",
        "%(taggername)",
        "%(taggeremail)",
        "%(taggerdate:unix)",
        "%(contents:subject)",
    ]
)

BRANCH_FORMAT = FIELD_SEP.join(["%(refname)", "%(objectname)", "%(HEAD)"])

# In-progress operations, keyed by the marker git leaves in its directory
OPERATION_MARKERS = {
    "CHERRY_PICK_HEAD": "cherry-pick",
    "MERGE_HEAD": "merge",
    "REVERT_HEAD": "revert",
    "rebase-merge": "rebase",
    "rebase-apply": "rebase",
}

PUSH_REJECTION_MARKERS = (
    "[rejected]",
    "[remote rejected]",
    "non-fast-forward",
    "fetch first",
    "hook declined",
)


class GitService:
    """Git operations on one repository, run as ``git`` subprocesses."""

    def __init__(
        self,
        path: Path,
        timeout: float | None = 60,
        network_timeout: float | None = 300,
    ) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self.network_timeout = network_timeout

    def _run_git(
        self,
        args: list[str],
        check: bool = True,
        timeout: float | None = None,
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command and return the result."""
        cmd = ["git"] + args
        timeout = timeout if timeout is not None else self.timeout
        log.debug("Running {} in {}", " ".join(cmd), self.path)
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                check=check,
                timeout=timeout,
                env=env,
            )
            return result
        except subprocess.TimeoutExpired:
            raise GitTimeout(f"git {args[0]} timed out after {timeout}s")
        except subprocess.CalledProcessError as e:
            error_msg = e.stderr.strip() if e.stderr else str(e)
            raise GitError(f"Git command failed: {error_msg}")
        except FileNotFoundError:
            raise GitError("Git is not installed or not in PATH")

    def is_git_repository(self) -> bool:
        """Check if the path is a Git repository."""
        if not self.path.is_dir():
            return False
        try:
            result = self._run_git(["rev-parse", "--git-dir"], check=False)
            return result.returncode == 0
        except GitError:
            return False

    def verify(self) -> None:
        if not self.is_git_repository():
            raise NotARepository(f"Not a Git repository: {self.path}")

    def resolve_ref(self, ref: str) -> str:
        result = self._run_git(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False
        )
        if result.returncode != 0:
            raise RefNotFound(ref)
        return result.stdout.strip()

    def get_current_branch(self) -> str:
        """Get the current branch name."""
        result = self._run_git(["rev-parse", "--abbrev-ref", "HEAD"])
        return result.stdout.strip()

    def list_commits(
        self, ref: str, limit: int = 0, exclude: list[str] | None = None
    ) -> list[GitCommit]:
        """List commits reachable from ``ref``, newest committer time first.

        ``--date-order`` keeps every child ahead of its parents, so a caller
        can stop at the first commit it already knows. Oids in ``exclude``
        bound the walk; a pruned one is dropped and the walk repeated in full.
        """
        args = ["log", "--date-order", f"--format={LOG_FORMAT}"]
        if limit:
            args.append(f"--max-count={limit}")
        args.append(ref)
        if exclude:
            args.extend(f"^{oid}" for oid in exclude)
        args.append("--")

        result = self._run_git(args, check=False)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if exclude:
                log.debug("Excluded oids unusable for {}, walking full history", ref)
                return self.list_commits(ref, limit=limit)
            if "unknown revision" in stderr or "bad revision" in stderr:
                raise RefNotFound(ref)
            raise GitError(f"Git command failed: {stderr}")

        return [
            self._parse_commit(record)
            for record in result.stdout.split(RECORD_SEP)
            if record.strip()
        ]

    def _parse_commit(self, record: str) -> GitCommit:
        """Parse one ``LOG_FORMAT`` record."""
        fields = record.lstrip("\n").split(FIELD_SEP)
        body = fields[9].strip()
        return GitCommit(
            oid=fields[0],
            author_name=fields[1],
            author_email=fields[2],
            author_time=int(fields[3]),
            committer_name=fields[4],
            committer_email=fields[5],
            committer_time=int(fields[6]),
            parent_oids=fields[7].split(),
            summary=fields[8],
            message=body or None,
        )

    def commit_detail(self, oid: str) -> GitCommitDetail:
        """Get a commit with its change against the first parent.

        Root commits are compared with the empty tree.
        """
        exists = self._run_git(["cat-file", "-e", f"{oid}^{{commit}}"], check=False)
        if exists.returncode != 0:
            raise MissingObject(f"Commit not found: {oid}")

        result = self._run_git(["log", "-1", f"--format={LOG_FORMAT}", oid, "--"])
        commit = self._parse_commit(result.stdout.split(RECORD_SEP)[0])

        if commit.parent_oids:
            revs = [commit.parent_oids[0], commit.oid]
        else:
            revs = ["--root", commit.oid]
        numstat = self._run_git(["diff-tree", "-r", "--no-commit-id", "--numstat"] + revs)
        patch = self._run_git(["diff-tree", "-r", "--no-commit-id", "-p"] + revs)

        detail = GitCommitDetail(commit=commit, patch=patch.stdout)
        for line in numstat.stdout.splitlines():
            if not line.strip():
                continue
            added, deleted, _ = line.split("\t", 2)
            detail.files_changed += 1
            # Binary files report "-" for both counts
            if added != "-":
                detail.insertions += int(added)
                detail.deletions += int(deleted)
        return detail

    def list_branches(self, include_remote: bool = True) -> list[GitBranch]:
        """List local and (optionally) remote-tracking branches."""
        refs = ["refs/heads"]
        if include_remote:
            refs.append("refs/remotes")
        result = self._run_git(["for-each-ref", f"--format={BRANCH_FORMAT}"] + refs)

        branches = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            refname, oid, head = line.split(FIELD_SEP)
            if refname.startswith("refs/heads/"):
                branches.append(
                    GitBranch(name=refname[11:], target_oid=oid, is_head=head == "*")
                )
            elif refname.startswith("refs/remotes/"):
                name = refname[13:]
                # origin/HEAD is a symbolic alias, not a branch
                if name.endswith("/HEAD"):
                    continue
                branches.append(GitBranch(name=name, target_oid=oid, is_remote=True))
        return branches

    def list_tags(self) -> list[GitTag]:
        """List tags, peeling annotated tags to the commit they name."""
        result = self._run_git(["for-each-ref", f"--format={TAG_FORMAT}", "refs/tags"])

        tags = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            name, oid, obj_type, peeled, tagger, email, when, subject = line.split(FIELD_SEP)
            if obj_type == "tag":
                tags.append(
                    GitTag(
                        name=name,
                        target_oid=peeled or oid,
                        tagger_name=tagger or None,
                        tagger_email=email.strip("<>") or None,
                        tagger_time=int(when) if when else None,
                        message=subject or None,
                    )
                )
            else:
                tags.append(GitTag(name=name, target_oid=oid))
        return tags

    def working_tree_state(self) -> WorkingTreeState:
        """Get the checked-out branch, tracked changes and any operation in progress."""
        branch = self.get_current_branch()

        result = self._run_git(["status", "--porcelain", "--untracked-files=no"])
        changed = [
            line[3:] for line in result.stdout.rstrip("\n").split("\n") if len(line) > 3
        ]

        args = ["rev-parse"]
        for marker in OPERATION_MARKERS:
            args.extend(["--git-path", marker])
        result = self._run_git(args)
        operation = None
        for marker, line in zip(OPERATION_MARKERS, result.stdout.splitlines()):
            marker_path = Path(line)
            if not marker_path.is_absolute():
                marker_path = self.path / marker_path
            if marker_path.exists():
                operation = OPERATION_MARKERS[marker]
                break

        return WorkingTreeState(branch=branch, changed_paths=changed, operation=operation)

    def checkout(self, branch: str) -> None:
        """Check out a branch, creating a tracking branch from a remote one if needed."""
        result = self._run_git(["checkout", branch], check=False)
        if result.returncode != 0:
            stderr = result.stderr.strip()
            if "did not match" in stderr or "invalid reference" in stderr:
                raise RefNotFound(branch)
            if "would be overwritten" in stderr:
                raise WorkingTreeDirty(stderr)
            raise GitError(f"Git command failed: {stderr}")

    def cherry_pick(self, oid: str) -> str:
        """Cherry-pick one commit onto HEAD.

        On failure the working tree is left exactly as git left it.

        Returns:
            The oid of the newly created commit
        """
        exists = self._run_git(["cat-file", "-e", f"{oid}^{{commit}}"], check=False)
        if exists.returncode != 0:
            raise MissingObject(f"Commit not found: {oid}")

        result = self._run_git(["cherry-pick", oid], check=False)
        if result.returncode == 0:
            return self.resolve_ref("HEAD")

        output = "\n".join(
            part.strip() for part in (result.stderr, result.stdout) if part and part.strip()
        )
        lowered = output.lower()
        # git's empty-pick notice also mentions "conflict resolution"
        if "is now empty" in lowered or "nothing to commit" in lowered:
            raise CherryPickEmpty(output)
        # git refuses a new pick while an earlier one is unresolved
        if "unmerged files" in lowered or "not possible because" in lowered:
            raise WorkingTreeDirty(output)
        if "CONFLICT" in output or "could not apply" in lowered:
            raise CherryPickConflict(output)
        if "bad revision" in lowered or "bad object" in lowered:
            raise MissingObject(output)
        if "in progress" in lowered or "would be overwritten" in lowered:
            raise WorkingTreeDirty(output)
        raise GitError(f"Git command failed: {output}")

    def push(self, remote: str, branch: str) -> str:
        """Push a branch to a remote.

        Returns:
            The remote's output
        """
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        result = self._run_git(
            ["push", remote, branch],
            check=False,
            timeout=self.network_timeout,
            env=env,
        )
        output = "\n".join(
            part.strip() for part in (result.stderr, result.stdout) if part and part.strip()
        )
        if result.returncode == 0:
            return output
        if any(marker in output for marker in PUSH_REJECTION_MARKERS):
            raise PushRejected(output)
        raise PushError(output or f"git push exited with status {result.returncode}")

    def fetch(self, remote: str = "origin", prune: bool = True) -> None:
        """Fetch from remote."""
        args = ["fetch", remote]
        if prune:
            args.append("--prune")
        self._run_git(args, timeout=self.network_timeout)
