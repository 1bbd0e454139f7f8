#!/usr/bin/env python3
"""Main entry point for the gitx command line."""

import argparse
import signal
import sys
from pathlib import Path

import logbook
from logbook.compat import redirect_logging
from PySide6.QtCore import QCoreApplication, QTimer

from gitx.core.context import GitxContext
from gitx.errors import GitxError
from gitx.models.config import AppConfig, get_config_file
from gitx.models.repository import from_timestamp
from gitx.models.results import PickResult, SyncReport

log = logbook.Logger(__name__)


def setup_logging(verbose: bool) -> logbook.Handler:
    """Send logbook and stdlib logging records to stderr."""
    handler = logbook.StreamHandler(
        sys.stderr,
        level=logbook.DEBUG if verbose else logbook.INFO,
        format_string="{record.time:%Y-%m-%d %H:%M:%S} {record.level_name} {record.channel}: {record.message}",
    )
    handler.push_application()
    redirect_logging()
    return handler


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="gitx",
        description="Cache git history, diff branches and cherry-pick missing commits",
    )
    parser.add_argument("--config", type=Path, help=f"Config file (default: {get_config_file()})")
    parser.add_argument("--db", help="Commit store database file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    register = commands.add_parser("register", help="Track a repository")
    register.add_argument("path", type=Path)
    register.add_argument("--name")
    register.add_argument("--default-branch")
    register.add_argument("--description")

    commands.add_parser("repos", help="List tracked repositories and compare presets")

    sync = commands.add_parser("sync", help="Sync one or all repositories into the store")
    sync.add_argument("repo", nargs="?", help="Repository name or path (default: all)")
    sync.add_argument("-b", "--branch", action="append", dest="branches", help="Branch to sync")
    sync.add_argument("--all-branches", action="store_true", help="Also sync every listed branch")
    sync.add_argument("--fetch", action="store_true", default=None, help="Fetch from the remote first")

    diff = commands.add_parser("diff", help="List commits on FROM missing from TO")
    diff.add_argument("repo")
    diff.add_argument("from_branch", nargs="?")
    diff.add_argument("to_branch", nargs="?")
    diff.add_argument("--compare", help="Use a configured compare preset")
    diff.add_argument("--limit", type=int, default=None)

    show = commands.add_parser("show", help="Show a commit with its diff stats and patch")
    show.add_argument("repo")
    show.add_argument("oid")
    show.add_argument("--stat", action="store_true", help="Omit the patch")

    pick = commands.add_parser("pick", help="Cherry-pick commits onto a branch, in order")
    pick.add_argument("repo")
    pick.add_argument("destination")
    pick.add_argument("oids", nargs="+")

    push = commands.add_parser("push", help="Push a branch to the remote")
    push.add_argument("repo")
    push.add_argument("branch")

    watch = commands.add_parser("watch", help="Sync all repositories periodically")
    watch.add_argument("--interval", type=int, help="Seconds between cycles")

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig.load(args.config)
    if args.db:
        config.database_path = args.db
    return config


def print_report(report: SyncReport) -> None:
    print(f"{report.repository}: {report.inserted} new commits, {report.tags} tags")
    for branch in report.branches:
        if branch.ok:
            print(f"  {branch.branch}: +{branch.inserted} ({branch.tip_oid[:8]})")
        else:
            print(f"  {branch.branch}: {branch.error}")


def cmd_register(ctx: GitxContext, args: argparse.Namespace) -> int:
    git = ctx.git_factory(args.path)
    git.verify()
    repo = ctx.store.register_repository(
        args.path,
        name=args.name,
        default_branch=args.default_branch,
        description=args.description,
    )
    print(f"{repo.id}\t{repo.name}\t{repo.path}")
    return 0


def cmd_repos(ctx: GitxContext, args: argparse.Namespace) -> int:
    for repo in ctx.store.list_repositories():
        synced = repo.last_synced_at.isoformat() if repo.last_synced_at else "never"
        print(f"{repo.id}\t{repo.name}\t{repo.default_branch}\t{synced}\t{repo.path}")
    for project in ctx.config.projects:
        for compare in project.compares:
            print(f"compare {compare.name}: {compare.from_branch} -> {compare.to_branch}")
    return 0


def cmd_sync(ctx: GitxContext, args: argparse.Namespace) -> int:
    if args.repo:
        repo = ctx.store.find_repository(args.repo)
        report = ctx.sync_engine.sync(
            repo, args.branches, all_branches=args.all_branches, fetch=args.fetch
        )
        print_report(report)
        return 1 if report.failed_branches else 0

    cycle = ctx.scheduler.run_cycle(all_branches=args.all_branches, fetch=args.fetch)
    for report in cycle.reports:
        print_report(report)
    for name, error in cycle.failures.items():
        print(f"{name}: failed: {error}")
    return 1 if cycle.failures else 0


def cmd_diff(ctx: GitxContext, args: argparse.Namespace) -> int:
    repo = ctx.store.find_repository(args.repo)
    from_branch, to_branch = args.from_branch, args.to_branch
    if args.compare:
        compare = ctx.config.find_compare(args.compare)
        if compare is None:
            log.error("Unknown compare preset: {}", args.compare)
            return 2
        from_branch, to_branch = compare.from_branch, compare.to_branch
    if not from_branch or not to_branch:
        log.error("diff needs FROM and TO branches or --compare")
        return 2

    for commit in ctx.matcher.diff(repo, from_branch, to_branch, limit=args.limit):
        when = commit.committed_at.strftime("%Y-%m-%d %H:%M")
        print(f"{commit.oid}\t{when}\t{commit.author_name}\t{commit.summary}")
    return 0


def cmd_show(ctx: GitxContext, args: argparse.Namespace) -> int:
    repo = ctx.store.find_repository(args.repo)
    detail = ctx.git_factory(repo.path).commit_detail(args.oid)
    commit = detail.commit
    print(f"commit {commit.oid}")
    if commit.is_merge:
        print("Merge: " + " ".join(oid[:8] for oid in commit.parent_oids))
    print(f"Author: {commit.author_name} <{commit.author_email}>")
    print(f"Date:   {from_timestamp(commit.author_time):%Y-%m-%d %H:%M:%S}")
    print()
    print(f"    {commit.summary}")
    if commit.message:
        print()
        for line in commit.message.splitlines():
            print(f"    {line}")
    print()
    print(detail.stats)
    if not args.stat and detail.patch:
        print()
        print(detail.patch.rstrip("\n"))
    return 0


def cmd_pick(ctx: GitxContext, args: argparse.Namespace) -> int:
    repo = ctx.store.find_repository(args.repo)
    result: PickResult = ctx.cherry_pick.apply(repo, args.oids, args.destination)
    for source, created in zip(result.applied, result.created):
        print(f"{source[:8]} -> {created[:8]}")
    print(result.summary())
    if not result.succeeded:
        remaining = " ".join(result.remaining(args.oids))
        print(f"Resolve the {result.failed_at.kind} in {repo.path}, then retry with: {remaining}")
        return 1
    return 0


def cmd_push(ctx: GitxContext, args: argparse.Namespace) -> int:
    repo = ctx.store.find_repository(args.repo)
    result = ctx.pusher.push(repo, args.branch)
    if result.message:
        print(result.message)
    print(f"Pushed {result.branch} to {result.remote}")
    return 0


def cmd_watch(ctx: GitxContext, args: argparse.Namespace) -> int:
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # Python only runs signal handlers between Qt events
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(500)

    ctx.scheduler.run_cycle()
    ctx.scheduler.start(args.interval)
    return app.exec()


COMMANDS = {
    "register": cmd_register,
    "repos": cmd_repos,
    "sync": cmd_sync,
    "diff": cmd_diff,
    "show": cmd_show,
    "pick": cmd_pick,
    "push": cmd_push,
    "watch": cmd_watch,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    handler = setup_logging(args.verbose)
    ctx = None
    try:
        ctx = GitxContext(load_config(args))
        return COMMANDS[args.command](ctx, args)
    except GitxError as e:
        log.error("{}", e)
        return 1
    finally:
        if ctx is not None:
            ctx.close()
        handler.pop_application()


if __name__ == "__main__":
    sys.exit(main())
