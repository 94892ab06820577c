"""
Command-line front end for the task engine.

Examples:
    python -m smartlist.cli add "Write report" --deadline 2024-05-01 --xp 300
    python -m smartlist.cli complete 3f2a
    python -m smartlist.cli stats

When a session is remembered in the cache, each command first pulls the
remote record and pushes the result afterwards. Sync failures are reported
but never undo the local change.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from smartlist.core.config import settings
from smartlist.core.errors import AppError, NotFoundError, SyncError, ValidationError
from smartlist.core.logging import configure_logging
from smartlist.features.cache.local import LocalCache
from smartlist.features.engine.service import EngineSnapshot, TaskEngine
from smartlist.features.sync.client import RemoteStoreClient
from smartlist.features.sync.coordinator import SyncCoordinator
from smartlist.features.sync.session import SessionGateway
from smartlist.models.task import Task


def _short(task: Task) -> str:
    return task.id[:8]


def _resolve(tasks: Sequence[Task], prefix: str) -> str:
    matches = [task.id for task in tasks if task.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise NotFoundError(f"No task matches '{prefix}'")
    raise ValidationError(f"'{prefix}' is ambiguous ({len(matches)} tasks)")


def _print_tasks(snapshot: EngineSnapshot, completed: bool) -> None:
    if completed:
        if not snapshot.completed:
            print("No completed tasks yet.")
        for task in snapshot.completed:
            print(f"  {_short(task)}  {task.name}  +{task.experience} XP  ({task.completed_at:%Y-%m-%d})")
        return

    if not snapshot.groups:
        print("Nothing to do. Add a task with: smartlist add NAME")
    for group in snapshot.groups:
        print(group.label)
        for task in group.tasks:
            print(f"  {_short(task)}  {task.name}  [{task.experience} XP]")


def _print_stats(snapshot: EngineSnapshot) -> None:
    progress = snapshot.progress
    print(f"Level {progress.level}  ({progress.experience_into_level}/{progress.experience_for_next_level} XP)")
    print(f"Total XP: {progress.total_experience}")
    print(f"Current streak: {snapshot.streak.current} day(s)")
    print(f"Longest streak: {snapshot.streak.longest} day(s)")
    print(f"Tasks: {len(snapshot.active)} active, {snapshot.tasks_completed} completed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smartlist", description="Task tracker with XP, levels and streaks.")
    parser.add_argument("--cache", dest="cache_url", help="Local cache database URL.")
    parser.add_argument("--offline", action="store_true", help="Skip remote sync even when signed in.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show engine and sync events.")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a task.")
    add.add_argument("name")
    add.add_argument("--desc", dest="description")
    add.add_argument("--difficulty", type=int, default=5)
    add.add_argument("--importance", type=int, default=5)
    add.add_argument("--deadline", help="YYYY-MM-DD")
    add.add_argument("--collaborative", action="store_true")
    add.add_argument("--xp", dest="experience", type=int, default=150)

    complete = sub.add_parser("complete", help="Complete an active task.")
    complete.add_argument("task_id", help="Task id or unique prefix.")

    remove = sub.add_parser("remove", help="Remove a task.")
    remove.add_argument("task_id", help="Task id or unique prefix.")
    remove.add_argument("--completed", action="store_true", help="Remove from completed tasks (reverses XP).")

    listing = sub.add_parser("list", help="List tasks grouped by due date.")
    listing.add_argument("--completed", action="store_true")

    sub.add_parser("stats", help="Show level, XP and streaks.")
    sub.add_parser("clear", help="Delete all tasks and progress.")

    theme = sub.add_parser("theme", help="Show or set the theme preference.")
    theme.add_argument("value", nargs="?", choices=["light", "dark"])

    board = sub.add_parser("leaderboard", help="Show the top users by XP.")
    board.add_argument("--limit", type=int)
    board.add_argument("--offset", type=int, default=0)

    sign_in = sub.add_parser("sign-in", help="Link this device to a remote account.")
    sign_in.add_argument("identifier", help="Session identifier from the login provider.")
    sign_in.add_argument("token", help="Bearer token.")
    sign_in.add_argument("--name")
    sign_in.add_argument("--email")

    sub.add_parser("sign-out", help="Unlink this device; tasks stay local.")
    return parser


def _apply(engine: TaskEngine, args: argparse.Namespace) -> None:
    if args.command == "add":
        update = engine.add_task(
            {
                "name": args.name,
                "description": args.description,
                "difficulty": args.difficulty,
                "importance": args.importance,
                "deadline": args.deadline,
                "collaborative": args.collaborative,
                "experience": args.experience,
            }
        )
        print(f"Added {_short(update.task)}  {update.task.name}")
    elif args.command == "complete":
        task_id = _resolve(engine.state.store.active, args.task_id)
        update = engine.complete_task(task_id)
        print(f"Completed {update.task.name}: +{update.task.experience} XP (total {update.experience.total_experience})")
        if update.experience.leveled_up:
            print(f"Level up! You reached level {update.experience.new_level}.")
    elif args.command == "remove":
        pool = engine.state.store.completed if args.completed else engine.state.store.active
        task_id = _resolve(pool, args.task_id)
        update = engine.remove_task(task_id, from_completed=args.completed)
        print(f"Removed {update.task.name}")
    elif args.command == "clear":
        engine.clear_all()
        print("All tasks and progress cleared.")


async def _run(args: argparse.Namespace) -> int:
    cache = LocalCache(args.cache_url)
    engine = TaskEngine(cache)

    if args.command == "list":
        _print_tasks(engine.snapshot(), args.completed)
        return 0
    if args.command == "stats":
        _print_stats(engine.snapshot())
        return 0
    if args.command == "theme":
        if args.value:
            cache.set_theme(args.value)
        print(cache.get_theme())
        return 0

    gateway = SessionGateway(cache)
    async with RemoteStoreClient() as client:
        coordinator = SyncCoordinator(engine, client, gateway)
        coordinator.on_error(lambda exc: print(f"Sync failed: {exc.message}", file=sys.stderr))

        if args.command == "leaderboard":
            for entry in await coordinator.leaderboard(limit=args.limit, offset=args.offset):
                print(f"{entry.rank:>3}. {entry.name or entry.user_id}  {entry.xp} XP  (level {entry.level})")
            return 0
        if args.command == "sign-in":
            session = await coordinator.sign_in(args.identifier, args.token, name=args.name, email=args.email)
            print(f"Signed in as {session.user_id}")
            return 0
        if args.command == "sign-out":
            coordinator.sign_out()
            print("Signed out. Tasks remain on this device.")
            return 0

        if not args.offline:
            try:
                await coordinator.resume()
            except SyncError:
                pass  # reported through on_error; keep working locally

        _apply(engine, args)

        try:
            await coordinator.flush()
        except SyncError:
            pass  # reported through on_error; the local change is kept
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.ENV)
    if not args.verbose:
        logging.getLogger("smartlist").setLevel(logging.WARNING)
    try:
        return asyncio.run(_run(args))
    except AppError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
