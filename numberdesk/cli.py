"""
numberdesk - operator console for the number-leasing backend.

Usage:
  numberdesk login --username admin
  numberdesk profiles list
  numberdesk profiles add "Main" 69252cf6-1417-43a4-a1ff-209e37a3f9a0
  numberdesk ranges add 96777xxxxXXXX favorites
  numberdesk timer start favorites --interval 5
  numberdesk watch --cycles 3
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import List, Optional

from numberdesk.app import NumberDesk
from numberdesk.config import CATEGORIES, LOGIN_PATH, OPERATOR_PREFIX, TIMER_DEFAULT_MINUTES, load_settings
from numberdesk.errors import ConfigError
from numberdesk.navigation import ViewContext
from numberdesk.notify import Notification
from numberdesk.outcome import Outcome
from numberdesk.timers.orchestrator import coerce_interval


def _print_notification(notification: Notification) -> None:
    tag = "[OK]" if notification.level == "success" else "[ERROR]"
    print(f"{tag} {notification.message}")


def _print_relogin_hint(path: str) -> None:
    if path == LOGIN_PATH:
        print("[AUTH] Session expired or was rejected. Run `numberdesk login` to sign in again.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="numberdesk", description="Operator console for the number-leasing backend")
    parser.add_argument("--config", default=None, help="Path to a numberdesk.yaml config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Sign in to the backend")
    login.add_argument("--username", "-u", default=None)
    login.add_argument("--password", "-p", default=None, help="Prompted for when omitted")

    sub.add_parser("logout", help="Forget the stored session")
    sub.add_parser("status", help="Show session and backend health")

    profiles = sub.add_parser("profiles", help="Manage upstream credential profiles")
    psub = profiles.add_subparsers(dest="action", required=True)
    psub.add_parser("list")
    p_add = psub.add_parser("add")
    p_add.add_argument("name")
    p_add.add_argument("token")
    p_edit = psub.add_parser("edit")
    p_edit.add_argument("id", type=int)
    p_edit.add_argument("--name", default=None)
    p_edit.add_argument("--token", default=None)
    for action in ("rm", "activate", "login"):
        psub.add_parser(action).add_argument("id", type=int)

    ranges = sub.add_parser("ranges", help="Manage categorized ranges")
    rsub = ranges.add_subparsers(dest="action", required=True)
    r_list = rsub.add_parser("list")
    r_list.add_argument("--category", choices=CATEGORIES, default=None)
    r_add = rsub.add_parser("add")
    r_add.add_argument("value")
    r_add.add_argument("category", choices=CATEGORIES)
    rsub.add_parser("rm").add_argument("id", type=int)

    timer = sub.add_parser("timer", help="Start or stop a category's fetch timer")
    tsub = timer.add_subparsers(dest="action", required=True)
    t_start = tsub.add_parser("start")
    t_start.add_argument("category", choices=CATEGORIES)
    t_start.add_argument("--interval", default=str(TIMER_DEFAULT_MINUTES), help="Minutes between runs (1-60)")
    tsub.add_parser("stop").add_argument("category", choices=CATEGORIES)

    fetch = sub.add_parser("fetch", help="Fetch a number, optionally for a range")
    fetch.add_argument("range", nargs="?", default=None)

    watch = sub.add_parser("watch", help="Run the full-refresh poll and print each cycle")
    watch.add_argument("--cycles", type=int, default=None, help="Stop after this many refreshes")

    return parser


def _exit_code(outcome: Outcome) -> int:
    return 0 if outcome.ok else 1


async def _profiles(desk: NumberDesk, args) -> int:
    if args.action == "list":
        profiles = await desk.profiles.list()
        if not profiles:
            print("No profiles.")
        for p in profiles:
            flags = []
            if p.is_active:
                flags.append("active")
            flags.append("logged-in" if p.is_logged_in else f"login:{p.login_status.value}")
            who = f" {p.username}" if p.username else ""
            print(f"{p.id:>4}  {p.name:<20} {p.display_token:<30} [{', '.join(flags)}]{who}")
        return 0
    if args.action == "add":
        outcome = await desk.profiles.create(args.name, args.token)
        return 0 if outcome.saved else 1
    if args.action == "edit":
        outcome = await desk.profiles.update(args.id, name=args.name, auth_token=args.token)
        return 0 if outcome.saved else 1
    if args.action == "rm":
        return _exit_code(await desk.profiles.remove(args.id))
    if args.action == "activate":
        return _exit_code(await desk.profiles.activate(args.id))
    return _exit_code(await desk.profiles.login(args.id))


async def _ranges(desk: NumberDesk, args) -> int:
    if args.action == "list":
        if args.category:
            entries = await desk.ranges.list(args.category)
            for e in entries:
                print(f"{e.id:>4}  {e.value}")
            return 0
        if not await desk.ranges.refresh():
            return 1
        for category, entries in desk.ranges.partitions.items():
            print(f"{category.value} ({len(entries)})")
            for e in entries:
                print(f"  {e.id:>4}  {e.value}")
        return 0
    if args.action == "add":
        return _exit_code(await desk.ranges.create(args.value, args.category))
    return _exit_code(await desk.ranges.remove(args.id))


async def _watch(desk: NumberDesk, args) -> int:
    done = asyncio.Event()

    def _on_refresh(dashboard) -> None:
        s = dashboard.summary()
        print(
            f"[REFRESH #{dashboard.refresh_count}] profiles={s['profiles']} active={s['active_profile']} "
            f"favorites={s['favorites']} recents={s['recents']} special={s['special']} "
            f"today={s['today_balance']} ({s['today_otp']} OTP) total={s['total_balance']}"
        )
        if args.cycles is not None and dashboard.refresh_count >= args.cycles:
            done.set()

    def _on_auth(authenticated: bool) -> None:
        if not authenticated:
            done.set()

    desk.dashboard.subscribe(_on_refresh)
    desk.session_store.subscribe(_on_auth)
    if not desk.session.authenticated:
        print("Not signed in. Run `numberdesk login` first.")
        return 1

    print(f"Polling {desk.settings.api_url} every {desk.settings.poll_interval_seconds:g}s (Ctrl-C to stop)")
    await done.wait()
    return 0 if desk.session.authenticated else 1


async def run_command(args, desk: NumberDesk) -> int:
    if args.command == "login":
        username = args.username or input("Username: ")
        password = args.password if args.password is not None else getpass.getpass("Password: ")
        return 0 if await desk.session.login(username, password) else 1

    if args.command == "logout":
        desk.session.logout()
        return 0

    if args.command == "status":
        health = await desk.dashboard.health()
        print(f"Backend:  {desk.settings.api_url} ({'healthy' if health.ok else 'unreachable: ' + health.message})")
        print(f"Session:  {desk.session.state.value}")
        if desk.session.authenticated:
            overview = await desk.dashboard.overview()
            if overview.ok:
                counters = ", ".join(f"{k}={v}" for k, v in overview.data.items())
                print(f"Backend counters: {counters}")
        return 0 if health.ok else 1

    if args.command == "fetch":
        outcome = await (desk.dashboard.apply_range(args.range) if args.range else desk.dashboard.fetch_number())
        if outcome.ok:
            print(outcome.data)
        return _exit_code(outcome)

    if args.command == "profiles":
        return await _profiles(desk, args)

    if args.command == "ranges":
        return await _ranges(desk, args)

    if args.command == "timer":
        if args.action == "start":
            return _exit_code(await desk.timers.start_category_timer(args.category, coerce_interval(args.interval)))
        return _exit_code(await desk.timers.stop_category_timer(args.category))

    if args.command == "watch":
        return await _watch(desk, args)

    raise ValueError(f"Unknown command: {args.command}")


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"[CONFIG] {e.message}", file=sys.stderr)
        return 2

    view = ViewContext(
        path=LOGIN_PATH if args.command == "login" else OPERATOR_PREFIX,
        on_navigate=_print_relogin_hint,
    )
    desk = NumberDesk(settings, view=view)
    desk.notifier.subscribe(_print_notification)
    try:
        await desk.open(poll=args.command == "watch")
        return await run_command(args, desk)
    finally:
        await desk.close()


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    run()
