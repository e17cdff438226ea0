"""Terminal front-end for operators: log in and run a training session."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from src.operator_console.config import settings
from src.operator_console.domain.models.session import SessionState
from src.operator_console.infra.auth.token_store import FileTokenStore
from src.operator_console.infra.http.gateway import GatewayClient, GatewayError
from src.operator_console.services.auth.service import AuthError, AuthService, TwoFactorRequired
from src.operator_console.services.simulate.service import SimulateService
from src.operator_console.session.controller import SessionLifecycleController
from src.operator_console.session.notifications import NotificationCenter
from src.operator_console.views.render import (
    render_connection_status,
    render_entry,
    render_notification,
    render_result,
)

logger = logging.getLogger("cli")

DEFAULT_TOKEN_PATH = Path.home() / ".operator_console" / "token.json"

HELP = """Commands:
  set <field> <value>   edit a report form field (saved after a short pause)
  toggle <unit>         add/remove an additional unit (saved immediately)
  save                  save the form now
  say <text>            send a text turn (sessions without a voice call)
  end                   end the call and show the evaluation
  help                  show this help"""


async def apply_command(controller: SessionLifecycleController, line: str) -> None:
    """Run one line typed by the operator during a session."""

    command, _, rest = line.strip().partition(" ")
    command = command.lower()
    if not command:
        return
    if command == "help":
        print(HELP)
    elif command == "set":
        field, _, value = rest.strip().partition(" ")
        try:
            controller.autosave.update_field(field, value.strip())
        except (KeyError, ValidationError) as exc:
            print(f"Cannot set {field!r}: {exc}")
    elif command == "toggle":
        try:
            controller.autosave.toggle_unit(rest.strip())
        except ValueError as exc:
            print(f"Cannot toggle {rest.strip()!r}: {exc}")
    elif command == "save":
        await controller.autosave.save_now()
    elif command == "say":
        await controller.send_message(rest.strip())
    elif command == "end":
        controller.end_call()
    else:
        print(f"Unknown command {command!r}. Type 'help'.")


def _start_stdin_reader(queue: "asyncio.Queue[str]") -> None:
    loop = asyncio.get_running_loop()

    def pump() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, "")

    # Daemon thread: a pending readline must not keep the process alive.
    threading.Thread(target=pump, name="stdin-reader", daemon=True).start()


async def run_training(gateway: GatewayClient, task_id: str, scenario_title: str) -> int:
    auth = AuthService(gateway)
    user = await auth.me()

    notifications = NotificationCenter()
    notifications.subscribe(lambda n: print(render_notification(n)))
    controller = SessionLifecycleController(SimulateService(gateway), notifications)
    controller.transcript.subscribe(lambda entry: print(render_entry(entry)))
    controller.add_status_listener(lambda status: print(f"-- {render_connection_status(status)}"))

    start = controller.set_context(user=user, task_id=task_id, scenario_title=scenario_title)
    if start is not None:
        await start
    if controller.state != SessionState.ACTIVE:
        await controller.close()
        return 1

    print(HELP)
    lines: "asyncio.Queue[str]" = asyncio.Queue()
    _start_stdin_reader(lines)
    ended = asyncio.ensure_future(controller.wait_for_result())
    try:
        while not ended.done():
            reader = asyncio.ensure_future(lines.get())
            done, _ = await asyncio.wait({reader, ended}, return_when=asyncio.FIRST_COMPLETED)
            if reader not in done:
                reader.cancel()
                break
            line = reader.result()
            if not line:
                # stdin closed: finish the call instead of leaving it open.
                ending = controller.end_call()
                if ending is not None:
                    await ending
                break
            await apply_command(controller, line)
    finally:
        ended.cancel()
        await controller.close()

    result = controller.result
    if result is None:
        return 1
    print("\n".join(render_result(result)))
    return 0


async def _login(gateway: GatewayClient, email: str, password: str, code: Optional[str]) -> int:
    auth = AuthService(gateway)
    try:
        await auth.login(email, password)
    except TwoFactorRequired:
        if not code:
            print("Two-factor code required; run again with --code.")
            return 2
        await auth.verify_2fa(code, email=email)
    user = await auth.me()
    print(f"Logged in as {user.full_name or user.email} -> {auth.home_route(user)}")
    return 0


async def _me(gateway: GatewayClient) -> int:
    auth = AuthService(gateway)
    user = await auth.me()
    print(f"{user.full_name} <{user.email}> role={user.role.value} home={auth.home_route(user)}")
    return 0


async def _main(args: argparse.Namespace) -> int:
    token_path = settings.token_store_path or DEFAULT_TOKEN_PATH
    async with GatewayClient(token_store=FileTokenStore(token_path)) as gateway:
        try:
            if args.command == "login":
                return await _login(gateway, args.email, args.password, args.code)
            if args.command == "me":
                return await _me(gateway)
            if args.command == "train":
                return await run_training(gateway, args.task_id, args.scenario_title)
        except (GatewayError, AuthError) as exc:
            logger.error("%s", exc)
            return 1
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="operator-console", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Log in and store the access token")
    login.add_argument("--email", required=True)
    login.add_argument("--password", required=True)
    login.add_argument("--code", help="Two-factor code, when the account requires one")

    sub.add_parser("me", help="Show the logged-in user")

    train = sub.add_parser("train", help="Run a training session")
    train.add_argument("--task-id", required=True)
    train.add_argument("--scenario-title", required=True)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=settings.log_level,
        format="[%(asctime)s] %(levelname)s %(name)s :: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
