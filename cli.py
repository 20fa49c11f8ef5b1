# Role: Local developer CLI to interact with FlowController without the web UI.
# Useful for deterministic testing and seeing debug logs in the terminal.

from __future__ import annotations
import uuid

import ticketdesk.config
ticketdesk.config.load_env()

from ticketdesk.core.flow_controller import FlowController


def _new_session_id() -> str:
    return str(uuid.uuid4())


def _print_result(result) -> None:
    print(f"\nAssistant: {result.assistant_message}")
    if result.actions:
        print(f"[actions: {', '.join(result.actions)}]")
    if result.tile_closed:
        print("-" * 20 + " new tile " + "-" * 20)


def main() -> None:
    # 1) Create FlowController
    # 2) Maintain a session_id across turns
    # 3) Route user input -> FlowController -> print assistant output
    print("Ticket Desk CLI")
    print("Commands: /new (new session), /tile (new tile), /session (show session_id),")
    print("          /do <action> (e.g. /do confirm, /do select:123, /do create_counterparty), /exit")
    print("-" * 50)

    flow = FlowController()
    session_id = _new_session_id()
    print(f"session_id: {session_id}")

    while True:
        try:
            user_message = input("\nYou: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye!")
            return

        if not user_message:
            continue

        cmd = user_message.lower()

        if cmd in {"/exit", "exit", "quit", "/quit"}:
            print("Bye!")
            return

        if cmd == "/new":
            session_id = _new_session_id()
            print(f"New session_id: {session_id}")
            continue

        if cmd == "/tile":
            flow.new_tile(session_id)
            print("Started a new tile.")
            continue

        if cmd == "/session":
            print(f"session_id: {session_id}")
            continue

        if cmd.startswith("/do "):
            try:
                result = flow.handle_action(session_id, user_message[4:].strip())
            except ValueError as e:
                print(f"\n{e}")
                continue
            _print_result(result)
            continue

        _print_result(flow.handle_turn(session_id, user_message))


if __name__ == "__main__":
    main()
