"""Terminal host: play and browse a game on a headless board."""

import argparse
import logging
import os
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from chess_bridge.bridge import GameStateBridge
from chess_bridge.errors import BridgeError
from chess_bridge.events import CHECKMATE, DRAW, MOVE
from chess_bridge.models import BLACK, WHITE, Color, MoveEvent, Viewing
from chess_bridge.renderer import BoardRenderer
from chess_bridge.scheduling import CooperativeScheduler
from chess_bridge.visual import HeadlessBoard

console = Console()

HELP = """Commands:
  e2e4, e7e8q      make a move (coordinate notation)
  undo             take back the last move
  view N           show the position after ply N (0 = start)
  start/prev/next  step through the game
  live             return to the current position
  flip             flip the board
  threats          toggle move/capture/check highlighting
  moves            list legal destinations
  history          list moves played
  fen / pgn        print the position or game record
  reset            start a new game
  quit             leave"""


def build_bridge(fen: Optional[str] = None, orientation: Color = WHITE) -> GameStateBridge:
    """
    Create a bridge on a headless board.

    :param fen: Starting position, standard start if omitted
    :type fen: Optional[str]
    :param orientation: Side shown at the bottom
    :type orientation: Color
    :return: Ready-to-use bridge
    :rtype: GameStateBridge
    """
    scheduler = CooperativeScheduler()
    board = HeadlessBoard(scheduler)
    config = {"orientation": orientation}
    if fen:
        config["fen"] = fen
    return GameStateBridge(board, board_config=config, scheduler=scheduler)


def render(bridge: GameStateBridge) -> str:
    board = BoardRenderer.render(bridge.board.pieces, bridge.mapper, bridge.board.state["orientation"])
    state = bridge.get_history_viewer_state()
    if isinstance(state, Viewing):
        status = f"viewing ply {state.ply}"
    elif bridge.get_is_game_over():
        status = "game over"
    else:
        status = f"{bridge.get_turn_color()} to move"
    return f"{board}\n\n{status}"


def run_command(bridge: GameStateBridge, line: str) -> str:
    """
    Execute one command line against the bridge.

    :param bridge: Bridge to drive
    :type bridge: GameStateBridge
    :param line: Command as typed by the user
    :type line: str
    :return: Message for the user, empty if there is nothing to say
    :rtype: str
    """
    words = line.strip().split()
    if not words:
        return ""
    command, args = words[0].lower(), words[1:]

    try:
        if command == "help":
            return HELP
        if command == "undo":
            undone = bridge.undo_last_move()
            return f"Took back {undone.san}" if undone else "Nothing to undo"
        if command == "view":
            if len(args) != 1 or not args[0].isdigit():
                return "Usage: view N"
            bridge.view_history(int(args[0]))
            return ""
        if command == "start":
            bridge.view_start()
            return ""
        if command == "prev":
            bridge.view_previous()
            return ""
        if command == "next":
            bridge.view_next()
            return ""
        if command == "live":
            bridge.stop_viewing_history()
            return ""
        if command == "flip":
            bridge.toggle_orientation()
            return ""
        if command == "threats":
            bridge.toggle_moves()
            return f"Threat highlighting {'on' if bridge.show_threats else 'off'}"
        if command == "moves":
            dests = bridge.get_possible_moves()
            return "\n".join(f"{orig}: {' '.join(targets)}" for orig, targets in dests.items())
        if command == "history":
            return " ".join(bridge.get_history()) or "No moves yet"
        if command == "fen":
            return bridge.get_fen()
        if command == "pgn":
            return bridge.get_pgn()
        if command == "reset":
            bridge.reset_board()
            return "New game"
        if not bridge.move(command):
            return f"Illegal move: {command}"
        return ""
    except (BridgeError, ValueError) as exc:
        return f"Error: {exc}"
    finally:
        bridge.scheduler.flush()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chess board bridge terminal host")
    parser.add_argument("--fen", type=str, default=None, help="Starting position in FEN (default: standard start)")
    parser.add_argument(
        "--orientation",
        choices=[WHITE, BLACK],
        default=os.environ.get("CHESS_BRIDGE_ORIENTATION", WHITE),
        help="Side shown at the bottom (default: $CHESS_BRIDGE_ORIENTATION or white)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=os.environ.get("CHESS_BRIDGE_LOG_LEVEL", "WARNING"),
        help="Logging level (default: $CHESS_BRIDGE_LOG_LEVEL or WARNING)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Start the interactive terminal host.

    Reads commands until ``quit`` or end of input, redrawing the board after
    each one. Type ``help`` for the list of commands.
    """
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper())

    bridge = build_bridge(fen=args.fen, orientation=args.orientation)

    def on_move(event: MoveEvent) -> None:
        console.print(f"[bold]{event.color}[/bold] played [cyan]{event.san}[/cyan]")

    bridge.emitter.on(MOVE, on_move)
    bridge.emitter.on(DRAW, lambda: console.print("[yellow]Draw[/yellow]"))
    bridge.emitter.on(CHECKMATE, lambda color: console.print(f"[red]Checkmate, {color} loses[/red]"))

    console.print(HELP)
    while True:
        console.print(Panel(render(bridge), expand=False))
        try:
            line = console.input("> ")
        except (EOFError, KeyboardInterrupt):
            break
        if line.strip().lower() in ("quit", "exit"):
            break
        message = run_command(bridge, line)
        if message:
            console.print(message, markup=False)


if __name__ == "__main__":
    main()
