"""Console-driven play loop for Ringboard."""
from __future__ import annotations

import logging
import secrets
from typing import Literal, Sequence

from ringboard.core.clock import SystemClock
from ringboard.core.config import load_config
from ringboard.core.context import GameContext
from ringboard.core.timers import RealtimeDriver
from ringboard.data.repositories import BoardRepository, TiersRepository
from ringboard.presentation.cli.render import (
    debug_enabled,
    format_event,
    format_overlay,
    render_bullet_lines,
    render_heading,
)
from ringboard.presentation.cli.save_slots import SaveSlotStore, SlotPersistence
from ringboard.services.overlay_service import OverlayEntry
from ringboard.services.session_service import GameSession

MenuAction = Literal["new_game", "continue", "quit"]
_MAX_RANDOM_SEED = 2**31 - 1
_SAVE_SLOT = 1
_TURN_TIMEOUT_MS = 60_000


def main() -> None:
    """Start the interactive CLI session."""
    logging.basicConfig(
        level=logging.DEBUG if debug_enabled() else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = SaveSlotStore()
    print("=== Ringboard ===")
    action = _main_menu_loop(store.slot_exists(_SAVE_SLOT))
    if action == "quit":
        print("Goodbye!")
        return
    if action == "new_game":
        store.delete_slot(_SAVE_SLOT)

    session = _build_session(SlotPersistence(store, _SAVE_SLOT))
    seed = _prompt_seed() if action == "new_game" else None
    state = session.start(seed)
    print(f"Game started with seed: {state.seed}")
    unsubscribe = session.context.events.subscribe(_print_event)
    try:
        session.on_foreground()
        driver = RealtimeDriver(session.context.timers)
        _drain_overlays(session, driver)
        turns = _prompt_turns()
        for _ in range(turns):
            if not _play_turn(session, driver):
                break
        _render_summary(session)
    finally:
        unsubscribe()
        session.shutdown()
    print("Goodbye!")


def _main_menu_loop(has_save: bool) -> MenuAction:
    options: list[tuple[str, MenuAction]] = [("New Game", "new_game")]
    if has_save:
        options.append(("Continue", "continue"))
    options.append(("Quit", "quit"))
    while True:
        render_heading("Main Menu")
        for idx, (label, _) in enumerate(options, start=1):
            print(f"{idx}. {label}")
        choice = input("Select an option: ").strip()
        try:
            index = int(choice) - 1
        except ValueError:
            index = -1
        if 0 <= index < len(options):
            return options[index][1]
        print(f"Invalid selection. Please enter 1 to {len(options)}.")


def _build_session(persistence: SlotPersistence) -> GameSession:
    """Construct the GameSession with concrete repositories."""
    context = GameContext.create(config=load_config(), clock=SystemClock())
    return GameSession(
        context,
        BoardRepository().get_topology(),
        TiersRepository().all(),
        persistence=persistence,
    )


def _prompt_seed() -> int:
    while True:
        raw_value = input("Enter seed (blank for random): ").strip()
        if not raw_value:
            return secrets.randbelow(_MAX_RANDOM_SEED)
        try:
            return int(raw_value)
        except ValueError:
            print("Invalid seed. Please enter a valid integer.")


def _prompt_turns() -> int:
    while True:
        raw_value = input("How many turns? (default 5): ").strip()
        if not raw_value:
            return 5
        try:
            turns = int(raw_value)
        except ValueError:
            print("Please enter a number.")
            continue
        if turns > 0:
            return turns
        print("Please enter a positive number.")


def _prompt_multiplier(unlocked: Sequence[int]) -> int:
    if len(unlocked) == 1:
        return unlocked[0]
    options = ", ".join(f"x{value}" for value in unlocked)
    while True:
        raw_value = input(f"Roll multiplier [{options}] (blank for x1): ").strip().lstrip("xX")
        if not raw_value:
            return 1
        try:
            value = int(raw_value)
        except ValueError:
            print("Please enter a number.")
            continue
        if value in unlocked:
            return value
        print("That multiplier is locked.")


def _play_turn(session: GameSession, driver: RealtimeDriver) -> bool:
    multiplier = _prompt_multiplier(session.economy.unlocked_multipliers())
    outcome = session.turn.roll(multiplier)
    if not outcome.accepted:
        _drain_overlays(session, driver)
        return outcome.reason != "no_rolls"
    while session.turn.is_busy:
        finished = driver.run_until(
            lambda: not session.turn.is_busy or _needs_input(session),
            timeout_ms=_TURN_TIMEOUT_MS,
        )
        if not finished:
            session.turn.abort_turn("timeout")
            break
        _drain_overlays(session, driver)
    return True


def _needs_input(session: GameSession) -> bool:
    current = session.overlays.current
    return current is not None and current.request.dismissible


def _drain_overlays(session: GameSession, driver: RealtimeDriver) -> None:
    """Present every visible overlay until the stack is empty or blocked on a timer."""
    while True:
        current = session.overlays.current
        if current is None:
            return
        if not current.request.dismissible:
            overlay_id = current.id
            driver.run_until(lambda: not session.overlays.contains(overlay_id), timeout_ms=_TURN_TIMEOUT_MS)
            if session.overlays.contains(overlay_id):
                return
            continue
        _present_overlay(current)
        if session.overlays.contains(current.id):
            session.overlays.close(current.id, reason="dismissed")


def _present_overlay(entry: OverlayEntry) -> None:
    render_heading("Overlay")
    for line in format_overlay(entry):
        print(line)
    surface = entry.request.surface if isinstance(entry.request.surface, dict) else {}
    if entry.request.kind == "event" and callable(surface.get("choose")):
        raw = input("Pick a choice (blank to skip): ").strip()
        if raw.isdigit():
            surface["choose"](int(raw) - 1)
        return
    if entry.request.kind == "dailyReward" and callable(surface.get("claim")):
        granted = surface["claim"]()
        print(f"Claimed {granted} rolls.")
    input("Press Enter to continue...")


def _print_event(event: object) -> None:
    line = format_event(event)
    if line is not None:
        print(f"- {line}")


def _render_summary(session: GameSession) -> None:
    state = session.state
    render_heading("Summary")
    render_bullet_lines(
        [
            f"Ring {state.current_ring}, tile {state.position}",
            f"Cash {state.cash:,} | Net worth {state.net_worth:,}",
            f"Stars {state.stars} | Coins {state.coins} | XP {state.xp}",
            f"Rolls {state.rolls} | Momentum {state.economy.momentum:.0f} | Leverage {state.economy.leverage_level}",
        ]
    )
