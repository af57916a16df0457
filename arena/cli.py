"""
Arena CLI - Command-line interface for the battle core.

Usage:
    arena roster                          Show the champion pool
    arena simulate [--bot-a X --bot-b Y]  Bot-vs-bot match over the full protocol
    arena commit <move>                   Create a commitment for a move
    arena verify <move> <n1> <n2> --commit <c1> <c2>
                                          Check a reveal against a commitment
    arena serve                           Run the HTTP API
"""

import argparse
import asyncio
import sys
from dataclasses import replace

from .utils import setup_logging


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Champion Arena - Commit-reveal battle core",
        prog="arena",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Roster command
    subparsers.add_parser("roster", help="Show the champion pool")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Run a bot-vs-bot match")
    simulate_parser.add_argument("--bot-a", default="greedy", help="Host bot policy")
    simulate_parser.add_argument("--bot-b", default="random", help="Joiner bot policy")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Seed for random bots")
    simulate_parser.add_argument("--max-rounds", type=int, default=100, help="Stop after this many rounds")
    simulate_parser.add_argument("--hash", default=None, help="Commitment hash (sha256 or blake2s)")

    # Commit command
    commit_parser = subparsers.add_parser("commit", help="Commit to a move")
    commit_parser.add_argument("move", type=int, help="Encoded move (1-20)")
    commit_parser.add_argument("--hash", default="sha256", help="Commitment hash")

    # Verify command
    verify_parser = subparsers.add_parser("verify", help="Verify a reveal")
    verify_parser.add_argument("move", type=int, help="Revealed move")
    verify_parser.add_argument("nonce_parts", type=int, nargs="+", help="Revealed nonce parts")
    verify_parser.add_argument("--commit", type=int, nargs="+", required=True, help="Commitment parts")
    verify_parser.add_argument("--hash", default="sha256", help="Commitment hash")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "roster":
        return cmd_roster(args)
    elif args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "commit":
        return cmd_commit(args)
    elif args.command == "verify":
        return cmd_verify(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def cmd_roster(args):
    """Print every champion and its moves."""
    from .engine_core.action import TurnAction, encode_move
    from .games.champions import CHAMPIONS

    for champion in CHAMPIONS:
        print(
            f"[{champion.id}] {champion.name:<8} {champion.element.value:<5} "
            f"HP {champion.hp:>3}  ATK {champion.attack:>2}  DEF {champion.defense:>2}  SPD {champion.speed:>2}"
        )
        for index, ability in enumerate(champion.abilities):
            move = encode_move(TurnAction(champion.id, index))
            print(f"      move {move:>2}: {ability.name} - {ability.description}")
    return 0


def cmd_simulate(args):
    """Play a full match between two bots over an in-memory network."""
    from .bots import create_policy
    from .config import ArenaConfig
    from .errors import ArenaError
    from .games.champions import get_champion
    from .session import EventsEmitted, LocalMatch

    config = replace(
        ArenaConfig.from_env(),
        poll_interval=0.0,
        send_retry_delay=0.0,
        animation_delay=0.0,
        opponent_timeout=10.0,
    )
    if args.hash:
        config = replace(config, hash_scheme=args.hash)

    seed_b = None if args.seed is None else args.seed + 1
    bot_a = create_policy(args.bot_a, args.seed)
    bot_b = create_policy(args.bot_b, seed_b)

    async def run():
        local = await LocalMatch.connect(config, host_id="bot-a", joiner_id="bot-b")
        draft = await local.draft(bot_a.select_pick, bot_b.select_pick)
        print(f"Team A ({bot_a.get_name()}): {', '.join(get_champion(c).name for c in draft.team_a)}")
        print(f"Team B ({bot_b.get_name()}): {', '.join(get_champion(c).name for c in draft.team_b)}")

        def show(notification):
            if isinstance(notification, EventsEmitted):
                print(f"\nRound {notification.round_number}")
                for event in notification.events:
                    print(f"  {_describe(event)}")

        local.host.machine.subscribe(show)
        rounds = 0
        while not local.is_over and rounds < args.max_rounds:
            action_a = bot_a.select_action(local.host.machine.my_team, local.host.machine.opponent_team).action
            action_b = bot_b.select_action(local.joiner.machine.my_team, local.joiner.machine.opponent_team).action
            await local.play_round(action_a, action_b)
            rounds += 1
        return local.host.machine.result

    try:
        result = asyncio.run(run())
    except ArenaError as e:
        print(f"Error: {e.message} ({e.error_code})")
        return 1

    if result is None:
        print(f"\nNo winner after {args.max_rounds} rounds")
        return 0
    winner = {"me": "Team A", "opponent": "Team B", "draw": "Draw"}[result.winner.value]
    print(f"\nResult: {winner} after {result.rounds} round(s)")
    if result.mvp_id is not None:
        print(f"MVP: {get_champion(result.mvp_id).name}")
    return 0


def _describe(event) -> str:
    from .engine_core.events import EventType
    from .games.champions import get_champion

    actor = get_champion(event.actor_id).name
    target = get_champion(event.target_id).name if event.target_id is not None else actor
    if event.event_type == EventType.ATTACK:
        return f"{actor} hits {target} for {event.amount} ({event.effectiveness.value}) -> {event.new_hp} HP"
    if event.event_type == EventType.HEAL:
        return f"{actor} heals {event.amount} -> {event.new_hp} HP"
    if event.event_type in (EventType.BUFF, EventType.DEBUFF):
        sign = "+" if event.event_type == EventType.BUFF else "-"
        return f"{actor} {sign}{event.amount} {event.stat.value} on {target} for {event.duration} turn(s)"
    if event.event_type == EventType.BURN_APPLIED:
        return f"{actor} burns {target} for {event.duration} turn(s)"
    if event.event_type == EventType.BURN_TICK:
        return f"{actor} takes {event.amount} burn damage -> {event.new_hp} HP"
    return f"{actor} is knocked out"


def cmd_commit(args):
    """Create a commitment and print what each phase would send."""
    from .errors import InvalidMove
    from .protocol import get_scheme, create_commitment, wire

    try:
        commitment = create_commitment(args.move, get_scheme(args.hash))
    except (InvalidMove, ValueError) as e:
        print(f"Error: {e}")
        return 1

    reveal = commitment.reveal()
    print(f"Move:              {commitment.move}")
    print(f"Nonce:             {commitment.nonce.hex()}")
    print(f"Commitment parts:  {' '.join(map(str, commitment.parts))}")
    print(f"Nonce parts:       {' '.join(map(str, reveal.nonce_parts))}")
    print(f"Commit amounts:    {' '.join(map(str, wire.commitment_amounts(commitment)))}")
    print(f"Reveal amounts:    {' '.join(map(str, wire.reveal_amounts(reveal)))}")
    return 0


def cmd_verify(args):
    """Verify a reveal. Exit status 0 when it matches."""
    from .protocol import get_scheme, verify_reveal

    try:
        scheme = get_scheme(args.hash)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if verify_reveal(args.move, args.nonce_parts, args.commit, scheme):
        print("Valid: reveal matches commitment")
        return 0
    print("Invalid: reveal does not match commitment")
    return 2


def cmd_serve(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("arena.api.app:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
