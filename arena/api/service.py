"""
API Service - Business logic layer between the HTTP API and the engine.

The service:
1. Runs practice matches: the player and a bot, each with a full
   MatchSession, talking over an in-memory network
2. Translates requests into session calls
3. Formats battle state and events for responses

This layer is framework-agnostic. Errors are raised as ArenaError
subclasses and mapped to HTTP responses by the app.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any
import logging
import time
import uuid

from .. import __version__
from ..bots import BotPolicy, create_policy
from ..config import ArenaConfig
from ..engine_core.action import TurnAction, encode_move
from ..engine_core.draft import DraftSide, DraftState, TEAM_SIZE
from ..engine_core.events import TurnEvent
from ..engine_core.state import TeamState
from ..errors import ArenaError, DraftError
from ..games.champions import CHAMPIONS, get_champion
from ..session import (
    EventsEmitted,
    LocalMatch,
    MatchSession,
    SessionManager,
    SessionState,
    gather_or_cancel,
)
from .schemas import (
    AbilityInfo,
    ActionInfo,
    ChampionInfo,
    CreateMatchRequest,
    EndMatchResponse,
    EventInfo,
    EventsResponse,
    HealthResponse,
    MatchListResponse,
    MatchResponse,
    MatchStatus,
    ModifierInfo,
    MoveRequest,
    MoveResponse,
    ResultInfo,
    RosterResponse,
    UnitInfo,
)

logger = logging.getLogger(__name__)


class MatchNotFound(ArenaError):
    error_code = "MATCH_NOT_FOUND"


@dataclass
class PracticeMatch:
    """A player-vs-bot match. The player hosts (draft side A)."""
    match_id: str
    local: LocalMatch
    bot: BotPolicy
    created_at: float = field(default_factory=time.time)
    history: list[tuple[int, TurnEvent]] = field(default_factory=list)

    @property
    def player(self) -> MatchSession:
        return self.local.host

    @property
    def opponent(self) -> MatchSession:
        return self.local.joiner

    def record(self, notification) -> None:
        if isinstance(notification, EventsEmitted):
            self.history.extend((notification.round_number, e) for e in notification.events)


@dataclass
class APIService:
    """
    Practice-match API service.

    Usage:
        service = APIService()
        match = await service.create_match(CreateMatchRequest(team=[4, 1, 3]))
        result = await service.submit_move(match.match_id, MoveRequest(champion_id=4, ability_index=0))
    """
    config: ArenaConfig = field(default_factory=ArenaConfig.from_env)
    session_manager: SessionManager = None

    _matches: dict[str, PracticeMatch] = field(default_factory=dict)

    def __post_init__(self):
        if self.session_manager is None:
            self.session_manager = SessionManager(self.config)

    # =========================================================================
    # Roster / health
    # =========================================================================

    def health(self) -> HealthResponse:
        return HealthResponse(version=__version__, env=self.config.env)

    def get_roster(self) -> RosterResponse:
        champions = [_champion_info(c.id) for c in CHAMPIONS]
        return RosterResponse(champions=champions, count=len(champions))

    # =========================================================================
    # Matches
    # =========================================================================

    async def create_match(self, request: CreateMatchRequest) -> MatchResponse:
        """Connect player and bot, run the draft, and start the battle."""
        try:
            bot = create_policy(request.bot, request.seed)
        except ValueError as e:
            raise ArenaError(str(e), details={"bot": request.bot}) from e
        wanted = self._validate_team(request.team)

        match_id = str(uuid.uuid4())
        local = await LocalMatch.connect(
            self.config,
            host_id=f"player-{match_id[:8]}",
            joiner_id=f"bot-{match_id[:8]}",
            manager=self.session_manager,
        )
        practice = PracticeMatch(match_id=match_id, local=local, bot=bot)

        auto = create_policy("random", request.seed)

        def player_pick(draft: DraftState, side: DraftSide) -> int:
            if wanted is None:
                return auto.select_pick(draft, side)
            return wanted[len(draft.team_of(side))]

        def bot_pick(draft: DraftState, side: DraftSide) -> int:
            reserved = set(wanted or ())
            pool = tuple(c for c in draft.pool if c not in reserved) or draft.pool
            return bot.select_pick(replace(draft, pool=pool), side)

        await local.draft(player_pick, bot_pick)
        practice.player.machine.subscribe(practice.record)
        self._matches[match_id] = practice
        logger.info("Practice match %s started: %s vs %s (%s)",
                    match_id, list(local.host.draft.team_a), list(local.host.draft.team_b), bot.get_name())
        return self._match_response(practice)

    def _validate_team(self, team: list[int] | None) -> list[int] | None:
        if team is None:
            return None
        if len(team) != TEAM_SIZE or len(set(team)) != TEAM_SIZE:
            raise DraftError(f"Team must be {TEAM_SIZE} distinct champion ids", details={"team": team})
        for champion_id in team:
            if not 0 <= champion_id < len(CHAMPIONS):
                raise DraftError(f"Unknown champion id: {champion_id}", details={"team": team})
        return list(team)

    def _get(self, match_id: str) -> PracticeMatch:
        practice = self._matches.get(match_id)
        if practice is None:
            raise MatchNotFound(f"Match not found: {match_id}", details={"match_id": match_id})
        return practice

    def get_match(self, match_id: str) -> MatchResponse:
        return self._match_response(self._get(match_id))

    def list_matches(self) -> MatchListResponse:
        return MatchListResponse(matches=list(self._matches), count=len(self._matches))

    async def submit_move(self, match_id: str, request: MoveRequest) -> MoveResponse:
        """
        Play one round.

        The player's move is committed first, so an illegal move is
        rejected before the bot acts or anything is sent.
        """
        practice = self._get(match_id)
        player, opponent = practice.player, practice.opponent
        action = TurnAction(request.champion_id, request.ability_index)

        round_number = player.machine.round_number if player.machine else 0
        await player.submit_move(action)

        decision = practice.bot.select_action(opponent.machine.my_team, opponent.machine.opponent_team)
        await gather_or_cancel(
            player.wait_for_round_end(round_number),
            opponent.play_round(decision.action),
        )

        events = [
            _event_info(r, e) for r, e in practice.history if r == round_number
        ]
        return MoveResponse(
            match_id=match_id,
            round_number=round_number,
            my_action=ActionInfo(**action.to_dict()),
            opponent_action=ActionInfo(**decision.action.to_dict()),
            events=events,
            match=self._match_response(practice),
        )

    def get_events(self, match_id: str) -> EventsResponse:
        practice = self._get(match_id)
        events = [_event_info(r, e) for r, e in practice.history]
        return EventsResponse(match_id=match_id, events=events, count=len(events))

    async def end_match(self, match_id: str) -> EndMatchResponse:
        """Player leaves; the bot session is dropped with it."""
        practice = self._matches.pop(match_id, None)
        if practice is None:
            return EndMatchResponse(success=False, match_id=match_id)
        await self.session_manager.end_session(practice.player.session_id)
        await self.session_manager.end_session(practice.opponent.session_id)
        return EndMatchResponse(success=True, match_id=match_id)

    # =========================================================================
    # Formatting
    # =========================================================================

    def _match_response(self, practice: PracticeMatch) -> MatchResponse:
        player = practice.player
        machine = player.machine
        status = {
            SessionState.GAME_OVER: MatchStatus.GAME_OVER,
            SessionState.ABANDONED: MatchStatus.ABANDONED,
        }.get(player.state, MatchStatus.ACTIVE)

        error = machine.last_error() if machine else None
        result = None
        if machine is not None and machine.result is not None:
            result = ResultInfo(**machine.result.to_dict())

        return MatchResponse(
            match_id=practice.match_id,
            status=status,
            phase=machine.current_phase().value if machine else player.state.value,
            round_number=machine.round_number if machine else 0,
            my_team=_team_info(machine.my_team) if machine else [],
            opponent_team=_team_info(machine.opponent_team) if machine else [],
            draft_order=list(player.draft.team_a + player.draft.team_b),
            result=result,
            last_error=error.message if error else None,
            last_error_code=error.error_code if error else None,
            retryable=error.retryable if error else False,
        )


def _champion_info(champion_id: int) -> ChampionInfo:
    champion = get_champion(champion_id)
    return ChampionInfo(
        id=champion.id,
        name=champion.name,
        element=champion.element.value,
        hp=champion.hp,
        attack=champion.attack,
        defense=champion.defense,
        speed=champion.speed,
        abilities=[
            AbilityInfo(
                index=i,
                name=a.name,
                ability_type=a.ability_type.value,
                power=a.power,
                heal_amount=a.heal_amount,
                stat=a.stat.value if a.stat else None,
                stat_value=a.stat_value,
                duration=a.duration,
                is_debuff=a.is_debuff,
                description=a.description,
                move=encode_move(TurnAction(champion.id, i)),
            )
            for i, a in enumerate(champion.abilities)
        ],
    )


def _team_info(team: TeamState) -> list[UnitInfo]:
    return [
        UnitInfo(
            champion_id=unit.champion_id,
            name=get_champion(unit.champion_id).name,
            current_hp=unit.current_hp,
            max_hp=unit.max_hp,
            modifiers=[ModifierInfo(**m.to_dict()) for m in unit.modifiers],
            burn_turns=unit.burn_turns,
            is_ko=unit.is_ko,
            total_damage_dealt=unit.total_damage_dealt,
        )
        for unit in team.units
    ]


def _event_info(round_number: int, event: TurnEvent) -> EventInfo:
    data: dict[str, Any] = event.to_dict()
    return EventInfo(round_number=round_number, **data)
