"""ETL Transformers Module

Validates and normalizes raw FPL API JSON into typed, immutable records.

Target Schemas:
- BootstrapPayload: players, teams, position types, gameweeks, game settings
- Fixture: one scheduled match

Every numeric field is coerced here so that nothing downstream has to guard
against missing keys. A record without a usable id is dropped; any other bad
field is zeroed. Dropped records are reported as MalformedRecord
diagnostics.
"""

from dataclasses import dataclass, asdict, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from etl.errors import MalformedRecord, Unexpected

logger = logging.getLogger(__name__)


def safe_float(value: Any, default: float = 0.0) -> float:
    """Parse an upstream numeric (often a decimal string) or return default."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if result != result or result in (float('inf'), float('-inf')):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    """Parse an upstream integer field or return default."""
    if isinstance(value, bool):
        return int(value)
    return int(safe_float(value, default))


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    return safe_int(value)


@dataclass(frozen=True)
class Player:
    """Schema for one element of bootstrap-static 'elements'."""
    id: int
    web_name: str
    first_name: str
    second_name: str
    team: int                   # FK -> Team.id
    element_type: int           # FK -> PositionType.id
    now_cost: int               # 0.1m units (e.g. 125 = 12.5m)
    total_points: int
    minutes: int
    goals_scored: int
    assists: int
    form: str                   # decimal string, parsed on read
    points_per_game: str
    selected_by_percent: str
    transfers_in_event: int
    transfers_out_event: int
    chance_of_playing_next_round: Optional[int]  # None = no news
    news: str
    status: str

    @property
    def cost_millions(self) -> float:
        return self.now_cost / 10

    @property
    def points_per_cost(self) -> float:
        if not self.now_cost:
            return 0.0
        return self.total_points / self.cost_millions

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Team:
    """Schema for one element of bootstrap-static 'teams'."""
    id: int
    name: str
    short_name: str
    code: int
    strength: int
    strength_overall_home: int
    strength_overall_away: int
    strength_attack_home: int
    strength_attack_away: int
    strength_defence_home: int
    strength_defence_away: int
    played: int
    win: int
    draw: int
    loss: int
    points: int
    position: int
    form: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PositionType:
    id: int
    singular_name: str
    singular_name_short: str
    plural_name: str
    plural_name_short: str
    squad_select: int
    squad_min_play: int
    squad_max_play: int


@dataclass(frozen=True)
class Event:
    """A gameweek. Upstream flags at most one event as current."""
    id: int
    name: str
    deadline_time: Optional[str]
    is_current: bool
    is_next: bool
    is_previous: bool
    finished: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GameSettings:
    squad_size: int = 15
    starting_xi: int = 11
    max_per_team: int = 3
    total_budget: int = 1000    # 0.1m units
    transfer_cost: int = 4
    free_transfers: int = 1


@dataclass(frozen=True)
class Fixture:
    id: int
    event: Optional[int]        # None = unscheduled
    team_h: int
    team_a: int
    team_h_score: Optional[int]
    team_a_score: Optional[int]
    finished: bool
    kickoff_time: Optional[str]
    team_h_difficulty: int
    team_a_difficulty: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BootstrapPayload:
    """Root dataset. Replaced as a whole on refresh, never mutated."""
    players: Tuple[Player, ...] = ()
    teams: Tuple[Team, ...] = ()
    position_types: Tuple[PositionType, ...] = ()
    events: Tuple[Event, ...] = ()
    game_settings: Optional[GameSettings] = None
    diagnostics: Tuple[MalformedRecord, ...] = field(default=(), compare=False)

    def team_by_id(self) -> Dict[int, Team]:
        return {t.id: t for t in self.teams}

    def position_by_id(self) -> Dict[int, PositionType]:
        return {p.id: p for p in self.position_types}


# =============================================================================
# RECORD BUILDERS
# =============================================================================

def _require_id(raw: Dict) -> int:
    if not isinstance(raw, dict):
        raise TypeError(f"expected object, got {type(raw).__name__}")
    if raw.get('id') is None:
        raise KeyError('id')
    value = safe_float(raw['id'], default=float('nan'))
    if value != value:
        raise ValueError(f"unusable id {raw['id']!r}")
    return int(value)


def _text(raw: Dict, key: str) -> str:
    value = raw.get(key)
    return '' if value is None else str(value)


def _decimal_text(raw: Dict, key: str) -> str:
    value = raw.get(key)
    return '0.0' if value is None else str(value)


def build_player(raw: Dict) -> Player:
    record_id = _require_id(raw)
    chance = raw.get('chance_of_playing_next_round')
    return Player(
        id=record_id,
        web_name=_text(raw, 'web_name'),
        first_name=_text(raw, 'first_name'),
        second_name=_text(raw, 'second_name'),
        team=safe_int(raw.get('team')),
        element_type=safe_int(raw.get('element_type')),
        now_cost=safe_int(raw.get('now_cost')),
        total_points=safe_int(raw.get('total_points')),
        minutes=safe_int(raw.get('minutes')),
        goals_scored=safe_int(raw.get('goals_scored')),
        assists=safe_int(raw.get('assists')),
        form=_decimal_text(raw, 'form'),
        points_per_game=_decimal_text(raw, 'points_per_game'),
        selected_by_percent=_decimal_text(raw, 'selected_by_percent'),
        transfers_in_event=safe_int(raw.get('transfers_in_event')),
        transfers_out_event=safe_int(raw.get('transfers_out_event')),
        chance_of_playing_next_round=_optional_int(chance),
        news=_text(raw, 'news'),
        status=_text(raw, 'status') or 'a',
    )


def build_team(raw: Dict) -> Team:
    record_id = _require_id(raw)
    form = raw.get('form')
    return Team(
        id=record_id,
        name=_text(raw, 'name'),
        short_name=_text(raw, 'short_name'),
        code=safe_int(raw.get('code')),
        strength=safe_int(raw.get('strength'), default=3),
        strength_overall_home=safe_int(raw.get('strength_overall_home')),
        strength_overall_away=safe_int(raw.get('strength_overall_away')),
        strength_attack_home=safe_int(raw.get('strength_attack_home')),
        strength_attack_away=safe_int(raw.get('strength_attack_away')),
        strength_defence_home=safe_int(raw.get('strength_defence_home')),
        strength_defence_away=safe_int(raw.get('strength_defence_away')),
        played=safe_int(raw.get('played')),
        win=safe_int(raw.get('win')),
        draw=safe_int(raw.get('draw')),
        loss=safe_int(raw.get('loss')),
        points=safe_int(raw.get('points')),
        position=safe_int(raw.get('position')),
        form=None if form is None else str(form),
    )


def build_position_type(raw: Dict) -> PositionType:
    record_id = _require_id(raw)
    return PositionType(
        id=record_id,
        singular_name=_text(raw, 'singular_name'),
        singular_name_short=_text(raw, 'singular_name_short'),
        plural_name=_text(raw, 'plural_name'),
        plural_name_short=_text(raw, 'plural_name_short'),
        squad_select=safe_int(raw.get('squad_select')),
        squad_min_play=safe_int(raw.get('squad_min_play')),
        squad_max_play=safe_int(raw.get('squad_max_play')),
    )


def build_event(raw: Dict) -> Event:
    record_id = _require_id(raw)
    return Event(
        id=record_id,
        name=_text(raw, 'name'),
        deadline_time=raw.get('deadline_time'),
        is_current=bool(raw.get('is_current', False)),
        is_next=bool(raw.get('is_next', False)),
        is_previous=bool(raw.get('is_previous', False)),
        finished=bool(raw.get('finished', False)),
    )


def build_game_settings(raw: Dict) -> GameSettings:
    defaults = GameSettings()
    return GameSettings(
        squad_size=safe_int(raw.get('squad_squadsize'), defaults.squad_size),
        starting_xi=safe_int(raw.get('squad_squadplay'), defaults.starting_xi),
        max_per_team=safe_int(raw.get('squad_team_limit'), defaults.max_per_team),
        total_budget=safe_int(raw.get('squad_total_spend'), defaults.total_budget),
        transfer_cost=safe_int(raw.get('transfers_cost'), defaults.transfer_cost),
        free_transfers=safe_int(raw.get('free_transfers'), defaults.free_transfers),
    )


def build_fixture(raw: Dict) -> Fixture:
    record_id = _require_id(raw)
    return Fixture(
        id=record_id,
        event=_optional_int(raw.get('event')),
        team_h=safe_int(raw.get('team_h')),
        team_a=safe_int(raw.get('team_a')),
        team_h_score=_optional_int(raw.get('team_h_score')),
        team_a_score=_optional_int(raw.get('team_a_score')),
        finished=bool(raw.get('finished', False)),
        kickoff_time=raw.get('kickoff_time'),
        team_h_difficulty=safe_int(raw.get('team_h_difficulty'), default=3),
        team_a_difficulty=safe_int(raw.get('team_a_difficulty'), default=3),
    )


def _decode_collection(raw_items: Any, collection: str, builder: Callable,
                       diagnostics: List[MalformedRecord]) -> tuple:
    """Build every record of a collection, skipping the ones that fail."""
    if raw_items is None:
        return ()
    if not isinstance(raw_items, list):
        diagnostics.append(MalformedRecord(collection, -1, 'collection is not a list'))
        return ()

    records = []
    for index, raw in enumerate(raw_items):
        try:
            records.append(builder(raw))
        except (TypeError, ValueError, KeyError, AttributeError) as e:
            diagnostics.append(MalformedRecord(collection, index, f"{type(e).__name__}: {e}"))
    return tuple(records)


def decode_bootstrap(raw: Any) -> BootstrapPayload:
    """Decode a bootstrap-static response into a BootstrapPayload.

    Args:
        raw: Parsed JSON body.

    Returns:
        Fully populated payload. Bad records are listed on ``diagnostics``.

    Raises:
        Unexpected: If the body is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise Unexpected("Bootstrap response is not a JSON object", payload=raw)

    diagnostics: List[MalformedRecord] = []
    settings_raw = raw.get('game_settings')

    payload = BootstrapPayload(
        players=_decode_collection(raw.get('elements'), 'elements', build_player, diagnostics),
        teams=_decode_collection(raw.get('teams'), 'teams', build_team, diagnostics),
        position_types=_decode_collection(
            raw.get('element_types'), 'element_types', build_position_type, diagnostics),
        events=_decode_collection(raw.get('events'), 'events', build_event, diagnostics),
        game_settings=build_game_settings(settings_raw) if isinstance(settings_raw, dict) else None,
        diagnostics=tuple(diagnostics),
    )

    if diagnostics:
        logger.warning(f"Bootstrap decode skipped {len(diagnostics)} malformed record(s)")
    return payload


def decode_fixtures(raw: Any) -> List[Fixture]:
    """Decode a fixtures response. Malformed fixtures are dropped."""
    if not isinstance(raw, list):
        raise Unexpected("Fixtures response is not a JSON array", payload=raw)

    diagnostics: List[MalformedRecord] = []
    fixtures = list(_decode_collection(raw, 'fixtures', build_fixture, diagnostics))
    if diagnostics:
        logger.warning(f"Fixtures decode skipped {len(diagnostics)} malformed record(s)")
    return fixtures


def decode_player_summary(raw: Any) -> Dict[str, List[Dict]]:
    """Validate an element-summary response.

    Returns:
        Dict with list values for 'history', 'history_past' and 'fixtures'.
    """
    if not isinstance(raw, dict):
        raise Unexpected("Player summary response is not a JSON object", payload=raw)

    summary = {}
    for key in ('history', 'history_past', 'fixtures'):
        items = raw.get(key)
        summary[key] = [item for item in items if isinstance(item, dict)] if isinstance(items, list) else []
    return summary
