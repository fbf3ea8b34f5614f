"""Raw FPL API shapes and fakes shared by the data layer tests."""

import threading

from etl.errors import NotFound
from etl.transformers import decode_bootstrap
from reports.fpl_report.cache_manager import BootstrapCache
from reports.fpl_report.config_resolver import ConfigResolver
from reports.fpl_report.data_fetcher import FPLDataFetcher
from reports.fpl_report.session_cache import PersistedConfigCache

ELEMENT_TYPES = [
    {'id': 1, 'singular_name': 'Goalkeeper', 'singular_name_short': 'GKP',
     'plural_name': 'Goalkeepers', 'plural_name_short': 'GKP',
     'squad_select': 2, 'squad_min_play': 1, 'squad_max_play': 1},
    {'id': 2, 'singular_name': 'Defender', 'singular_name_short': 'DEF',
     'plural_name': 'Defenders', 'plural_name_short': 'DEF',
     'squad_select': 5, 'squad_min_play': 3, 'squad_max_play': 5},
    {'id': 3, 'singular_name': 'Midfielder', 'singular_name_short': 'MID',
     'plural_name': 'Midfielders', 'plural_name_short': 'MID',
     'squad_select': 5, 'squad_min_play': 2, 'squad_max_play': 5},
    {'id': 4, 'singular_name': 'Forward', 'singular_name_short': 'FWD',
     'plural_name': 'Forwards', 'plural_name_short': 'FWD',
     'squad_select': 3, 'squad_min_play': 1, 'squad_max_play': 3},
]

GAME_SETTINGS = {
    'squad_squadsize': 15,
    'squad_squadplay': 11,
    'squad_team_limit': 3,
    'squad_total_spend': 1000,
    'transfers_cost': 4,
    'free_transfers': 1,
}


def raw_team(team_id, strength=3, **overrides):
    team = {
        'id': team_id,
        'name': f'Team {team_id}',
        'short_name': f'T{team_id:02d}',
        'code': team_id * 10,
        'strength': strength,
        'strength_overall_home': 1100,
        'strength_overall_away': 1100,
        'strength_attack_home': 1100,
        'strength_attack_away': 1100,
        'strength_defence_home': 1100,
        'strength_defence_away': 1100,
        'played': 0, 'win': 0, 'draw': 0, 'loss': 0, 'points': 0, 'position': 0,
        'form': None,
    }
    team.update(overrides)
    return team


def raw_player(player_id, **overrides):
    player = {
        'id': player_id,
        'web_name': f'Player{player_id}',
        'first_name': 'First',
        'second_name': f'Last{player_id}',
        'team': 1,
        'element_type': 3,
        'now_cost': 60,
        'total_points': 30,
        'minutes': 900,
        'goals_scored': 2,
        'assists': 1,
        'form': '3.0',
        'points_per_game': '3.0',
        'selected_by_percent': '10.0',
        'transfers_in_event': 0,
        'transfers_out_event': 0,
        'chance_of_playing_next_round': None,
        'news': '',
        'status': 'a',
    }
    player.update(overrides)
    return player


def raw_event(event_id, is_current=False, is_next=False, finished=False):
    return {
        'id': event_id,
        'name': f'Gameweek {event_id}',
        'deadline_time': f'2025-08-{event_id:02d}T17:30:00Z',
        'is_current': is_current,
        'is_next': is_next,
        'is_previous': False,
        'finished': finished,
    }


def raw_fixture(fixture_id, event, team_h, team_a, finished=False, **overrides):
    fixture = {
        'id': fixture_id,
        'event': event,
        'team_h': team_h,
        'team_a': team_a,
        'team_h_score': None,
        'team_a_score': None,
        'finished': finished,
        'kickoff_time': None,
        'team_h_difficulty': 3,
        'team_a_difficulty': 3,
    }
    fixture.update(overrides)
    return fixture


def raw_bootstrap(players=None, teams=None, events=None, element_types=None,
                  game_settings=GAME_SETTINGS):
    raw = {
        'elements': players if players is not None else [raw_player(1), raw_player(2)],
        'teams': teams if teams is not None else [raw_team(1), raw_team(2)],
        'element_types': element_types if element_types is not None else ELEMENT_TYPES,
        'events': events if events is not None else [raw_event(1, is_current=True), raw_event(2, is_next=True)],
    }
    if game_settings is not None:
        raw['game_settings'] = dict(game_settings)
    return raw


def sample_payload(**kwargs):
    return decode_bootstrap(raw_bootstrap(**kwargs))


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeFetcher:
    """Stands in for FPLFetcher. Queue payloads or exceptions to hand out."""

    def __init__(self, *results, fixtures=None, summaries=None):
        self.results = list(results) or [sample_payload()]
        self.fixtures = fixtures or []
        self.summaries = summaries or {}
        self.calls = 0
        self.gate = None  # threading.Event that blocks fetches until set
        self._lock = threading.Lock()

    def get_bootstrap_static(self):
        with self._lock:
            self.calls += 1
            result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if self.gate is not None:
            self.gate.wait(5)
        if isinstance(result, Exception):
            raise result
        return result

    def get_fixtures(self):
        return list(self.fixtures)

    def get_player_summary(self, player_id):
        if player_id not in self.summaries:
            raise NotFound()
        return self.summaries[player_id]


def run_now(fn):
    fn()


def build_layer(*results, fixtures=None, summaries=None, cache_dir=None):
    """FPLDataFetcher over a FakeFetcher, revalidating synchronously.

    Persistence is off unless a cache_dir is given.
    """
    clock = FakeClock()
    fetcher = FakeFetcher(*results, fixtures=fixtures, summaries=summaries)
    cache = BootstrapCache(fetcher, ttl=900, clock=clock, spawn=run_now)
    store = PersistedConfigCache(namespace='layer', cache_dir=cache_dir, enabled=cache_dir is not None)
    resolver = ConfigResolver(cache, store=store, clock=clock)
    return FPLDataFetcher(fetcher=fetcher, bootstrap_cache=cache, config_resolver=resolver), fetcher
