"""Static lookups and hardcoded fallbacks for the configuration views.

The fallbacks keep every consumer working (in a degraded mode) when the
FPL API cannot be reached and nothing has been cached yet.
"""

from typing import Any, Dict

# Display colour per FPL team id; not part of upstream data
TEAM_COLORS: Dict[int, str] = {
    1: '#EF0107',   # Arsenal
    2: '#670E36',   # Aston Villa
    3: '#DA291C',   # Bournemouth
    4: '#E30613',   # Brentford
    5: '#0057B8',   # Brighton
    6: '#034694',   # Chelsea
    7: '#1B458F',   # Crystal Palace
    8: '#003399',   # Everton
    9: '#000000',   # Fulham
    10: '#3A64A3',  # Ipswich
    11: '#003090',  # Leicester
    12: '#C8102E',  # Liverpool
    13: '#6CABDD',  # Man City
    14: '#DA291C',  # Man Utd
    15: '#241F20',  # Newcastle
    16: '#DD0000',  # Nott'm Forest
    17: '#D71920',  # Southampton
    18: '#132257',  # Spurs
    19: '#7A263A',  # West Ham
    20: '#FDB913',  # Wolves
}

DEFAULT_TEAM_COLOR = '#000000'

# 1-5 scale shown next to every fixture
FIXTURE_DIFFICULTY: Dict[int, Dict[str, str]] = {
    1: {'label': 'Very Easy', 'color': '#00FF85'},
    2: {'label': 'Easy', 'color': '#01FC7A'},
    3: {'label': 'Medium', 'color': '#E7E7E7'},
    4: {'label': 'Hard', 'color': '#FF1751'},
    5: {'label': 'Very Hard', 'color': '#80072D'},
}

FALLBACK_POSITIONS: Dict[str, Dict[str, Any]] = {
    'GKP': {'id': 1, 'name': 'Goalkeepers', 'short': 'GKP',
            'squad_select': 2, 'squad_min_play': 1, 'squad_max_play': 1},
    'DEF': {'id': 2, 'name': 'Defenders', 'short': 'DEF',
            'squad_select': 5, 'squad_min_play': 3, 'squad_max_play': 5},
    'MID': {'id': 3, 'name': 'Midfielders', 'short': 'MID',
            'squad_select': 5, 'squad_min_play': 2, 'squad_max_play': 5},
    'FWD': {'id': 4, 'name': 'Forwards', 'short': 'FWD',
            'squad_select': 3, 'squad_min_play': 1, 'squad_max_play': 3},
}

FALLBACK_POSITION_LIMITS: Dict[str, Dict[str, int]] = {
    code: {
        'min': pos['squad_select'],
        'max': pos['squad_select'],
        'min_play': pos['squad_min_play'],
        'max_play': pos['squad_max_play'],
    }
    for code, pos in FALLBACK_POSITIONS.items()
}

FALLBACK_GAME_RULES: Dict[str, Any] = {
    'squad_size': 15,
    'starting_xi': 11,
    'max_players_per_team': 3,
    'budget_limit': 100.0,
    'free_transfers': 1,
    'transfer_cost': 4,
}
