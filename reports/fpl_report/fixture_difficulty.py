"""Fixture Difficulty Module

Rates fixtures 1-5 from the opponent's aggregate strength and provides the
small helpers the fixtures views are built from.
"""

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from etl.transformers import Fixture, Team
from .constants import FIXTURE_DIFFICULTY

DEFAULT_DIFFICULTY = 3
BIG_MATCH_STRENGTH = 4


def strength_to_difficulty(strength: float) -> int:
    """Map a 1-5 team strength onto the 1-5 difficulty scale."""
    if strength >= 5:
        return 5
    if strength >= 4:
        return 4
    if strength >= 3:
        return 3
    if strength >= 2:
        return 2
    return 1


def team_strength_metrics(team: Team) -> Dict[str, float]:
    """Home, away and overall ratings averaged from attack and defence."""
    home = (team.strength_attack_home + team.strength_defence_home) / 2
    away = (team.strength_attack_away + team.strength_defence_away) / 2
    return {
        'home': home,
        'away': away,
        'overall': (home + away) / 2,
        'attack_home': team.strength_attack_home,
        'attack_away': team.strength_attack_away,
        'defence_home': team.strength_defence_home,
        'defence_away': team.strength_defence_away,
    }


def filter_fixtures(
    fixtures: Iterable[Fixture],
    gameweek: Optional[int] = None,
    team_id: Optional[int] = None,
    finished: Optional[bool] = None,
) -> List[Fixture]:
    """Fixtures matching every given criterion, in input order."""
    selected = []
    for fixture in fixtures:
        if gameweek is not None and fixture.event != gameweek:
            continue
        if team_id is not None and team_id not in (fixture.team_h, fixture.team_a):
            continue
        if finished is not None and fixture.finished != finished:
            continue
        selected.append(fixture)
    return selected


def group_by_gameweek(fixtures: Iterable[Any]) -> Dict[Optional[int], List[Any]]:
    """Group fixtures (or annotated fixture dicts) by gameweek.

    Gameweeks come out in ascending order; unscheduled fixtures (no event)
    are grouped under None, last.
    """
    groups: Dict[Optional[int], List[Any]] = {}
    for fixture in fixtures:
        event = fixture['event'] if isinstance(fixture, dict) else fixture.event
        groups.setdefault(event, []).append(fixture)

    ordered = sorted(groups, key=lambda gw: (gw is None, gw or 0))
    return OrderedDict((gw, groups[gw]) for gw in ordered)


class FixtureDifficultyResolver:
    """Rates fixtures against a fixed set of teams."""

    def __init__(self, teams: Iterable[Team]):
        self.teams = {team.id: team for team in teams}

    def opponent_strength(self, team_id: int) -> int:
        team = self.teams.get(team_id)
        if team is None or not team.strength:
            return DEFAULT_DIFFICULTY
        return team.strength

    def difficulty(self, fixture: Fixture, team_id: int) -> int:
        """Difficulty of a fixture for one of its two teams.

        Args:
            fixture: The match.
            team_id: Team whose perspective is taken.

        Returns:
            1 (very easy) to 5 (very hard). 3 when the opponent is unknown.
        """
        opponent = fixture.team_a if fixture.team_h == team_id else fixture.team_h
        return strength_to_difficulty(self.opponent_strength(opponent))

    def is_big_match(self, fixture: Fixture) -> bool:
        """Both sides rated at least 4."""
        home = self.teams.get(fixture.team_h)
        away = self.teams.get(fixture.team_a)
        if home is None or away is None:
            return False
        return home.strength >= BIG_MATCH_STRENGTH and away.strength >= BIG_MATCH_STRENGTH

    def annotate(self, fixture: Fixture) -> Dict[str, Any]:
        """Fixture as a dict with team names and both difficulty ratings."""
        home_difficulty = self.difficulty(fixture, fixture.team_h)
        away_difficulty = self.difficulty(fixture, fixture.team_a)

        record = fixture.to_dict()
        record.update({
            'team_h_name': self._team_name(fixture.team_h),
            'team_a_name': self._team_name(fixture.team_a),
            'team_h_short': self._short_name(fixture.team_h),
            'team_a_short': self._short_name(fixture.team_a),
            'home_difficulty': home_difficulty,
            'away_difficulty': away_difficulty,
            'home_difficulty_label': FIXTURE_DIFFICULTY[home_difficulty]['label'],
            'away_difficulty_label': FIXTURE_DIFFICULTY[away_difficulty]['label'],
            'is_big_match': self.is_big_match(fixture),
        })
        return record

    def _team_name(self, team_id: int) -> str:
        team = self.teams.get(team_id)
        return team.name if team else 'Unknown'

    def _short_name(self, team_id: int) -> str:
        team = self.teams.get(team_id)
        return team.short_name if team else 'UNK'
