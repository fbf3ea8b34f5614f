"""Player Analyzer Module

Ranks and buckets the joined player list into the insight views shown on
the dashboard: form leaders, differentials, value picks, captaincy,
template team, transfer momentum, form-vs-ownership quadrants, risk tiers
and risk-profile recommendations.

All computation is stateless over the records handed in. Upstream decimal
strings are parsed with ``pd.to_numeric(errors="coerce")`` and anything that
fails to parse counts as zero, so one bad record never aborts a pass.
Orderings use a stable sort: ties keep input order.
"""

import dataclasses
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from etl.transformers import BootstrapPayload
from utils.config import TEMPLATE_COUNT, TOP_COUNT, VALUE_MIN_COST

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = [
    'form',
    'points_per_game',
    'selected_by_percent',
    'now_cost',
    'total_points',
    'minutes',
    'transfers_in_event',
    'transfers_out_event',
]

# Fixed policy: which buckets each risk profile surfaces, in order
RECOMMENDATION_POLICY = {
    'high': ('opportunity', 'timing', 'avoid'),
    'medium': ('timing', 'avoid'),
    'low': ('safe', 'timing', 'avoid'),
}

RECOMMENDATION_TYPES = {
    'opportunity': {
        'bucket': 'hidden_gems',
        'limit': 3,
        'title': 'High-Risk, High-Reward Plays',
        'description': 'These differential picks could provide massive rank gains',
        'confidence': 'medium',
    },
    'safe': {
        'bucket': 'consensus_picks',
        'limit': 3,
        'title': 'Conservative Consensus Plays',
        'description': 'Reliable picks that most successful managers own',
        'confidence': 'high',
    },
    'timing': {
        'bucket': 'rising_stars',
        'limit': 2,
        'title': 'Beat the Market',
        'description': 'Get ahead of the crowd with these trending players',
        'confidence': 'medium',
    },
    'avoid': {
        'bucket': 'bandwagons',
        'limit': 2,
        'title': 'Potential Traps',
        'description': 'High ownership players with declining form - consider alternatives',
        'confidence': 'high',
    },
    'favorite_team': {
        'bucket': 'favorite_team',
        'limit': 3,
        'title': 'Your Team in Form',
        'description': 'In-form players from your favourite club',
        'confidence': 'medium',
    },
}

SEARCH_FIELDS = ('web_name', 'first_name', 'second_name', 'team_name')


def join_players(payload: BootstrapPayload) -> List[Dict[str, Any]]:
    """Flatten players into records carrying their team and position names.

    Args:
        payload: Decoded bootstrap payload.

    Returns:
        One dict per player, in payload order.
    """
    teams = payload.team_by_id()
    positions = payload.position_by_id()

    records = []
    for player in payload.players:
        team = teams.get(player.team)
        position = positions.get(player.element_type)
        record = player.to_dict()
        record['team_name'] = team.name if team else 'Unknown'
        record['team_short_name'] = team.short_name if team else 'UNK'
        record['position_name'] = position.singular_name_short if position else 'Unknown'
        record['now_cost_millions'] = player.cost_millions
        record['value_season'] = player.points_per_cost
        records.append(record)
    return records


def _numeric(df: pd.DataFrame, column: str, default: float = 0.0) -> pd.Series:
    if column not in df.columns:
        return pd.Series(default, index=df.index, dtype=float)
    return pd.to_numeric(df[column], errors='coerce').fillna(default).astype(float)


def _text(df: pd.DataFrame, column: str, default: str = '') -> pd.Series:
    if column not in df.columns:
        return pd.Series(default, index=df.index, dtype=object)
    return df[column].fillna(default).astype(str)


def _ownership_tier(ownership: float) -> str:
    if ownership > 50:
        return 'template'
    if ownership > 20:
        return 'popular'
    if ownership > 5:
        return 'moderate'
    return 'differential'


class PlayerAnalyzer:
    """Derives ranked insight views from joined player records."""

    def __init__(
        self,
        players: Iterable[Dict[str, Any]],
        position_types: Optional[Iterable[Any]] = None,
        top_count: Optional[int] = None,
        template_count: Optional[int] = None,
        value_min_cost: Optional[int] = None,
    ):
        """Initialize analyzer.

        Args:
            players: Records from join_players().
            position_types: PositionType records, needed for position_insights().
            top_count: Truncation for ranked lists.
            template_count: Truncation for the template team.
            value_min_cost: Cost floor (0.1m units) for value picks.
        """
        self.top_count = TOP_COUNT if top_count is None else top_count
        self.template_count = TEMPLATE_COUNT if template_count is None else template_count
        self.value_min_cost = VALUE_MIN_COST if value_min_cost is None else value_min_cost
        self.position_types = list(position_types or [])

        records = [dict(p) for p in (players or []) if isinstance(p, dict)]
        self.df = self._build_frame(records)
        self.records = self._enrich(records)

    @staticmethod
    def _build_frame(records: List[Dict[str, Any]]) -> pd.DataFrame:
        raw = pd.DataFrame(records, index=range(len(records)))
        df = pd.DataFrame(index=raw.index)

        for col in NUMERIC_COLUMNS:
            df[col] = _numeric(raw, col)

        df['team'] = _numeric(raw, 'team')
        df['element_type'] = _numeric(raw, 'element_type')
        # No news counts as fully available
        df['chance'] = _numeric(raw, 'chance_of_playing_next_round', default=100.0)
        df['has_news'] = _text(raw, 'news').str.strip() != ''
        df['status'] = _text(raw, 'status', default='a').replace('', 'a')

        for col in ('web_name', 'first_name', 'second_name', 'team_name', 'position_name'):
            df[col] = _text(raw, col)

        df['cost_m'] = df['now_cost'] / 10
        df['form_trend'] = df['form'] - df['points_per_game']
        df['value_efficiency'] = (df['total_points'] / df['cost_m'].where(df['cost_m'] > 0)).fillna(0.0)
        df['momentum'] = df['form'] * (df['transfers_in_event'] - df['transfers_out_event'])
        df['captain_score'] = df['form'] * df['points_per_game']
        df['ownership_tier'] = df['selected_by_percent'].map(_ownership_tier)
        df['injury_risk'] = 'low'
        df.loc[df['has_news'], 'injury_risk'] = 'medium'
        df.loc[df['chance'] < 100, 'injury_risk'] = 'high'
        return df

    def _enrich(self, records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        derived = self.df[['form_trend', 'ownership_tier', 'value_efficiency', 'momentum', 'injury_risk']]
        for record, values in zip(records, derived.to_dict('records')):
            record['form_trend'] = float(values['form_trend'])
            record['ownership_tier'] = values['ownership_tier']
            record['value_efficiency'] = float(values['value_efficiency'])
            record['momentum'] = float(values['momentum'])
            record['injury_risk'] = values['injury_risk']
        return records

    def _select(self, mask: pd.Series, sort_by: Union[str, pd.Series, None] = None,
                ascending: bool = False, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Records matching mask, stably ordered by a frame column or key series."""
        keys = self.df[sort_by] if isinstance(sort_by, str) else sort_by
        if keys is None:
            positions = mask[mask].index.tolist()
        else:
            positions = keys.loc[mask].sort_values(ascending=ascending, kind='mergesort').index.tolist()
        if limit is not None:
            positions = positions[:limit]
        return [self.records[i] for i in positions]

    # =========================================================================
    # RANKED VIEWS
    # =========================================================================

    def top_form(self) -> List[Dict[str, Any]]:
        return self._select(self.df['form'] > 0, 'form', limit=self.top_count)

    def differentials(self) -> List[Dict[str, Any]]:
        """Low-ownership players in form (ownership < 10%, form > 4)."""
        df = self.df
        mask = (df['selected_by_percent'] < 10) & (df['form'] > 4)
        return self._select(mask, 'form', limit=self.top_count)

    def value_picks(self) -> List[Dict[str, Any]]:
        """Best points per million, excluding unused bench fodder."""
        df = self.df
        mask = (df['total_points'] > 20) & (df['now_cost'] > self.value_min_cost)
        picks = self._select(mask, 'value_efficiency', limit=self.top_count)
        return [dict(p, value=p['value_efficiency']) for p in picks]

    def captain_candidates(self) -> List[Dict[str, Any]]:
        df = self.df
        mask = (df['form'] > 4) & (df['selected_by_percent'] > 5)
        return self._select(mask, 'captain_score', limit=self.top_count)

    def template_team(self) -> List[Dict[str, Any]]:
        return self._select(self.df['selected_by_percent'] > 20, 'selected_by_percent',
                            limit=self.template_count)

    def transfer_momentum(self) -> Dict[str, List[Dict[str, Any]]]:
        """Hottest (most bought), coldest (most sold) and rising stars.

        Rising stars have form well above their season average
        (form - points_per_game > 1) while still under 15% owned.
        """
        df = self.df
        return {
            'hottest': self._select(df['transfers_in_event'] > 0, 'transfers_in_event',
                                    limit=self.top_count),
            'coldest': self._select(df['transfers_out_event'] > 0, 'transfers_out_event',
                                    limit=self.top_count),
            'rising_stars': self._select(
                (df['form_trend'] > 1) & (df['selected_by_percent'] < 15),
                'form_trend',
                limit=self.top_count,
            ),
        }

    def form_ownership_matrix(self) -> Dict[str, List[Dict[str, Any]]]:
        """Quadrants of form against ownership. A player lands in at most one."""
        form, own = self.df['form'], self.df['selected_by_percent']
        return {
            'hidden_gems': self._select((form > 5) & (own < 5)),
            'bandwagons': self._select((form < 3) & (own > 30)),
            'consensus_picks': self._select((form > 5) & (own > 30)),
            'avoid_list': self._select((form < 2) & (own < 5)),
        }

    def risk_tiers(self) -> Dict[str, List[Dict[str, Any]]]:
        """Split players into high, moderate and low risk.

        high: doubtful to play or form collapsing (trend < -2).
        moderate: any other irregularity (news, non-available status,
            negative trend).
        low: fully available, trending up and a proven scorer (> 50 pts).
        Tiers are exclusive; a clean player under 50 points is in none.
        """
        df = self.df
        full_chance = df['chance'] >= 100
        high = ~full_chance | (df['form_trend'] < -2)
        irregular = df['has_news'] | (df['status'] != 'a') | (df['form_trend'] < 0)
        moderate = ~high & irregular
        low = ~high & ~irregular & (df['total_points'] > 50)
        return {
            'high': self._select(high),
            'moderate': self._select(moderate),
            'low': self._select(low),
        }

    def price_performance_clusters(self) -> Dict[str, List[Dict[str, Any]]]:
        df = self.df
        cost, points, efficiency = df['cost_m'], df['total_points'], df['value_efficiency']
        return {
            'premium_performers': self._select((cost > 10) & (points > 80)),
            'mid_range_value': self._select((cost > 6) & (cost <= 10) & (efficiency > 10)),
            'budget_gems': self._select((cost <= 6) & (points > 40)),
            'overpriced': self._select((cost > 8) & (efficiency < 8)),
        }

    # =========================================================================
    # RECOMMENDATIONS
    # =========================================================================

    def recommendations(self, risk_tolerance: str = 'medium',
                        favorite_team: Optional[int] = None) -> List[Dict[str, Any]]:
        """Surface insight buckets for a manager's risk profile.

        Args:
            risk_tolerance: 'low', 'medium' or 'high'. Anything else is
                treated as 'medium'.
            favorite_team: Team id whose in-form players are surfaced
                directly after the first recommendation.

        Returns:
            List of dicts with type, title, description, players and
            confidence. Empty buckets are left out.
        """
        tolerance = str(risk_tolerance or 'medium').lower()
        if tolerance not in RECOMMENDATION_POLICY:
            logger.debug(f"Unknown risk tolerance {risk_tolerance!r}, using medium")
            tolerance = 'medium'

        buckets = dict(self.form_ownership_matrix())
        buckets['rising_stars'] = self.transfer_momentum()['rising_stars']

        entries = [self._recommendation(rec_type, buckets)
                   for rec_type in RECOMMENDATION_POLICY[tolerance]]
        entries = [e for e in entries if e is not None]

        if favorite_team is not None:
            buckets['favorite_team'] = self.team_in_form(favorite_team)
            entry = self._recommendation('favorite_team', buckets)
            if entry is not None:
                entries.insert(min(1, len(entries)), entry)
        return entries

    @staticmethod
    def _recommendation(rec_type: str, buckets: Dict[str, List[Dict]]) -> Optional[Dict[str, Any]]:
        kind = RECOMMENDATION_TYPES[rec_type]
        players = buckets.get(kind['bucket'], [])[:kind['limit']]
        if not players:
            return None
        return {
            'type': rec_type,
            'title': kind['title'],
            'description': kind['description'],
            'players': players,
            'confidence': kind['confidence'],
        }

    def team_in_form(self, team_id: int) -> List[Dict[str, Any]]:
        df = self.df
        return self._select((df['team'] == team_id) & (df['form'] > 0), 'form')

    # =========================================================================
    # MARKET VIEWS
    # =========================================================================

    def market_overview(self) -> Dict[str, Any]:
        df = self.df
        if df.empty:
            return {'total_players': 0, 'market_cap': 0, 'average_price': 0.0, 'most_expensive': None}

        return {
            'total_players': len(df),
            'market_cap': int(round(df['cost_m'].sum())),
            'average_price': round(float(df['cost_m'].mean()), 1),
            'most_expensive': self.records[int(df['now_cost'].idxmax())],
        }

    def position_insights(self) -> List[Dict[str, Any]]:
        """Average price, player count, top scorer and price range per position."""
        insights = []
        for position in self.position_types:
            info = dataclasses.asdict(position) if dataclasses.is_dataclass(position) else dict(position)
            group = self.df[self.df['element_type'] == info.get('id')]

            if group.empty:
                info.update({
                    'avg_price': 0.0,
                    'total_players': 0,
                    'top_performer': None,
                    'price_range': {'min': None, 'max': None},
                })
            else:
                info.update({
                    'avg_price': round(float(group['cost_m'].mean()), 1),
                    'total_players': len(group),
                    'top_performer': self.records[int(group['total_points'].idxmax())],
                    'price_range': {
                        'min': float(group['cost_m'].min()),
                        'max': float(group['cost_m'].max()),
                    },
                })
            insights.append(info)
        return insights

    def search_players(
        self,
        search: Optional[str] = None,
        position: Optional[int] = None,
        team: Optional[int] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        sort_by: str = 'total_points',
        order: str = 'desc',
        limit: Optional[int] = 20,
    ) -> List[Dict[str, Any]]:
        """Filter and sort the player list.

        Args:
            search: Case-insensitive substring of web, first, second or team name.
            position: element_type id.
            team: Team id.
            min_price: Lower price bound in millions (inclusive).
            max_price: Upper price bound in millions (inclusive).
            sort_by: Record field; 'value_season' sorts by points per million.
                Unknown fields fall back to total_points.
            order: 'asc' or 'desc'.
            limit: Maximum results, None for all.
        """
        df = self.df
        mask = pd.Series(True, index=df.index)

        if search:
            term = search.strip().lower()
            matches = pd.Series(False, index=df.index)
            for col in SEARCH_FIELDS:
                matches |= df[col].str.lower().str.contains(term, regex=False)
            mask &= matches
        if position is not None:
            mask &= df['element_type'] == position
        if team is not None:
            mask &= df['team'] == team
        if min_price is not None:
            mask &= df['cost_m'] >= min_price
        if max_price is not None:
            mask &= df['cost_m'] <= max_price

        if sort_by == 'value_season':
            sort_column = 'value_efficiency'
        elif sort_by in df.columns and sort_by not in ('has_news', 'status'):
            sort_column = sort_by
        else:
            sort_column = 'total_points'

        keys = df[sort_column]
        if keys.dtype == object:
            keys = keys.str.lower()
        return self._select(mask, keys, ascending=order == 'asc', limit=limit)

    def summary(self) -> Dict[str, Any]:
        """Every insight view in one dict."""
        return {
            'top_form': self.top_form(),
            'differentials': self.differentials(),
            'value_picks': self.value_picks(),
            'captain_candidates': self.captain_candidates(),
            'template_team': self.template_team(),
            'transfer_momentum': self.transfer_momentum(),
            'form_ownership_matrix': self.form_ownership_matrix(),
            'risk_tiers': self.risk_tiers(),
            'price_performance_clusters': self.price_performance_clusters(),
            'position_insights': self.position_insights(),
            'market_overview': self.market_overview(),
        }
