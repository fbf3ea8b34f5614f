import tempfile
import unittest
from pathlib import Path

import pandas as pd

from etl.errors import NotFound, RateLimited, ServerUnavailable
from etl.transformers import decode_fixtures
from reports.fpl_report.data_fetcher import (
    get_data_layer,
    init_data_layer,
    reset_data_layer,
)
from reports.fpl_report.identity import IdentityProvider, UserPreferences, UserProfile

from sample_data import (
    build_layer,
    raw_fixture,
    raw_player,
    raw_team,
    sample_payload,
)


def scenario_payload():
    """Three clubs of strength 2, 4 and 5; one differential and one bandwagon."""
    return sample_payload(
        teams=[raw_team(1, strength=2), raw_team(2, strength=4), raw_team(3, strength=5)],
        players=[
            raw_player(1, web_name='Mbeumo', team=1, form='6.0', points_per_game='4.0',
                       selected_by_percent='3.0', now_cost=75, total_points=90),
            raw_player(2, web_name='Jackson', team=2, element_type=4, form='2.0',
                       points_per_game='4.5', selected_by_percent='45.0', now_cost=80,
                       total_points=60),
        ],
    )


class TestEndToEndInsights(unittest.TestCase):
    def setUp(self):
        self.layer, self.fetcher = build_layer(
            scenario_payload(),
            fixtures=decode_fixtures([raw_fixture(10, 1, 1, 3), raw_fixture(11, 1, 2, 3)]),
        )

    def test_form_ownership_quadrants(self):
        insights = self.layer.get_insights()

        matrix = insights['form_ownership_matrix']
        self.assertEqual([p['id'] for p in matrix['hidden_gems']], [1])
        self.assertEqual([p['id'] for p in matrix['bandwagons']], [2])
        self.assertEqual([p['id'] for p in insights['differentials']], [1])
        self.assertFalse(insights['is_stale'])
        self.assertIsNone(insights['error'])

    def test_recommendations_follow_preferences(self):
        recs = self.layer.get_recommendations(UserPreferences(risk_tolerance='high', favorite_team=2))

        self.assertEqual(recs['risk_tolerance'], 'high')
        self.assertEqual([r['type'] for r in recs['recommendations']],
                         ['opportunity', 'favorite_team', 'timing', 'avoid'])
        self.assertEqual(recs['recommendations'][1]['players'][0]['web_name'], 'Jackson')

    def test_players_are_joined(self):
        result = self.layer.get_players(search='jack')

        self.assertEqual(result['count'], 1)
        self.assertEqual(result['players'][0]['team_name'], 'Team 2')
        self.assertEqual(result['players'][0]['position_name'], 'FWD')
        self.assertIn('fetched_at', result)

    def test_fixtures_are_annotated(self):
        fixtures = self.layer.get_fixtures(gameweek=1)

        self.assertEqual([f['id'] for f in fixtures], [10, 11])
        self.assertEqual(fixtures[0]['home_difficulty'], 5)
        self.assertEqual(fixtures[0]['away_difficulty'], 2)
        self.assertFalse(fixtures[0]['is_big_match'])
        self.assertTrue(fixtures[1]['is_big_match'])

    def test_team_strengths(self):
        strengths = self.layer.get_team_strengths()
        self.assertEqual(sorted(strengths), [1, 2, 3])
        self.assertEqual(strengths[3]['overall'], 1100)

    def test_one_fetch_serves_every_view(self):
        self.layer.get_insights()
        self.layer.get_players()
        self.layer.config.teams()
        self.assertEqual(self.fetcher.calls, 1)


class TestPlayerHistory(unittest.TestCase):
    def test_history_frame(self):
        summaries = {7: {'history': [{'round': 1, 'total_points': 6}, {'round': 2, 'total_points': 2}],
                         'fixtures': [], 'history_past': []}}
        layer, _ = build_layer(sample_payload(), summaries=summaries)

        history = layer.get_player_history(7)

        self.assertIsInstance(history, pd.DataFrame)
        self.assertEqual(history['total_points'].tolist(), [6, 2])

    def test_unknown_player(self):
        layer, _ = build_layer(sample_payload())
        with self.assertRaises(NotFound):
            layer.get_player_history(999)


class TestRefreshAndStatus(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_refresh_refetches(self):
        layer, fetcher = build_layer(sample_payload(), sample_payload(teams=[raw_team(4)]),
                                     cache_dir=Path(self.temp_dir.name))
        layer.warm_up()

        status = layer.refresh()

        self.assertEqual(fetcher.calls, 2)
        self.assertFalse(status['is_fallback'])
        self.assertEqual(status['bootstrap']['state'], 'fresh')
        self.assertEqual(list(layer.config.teams()), [4])

    def test_refresh_raises_when_cold(self):
        layer, _ = build_layer(RateLimited(retry_after=30))

        with self.assertLogs('reports.fpl_report.config_resolver', level='WARNING'):
            with self.assertRaises(RateLimited) as ctx:
                layer.refresh()
        self.assertEqual(ctx.exception.retry_after, 30)

    def test_refresh_degrades_when_warm(self):
        layer, _ = build_layer(sample_payload(), ServerUnavailable())
        layer.warm_up()

        with self.assertLogs('reports.fpl_report', level='WARNING'):
            status = layer.refresh()

        self.assertTrue(status['bootstrap']['has_cached_data'])
        self.assertFalse(status['is_fallback'])

    def test_warm_up_on_fallback_logs_warning(self):
        layer, _ = build_layer(ServerUnavailable())

        with self.assertLogs('reports.fpl_report.data_fetcher', level='WARNING'):
            layer.warm_up()
        self.assertEqual(layer.status()['bootstrap']['state'], 'empty')
        self.assertTrue(layer.status()['config']['is_fallback'])

    def test_cold_views_raise_original_failure(self):
        layer, _ = build_layer(ServerUnavailable(status_code=502))
        with self.assertRaises(ServerUnavailable):
            layer.get_insights()


class TestDataLayerSingleton(unittest.TestCase):
    def tearDown(self):
        reset_data_layer()

    def test_uninitialized_raises(self):
        reset_data_layer()
        with self.assertRaises(RuntimeError):
            get_data_layer()

    def test_first_instance_is_kept(self):
        layer, _ = build_layer(sample_payload())

        installed = init_data_layer(layer)

        self.assertIs(installed, layer)
        self.assertIs(init_data_layer(), layer)
        self.assertIs(get_data_layer(), layer)


class TestIdentityContract(unittest.TestCase):
    def test_preferences_are_normalized(self):
        prefs = UserPreferences.from_dict({'risk_tolerance': 'HIGH', 'favorite_team': '14'})
        self.assertEqual(prefs.risk_tolerance, 'high')
        self.assertEqual(prefs.favorite_team, 14)

        prefs = UserPreferences.from_dict({'risk_tolerance': 'yolo', 'favorite_team': 'spurs'})
        self.assertEqual(prefs.risk_tolerance, 'medium')
        self.assertIsNone(prefs.favorite_team)

    def test_structural_provider(self):
        class InMemoryIdentity:
            def __init__(self):
                self.profile = UserProfile(uid='u1', email='a@b.c')

            def login(self, email, password):
                return self.profile

            def register(self, email, password, display_name=''):
                return self.profile

            def logout(self):
                return None

            def reset_password(self, email):
                return None

            def update_preferences(self, uid, preferences):
                self.profile.preferences = preferences
                return self.profile

        provider = InMemoryIdentity()
        self.assertIsInstance(provider, IdentityProvider)
        profile = provider.update_preferences('u1', UserPreferences(favorite_team=3))
        self.assertEqual(profile.to_dict()['preferences']['favorite_team'], 3)


if __name__ == '__main__':
    unittest.main()
