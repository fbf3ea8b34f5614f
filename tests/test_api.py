import runpy
import unittest
import warnings
from unittest.mock import patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from dashboard.backend.jobs.bootstrap_job import run_bootstrap_job
from dashboard.backend.main import app
from dashboard.backend.refresh_log import clear_refresh_log, get_refresh_status
from etl.errors import RateLimited, ServerUnavailable, Timeout
from etl.transformers import decode_fixtures
from reports.fpl_report.data_fetcher import init_data_layer, reset_data_layer
from utils.config import HOST, PORT

from sample_data import build_layer, raw_fixture, raw_player, raw_team, sample_payload


def _payload():
    return sample_payload(
        teams=[raw_team(1, strength=2), raw_team(2, strength=4), raw_team(3, strength=5)],
        players=[
            raw_player(1, web_name='Mbeumo', team=1, form='6.0', selected_by_percent='3.0',
                       now_cost=75, total_points=90),
            raw_player(2, web_name='Jackson', team=2, element_type=4, form='2.0',
                       selected_by_percent='45.0', now_cost=80, total_points=60),
        ],
    )


class _ApiTestCase(unittest.TestCase):
    """TestClient without a context manager: lifespan (and the scheduler) never runs."""

    def setUp(self):
        self.client = TestClient(app)

    def tearDown(self):
        reset_data_layer()
        clear_refresh_log()

    def install(self, *results, **kwargs):
        layer, fetcher = build_layer(*results, **kwargs)
        init_data_layer(layer)
        return layer, fetcher


class TestConfigEndpoints(_ApiTestCase):
    def setUp(self):
        super().setUp()
        self.install(_payload())

    def test_full_bundle(self):
        resp = self.client.get('/api/config')

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertFalse(body['is_fallback'])
        self.assertEqual(sorted(body['teams']), ['1', '2', '3'])
        self.assertEqual(body['game_rules']['budget_limit'], 100.0)

    def test_views(self):
        self.assertEqual(list(self.client.get('/api/config/positions').json()),
                         ['GKP', 'DEF', 'MID', 'FWD'])
        self.assertEqual(self.client.get('/api/config/position-limits').json()['GKP']['max'], 2)
        self.assertEqual(self.client.get('/api/config/teams').json()['3']['short_name'], 'T03')
        self.assertEqual(self.client.get('/api/config/game-rules').json()['squad_size'], 15)
        self.assertEqual(self.client.get('/api/config/fixture-difficulty').json()['5']['label'],
                         'Very Hard')

    def test_current_gameweek(self):
        body = self.client.get('/api/config/current-gameweek').json()

        self.assertTrue(body['season_active'])
        self.assertEqual(body['current_gameweek']['id'], 1)

    def test_status(self):
        self.client.get('/api/config')
        body = self.client.get('/api/status').json()

        self.assertEqual(body['bootstrap']['state'], 'fresh')
        self.assertTrue(body['config']['is_valid'])


class TestInsightEndpoints(_ApiTestCase):
    def setUp(self):
        super().setUp()
        self.install(
            _payload(),
            fixtures=decode_fixtures([raw_fixture(1, 2, 1, 3), raw_fixture(2, 1, 2, 3),
                                      raw_fixture(3, None, 1, 2)]),
            summaries={1: {'history': [{'round': 1, 'total_points': 9}], 'fixtures': [],
                           'history_past': []}},
        )

    def test_players_filtered(self):
        body = self.client.get('/api/players', params={'max_price': 7.5, 'order': 'asc'}).json()

        self.assertEqual(body['count'], 1)
        self.assertEqual(body['players'][0]['web_name'], 'Mbeumo')
        self.assertFalse(body['is_stale'])

    def test_players_bad_order_rejected(self):
        resp = self.client.get('/api/players', params={'order': 'sideways'})
        self.assertEqual(resp.status_code, 422)

    def test_insights(self):
        body = self.client.get('/api/insights', params={'risk_tolerance': 'high'}).json()

        self.assertEqual([p['id'] for p in body['differentials']], [1])
        self.assertEqual([p['id'] for p in body['form_ownership_matrix']['bandwagons']], [2])
        self.assertEqual(body['recommendations'][0]['type'], 'opportunity')

    def test_recommendations_with_favourite_team(self):
        body = self.client.get('/api/insights/recommendations',
                               params={'risk_tolerance': 'nonsense', 'favorite_team': 2}).json()

        self.assertEqual(body['risk_tolerance'], 'medium')
        self.assertEqual(body['favorite_team'], 2)
        self.assertEqual([r['type'] for r in body['recommendations']],
                         ['timing', 'favorite_team', 'avoid'])

    def test_player_history(self):
        body = self.client.get('/api/players/1/history').json()
        self.assertEqual(body, {'player_id': 1, 'history': [{'round': 1, 'total_points': 9}]})

    def test_unknown_player_history_is_404(self):
        resp = self.client.get('/api/players/42/history')

        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()['error'], 'not_found')

    def test_fixtures_grouped(self):
        body = self.client.get('/api/fixtures').json()

        self.assertEqual(body['total'], 3)
        self.assertEqual([g['gameweek'] for g in body['gameweeks']], [1, 2, None])
        self.assertTrue(body['gameweeks'][0]['fixtures'][0]['is_big_match'])

    def test_fixtures_for_team(self):
        body = self.client.get('/api/fixtures', params={'team': 3}).json()
        self.assertEqual([f['id'] for f in body['fixtures']], [1, 2])

    def test_team_strengths(self):
        body = self.client.get('/api/teams/strength').json()
        self.assertEqual(body['2']['name'], 'Team 2')


class TestUpstreamFailures(_ApiTestCase):
    def test_rate_limited_when_cold(self):
        self.install(RateLimited(retry_after=30))

        resp = self.client.get('/api/players')

        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.headers['Retry-After'], '30')
        self.assertEqual(resp.json()['error'], 'rate_limited')

    def test_server_unavailable_when_cold(self):
        self.install(ServerUnavailable(status_code=503))

        resp = self.client.get('/api/insights')

        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json()['error'], 'server_unavailable')

    def test_timeout_when_cold(self):
        self.install(Timeout())
        self.assertEqual(self.client.get('/api/teams/strength').status_code, 504)

    def test_config_never_fails(self):
        self.install(ServerUnavailable())

        with self.assertLogs('reports.fpl_report.config_resolver', level='WARNING'):
            resp = self.client.get('/api/config')

        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()['is_fallback'])
        self.assertEqual(resp.json()['teams'], {})

    def test_refresh_reports_kind_when_cold(self):
        self.install(RateLimited(retry_after=12))

        with self.assertLogs('reports.fpl_report.config_resolver', level='WARNING'):
            resp = self.client.post('/api/refresh')

        self.assertEqual(resp.status_code, 429)
        self.assertEqual(resp.headers['Retry-After'], '12')

    def test_refresh_when_warm(self):
        _, fetcher = self.install(_payload(), _payload())
        self.client.get('/api/config')

        resp = self.client.post('/api/refresh')

        self.assertEqual(resp.status_code, 200)
        self.assertFalse(resp.json()['is_fallback'])
        self.assertEqual(fetcher.calls, 2)


class TestJobsAndHealth(_ApiTestCase):
    def test_health_before_warmup(self):
        body = self.client.get('/api/health').json()
        self.assertEqual(body, {'ready': False, 'jobs': {}})

    def test_bootstrap_job_logs_success(self):
        self.install(_payload())

        run_bootstrap_job()

        jobs = self.client.get('/api/health').json()['jobs']
        self.assertEqual(jobs['bootstrap']['status'], 'ok')
        self.assertEqual(jobs['bootstrap']['message'], '2 players refreshed')

    def test_bootstrap_job_logs_failure_and_reraises(self):
        self.install(ServerUnavailable())

        with self.assertLogs('dashboard.backend.jobs.bootstrap_job', level='ERROR'):
            with self.assertRaises(ServerUnavailable):
                run_bootstrap_job()

        self.assertEqual(get_refresh_status()['bootstrap']['status'], 'error')

    def test_forced_bootstrap_job(self):
        _, fetcher = self.install(_payload(), _payload())
        run_bootstrap_job()

        run_bootstrap_job(force=True)

        self.assertEqual(fetcher.calls, 2)
        self.assertEqual(get_refresh_status()['bootstrap']['status'], 'ok')


class TestEntryPoint(unittest.TestCase):
    def test_running_module_serves_app_with_uvicorn(self):
        with patch('uvicorn.run') as run, warnings.catch_warnings():
            warnings.simplefilter('ignore', RuntimeWarning)
            runpy.run_module('dashboard.backend.main', run_name='__main__')

        run.assert_called_once()
        served = run.call_args.args[0]
        self.assertIsInstance(served, FastAPI)
        self.assertEqual(run.call_args.kwargs, {'host': HOST, 'port': PORT})


if __name__ == '__main__':
    unittest.main()
