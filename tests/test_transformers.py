import unittest

from etl.errors import Unexpected
from etl.transformers import (
    build_player,
    decode_bootstrap,
    decode_fixtures,
    safe_float,
    safe_int,
)

from sample_data import raw_bootstrap, raw_player, raw_team


class TestNumericParsing(unittest.TestCase):
    def test_safe_float(self):
        self.assertEqual(safe_float('4.5'), 4.5)
        self.assertEqual(safe_float(None), 0.0)
        self.assertEqual(safe_float('n/a'), 0.0)
        self.assertEqual(safe_float(float('nan'), default=1.0), 1.0)
        self.assertEqual(safe_float(float('inf')), 0.0)

    def test_safe_int(self):
        self.assertEqual(safe_int('12'), 12)
        self.assertEqual(safe_int('7.9'), 7)
        self.assertEqual(safe_int(None, default=3), 3)
        self.assertEqual(safe_int(True), 1)


class TestBuildPlayer(unittest.TestCase):
    def test_missing_fields_are_defaulted(self):
        player = build_player({'id': 5})

        self.assertEqual(player.now_cost, 0)
        self.assertEqual(player.form, '0.0')
        self.assertEqual(player.selected_by_percent, '0.0')
        self.assertIsNone(player.chance_of_playing_next_round)
        self.assertEqual(player.status, 'a')
        self.assertEqual(player.news, '')

    def test_derived_cost_fields(self):
        player = build_player(raw_player(1, now_cost=125, total_points=150))
        self.assertEqual(player.cost_millions, 12.5)
        self.assertEqual(player.points_per_cost, 12.0)

    def test_zero_cost_efficiency_is_zero(self):
        player = build_player(raw_player(1, now_cost=0, total_points=50))
        self.assertEqual(player.points_per_cost, 0.0)

    def test_string_numbers_are_coerced(self):
        player = build_player(raw_player('9', now_cost='55', total_points='bad'))
        self.assertEqual(player.id, 9)
        self.assertEqual(player.now_cost, 55)
        self.assertEqual(player.total_points, 0)


class TestDecodeBootstrap(unittest.TestCase):
    def test_full_payload(self):
        payload = decode_bootstrap(raw_bootstrap())

        self.assertEqual(len(payload.players), 2)
        self.assertEqual(len(payload.teams), 2)
        self.assertEqual([p.singular_name_short for p in payload.position_types],
                         ['GKP', 'DEF', 'MID', 'FWD'])
        self.assertTrue(payload.events[0].is_current)
        self.assertEqual(payload.game_settings.total_budget, 1000)
        self.assertEqual(payload.diagnostics, ())

    def test_records_without_usable_id_are_skipped_and_reported(self):
        raw = raw_bootstrap(
            players=[raw_player(1), {'web_name': 'NoId'}, 'junk', raw_player('abc')],
            teams=[raw_team(1)],
        )

        payload = decode_bootstrap(raw)

        self.assertEqual([p.id for p in payload.players], [1])
        self.assertEqual([d.index for d in payload.diagnostics], [1, 2, 3])
        self.assertTrue(all(d.collection == 'elements' for d in payload.diagnostics))

    def test_null_records_are_skipped_in_every_collection(self):
        raw = raw_bootstrap(players=[None, raw_player(1)], teams=[raw_team(1), None])
        raw['events'] = raw['events'] + [None]
        raw['element_types'] = raw['element_types'] + [None]

        payload = decode_bootstrap(raw)

        self.assertEqual([p.id for p in payload.players], [1])
        self.assertEqual([t.id for t in payload.teams], [1])
        self.assertEqual(sorted(d.collection for d in payload.diagnostics),
                         ['element_types', 'elements', 'events', 'teams'])
        self.assertTrue(all(d.reason.startswith('TypeError') for d in payload.diagnostics))

    def test_collection_of_wrong_type_is_reported(self):
        raw = raw_bootstrap()
        raw['teams'] = {'1': 'nope'}

        payload = decode_bootstrap(raw)

        self.assertEqual(payload.teams, ())
        self.assertEqual(payload.diagnostics[0].collection, 'teams')
        self.assertEqual(payload.diagnostics[0].index, -1)

    def test_missing_game_settings_is_none(self):
        payload = decode_bootstrap(raw_bootstrap(game_settings=None))
        self.assertIsNone(payload.game_settings)

    def test_partial_game_settings_default_per_key(self):
        payload = decode_bootstrap(raw_bootstrap(game_settings={'squad_team_limit': 2}))

        self.assertEqual(payload.game_settings.max_per_team, 2)
        self.assertEqual(payload.game_settings.squad_size, 15)
        self.assertEqual(payload.game_settings.free_transfers, 1)

    def test_non_object_raises_unexpected(self):
        with self.assertRaises(Unexpected):
            decode_bootstrap('<html>maintenance</html>')

    def test_payload_lookups(self):
        payload = decode_bootstrap(raw_bootstrap())
        self.assertEqual(payload.team_by_id()[2].name, 'Team 2')
        self.assertEqual(payload.position_by_id()[4].singular_name_short, 'FWD')


class TestDecodeFixtures(unittest.TestCase):
    def test_requires_list(self):
        with self.assertRaises(Unexpected):
            decode_fixtures({'fixtures': []})

    def test_unscheduled_fixture_has_no_event(self):
        fixtures = decode_fixtures([{'id': 1, 'event': None, 'team_h': 1, 'team_a': 2}])
        self.assertIsNone(fixtures[0].event)
        self.assertEqual(fixtures[0].team_h_difficulty, 3)


if __name__ == '__main__':
    unittest.main()
