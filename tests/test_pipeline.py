"""End-to-end tests for uploader.pipeline with an in-memory registry."""

import pytest

from conftest import FakeRegistry
from uploader import PlayerInfo, RegistryMatch
from uploader.config import UploadConfig
from uploader.errors import (
    AmbiguousIdentityError,
    EnrichmentFailure,
    LoginError,
    RegistryMutationFailure,
)
from uploader.pipeline import UploadManager
from uploader.remap import collect_reference_sites
from uploader.tournament import Competition, Game, Match, Phase, Ranking, Team, Tournament, TournamentInfo


def _two_player_info(first: PlayerInfo, second: PlayerInfo) -> TournamentInfo:
    """A singles final between two players."""
    comp = Competition(
        name='Open Single',
        teams=[
            Team(rank=1, start_number=1, players=[first.tmp_id]),
            Team(rank=2, start_number=2, players=[second.tmp_id]),
        ],
        phases=[Phase(
            phase_number=1,
            rankings=[Ranking(1, 1, [1]), Ranking(2, 2, [2])],
            matches=[Match(
                match_number=1, rankings_a_unique_ranks=[1], rankings_b_unique_ranks=[2],
                games=[Game(game_number=1, players_a=[first.tmp_id], players_b=[second.tmp_id])],
            )],
        )],
    )
    tournament = Tournament(name='Cup', user_identifier='cup-1', competitions=[comp])
    return TournamentInfo(tournament, {first.tmp_id: first, second.tmp_id: second})


def _anna(tmp_id=1, license_number=12345) -> PlayerInfo:
    return PlayerInfo(tmp_id, 'Anna', 'Huber', '1990-04-03', license_number)


def _max(tmp_id=2) -> PlayerInfo:
    return PlayerInfo(tmp_id, 'Max', 'Mayer', '1988-01-15', 222)


def _manager(info, registry, source_file, **kwargs) -> UploadManager:
    kwargs.setdefault('sleep', lambda seconds: None)
    return UploadManager(info, source_file, registry, **kwargs)


def _graph_ids(info: TournamentInfo) -> list[int]:
    return [pid for site in collect_reference_sites(info.tournament) for pid in site.ids]


class TestAllPlayersKnown:
    """Both players are found uniquely with matching license numbers."""

    def test_straight_to_publish(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        info = _two_player_info(_anna(), _max())

        result = _manager(info, registry, source_file).upload()

        assert result.outcome == 'create'
        assert result.id_map == {1: 501, 2: 502}
        assert registry.call_names()[:2] == ['searchPlayers', 'uploadFile']
        assert 'addPlayers' not in registry.call_names()
        assert 'updatePlayers' not in registry.call_names()
        assert _graph_ids(info) == [501, 502, 501, 502]


class TestNewPlayer:
    """A player unknown to the registry with complete data is created."""

    def test_created_player_is_mapped_and_named(self, source_file):
        registry = FakeRegistry(players=[RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345)])
        info = _two_player_info(_anna(), _max())

        result = _manager(info, registry, source_file).upload()

        assert result.id_map == {1: 501, 2: 1001}
        assert result.name_map[1001] == 'Max Mayer'
        assert result.created == {2}
        assert ('addPlayers', [2]) in registry.calls


class TestLicenseUpdate:

    def test_changed_license_is_sent(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 11111),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        # Anna is found by name since her new number is unknown to the registry
        info = _two_player_info(_anna(), _max())

        result = _manager(info, registry, source_file).upload()

        updates = [c for c in registry.calls if c[0] == 'updatePlayers']
        assert updates[0][1][0]['itsfLicenseNumber'] == 12345
        assert updates[0][1][0]['id'] == 501
        assert result.updated == {1}

    def test_absorbed_license_sends_no_update(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 11111,
                          absorbed_license_numbers={12345}),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        result = _manager(_two_player_info(_anna(), _max()), registry, source_file).upload()
        assert 'updatePlayers' not in registry.call_names()
        assert result.issues[1] == ['LICENSE_MERGED']

    def test_update_failure_keeps_created_players(self, source_file):
        registry = FakeRegistry(players=[RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 11111)])
        registry.update_result = False
        with pytest.raises(RegistryMutationFailure):
            _manager(_two_player_info(_anna(), _max()), registry, source_file).upload()
        assert registry.call_names() == ['searchPlayers', 'addPlayers', 'updatePlayers']


class TestEnrichment:

    def test_full_tournament(self, tournament_info, registry, reference_db, source_file):
        progress: list[str] = []
        result = _manager(
            tournament_info, registry, source_file,
            reference=reference_db, on_progress=progress.append,
        ).upload()

        assert registry.call_names() == [
            'searchPlayers', 'searchPlayers', 'addPlayers', 'uploadFile',
            'createOrReplaceTournament', 'getAsyncRequestState', 'getAsyncRequestState',
        ]
        assert registry.calls[1] == ('searchPlayers', [3])
        assert registry.calls[2] == ('addPlayers', [2, 4, 3])
        assert tournament_info.player_infos[3].last_name == 'GRUBER'
        assert tournament_info.player_infos[3].birthday == '1902-11-17'
        assert result.id_map == {1: 501, 2: 1001, 4: 1002, 3: 1003}
        comp = tournament_info.tournament.competitions[0]
        assert comp.teams[1].players == [1003, 1002]
        assert progress[-1] == 'Successfully created the tournament in the database!'

    def test_enriched_player_found_on_second_search(self, tournament_info, reference_db, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(777, 'Josef', 'GRUBER', '1902-11-17', None),
        ])
        result = _manager(tournament_info, registry, source_file, reference=reference_db).upload()
        assert result.id_map[3] == 777
        assert result.updated == {3}

    def test_unknown_license_aborts_before_mutation(self, tournament_info, registry, reference_db,
                                                    source_file):
        tournament_info.player_infos[3].itsf_license_number = 99999
        with pytest.raises(EnrichmentFailure, match='99999'):
            _manager(tournament_info, registry, source_file, reference=reference_db).upload()
        assert registry.call_names() == ['searchPlayers']

    def test_missing_reference_database(self, tournament_info, registry, source_file):
        with pytest.raises(EnrichmentFailure, match='23456'):
            _manager(tournament_info, registry, source_file).upload()

    def test_players_without_license_named_by_tmp_id(self, tournament_info, registry, source_file):
        tournament_info.player_infos[3].itsf_license_number = None
        with pytest.raises(EnrichmentFailure, match='#3') as exc:
            _manager(tournament_info, registry, source_file).upload()
        assert 'None' not in str(exc.value)


class TestAbort:

    def test_ambiguous_player_mutates_nothing(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(502, 'Anna', 'Huber', '1990-04-03', 12345),
        ])
        info = _two_player_info(_anna(), _max())
        with pytest.raises(AmbiguousIdentityError):
            _manager(info, registry, source_file).upload()
        assert registry.call_names() == ['searchPlayers']
        assert _graph_ids(info) == [1, 2, 1, 2]


class TestLogin:

    def test_refreshed_token_is_returned(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        registry.token = None
        config = UploadConfig(server_url='http://registry.test', email='a@b.at', password='pw')
        result = _manager(_two_player_info(_anna(), _max()), registry, source_file,
                          config=config).upload()
        assert registry.calls[0] == ('login', 'a@b.at')
        assert result.token == 'token-login'

    def test_existing_token_is_kept(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        result = _manager(_two_player_info(_anna(), _max()), registry, source_file).upload()
        assert 'login' not in registry.call_names()
        assert result.token == 'token-1'

    def test_admin_logs_in_as_other_user(self, source_file):
        registry = FakeRegistry(players=[
            RegistryMatch(501, 'Anna', 'Huber', '1990-04-03', 12345),
            RegistryMatch(502, 'Max', 'Mayer', '1988-01-15', 222),
        ])
        registry.admin = True
        config = UploadConfig(server_url='http://registry.test', login_as='club@graz.at')
        result = _manager(_two_player_info(_anna(), _max()), registry, source_file,
                          config=config).upload()
        assert registry.call_names()[:4] == ['isAdmin', 'admin/users', 'admin/loginAs', 'searchPlayers']
        assert ('admin/loginAs', 'u2') in registry.calls
        assert result.token == 'token-u2'

    def test_login_as_requires_admin(self, source_file):
        registry = FakeRegistry()
        config = UploadConfig(server_url='http://registry.test', login_as='u2')
        with pytest.raises(LoginError, match='admin'):
            _manager(_two_player_info(_anna(), _max()), registry, source_file,
                     config=config).upload()
        assert registry.call_names() == ['isAdmin']

    def test_login_as_unknown_user(self, source_file):
        registry = FakeRegistry()
        registry.admin = True
        config = UploadConfig(server_url='http://registry.test', login_as='nobody@x.at')
        with pytest.raises(LoginError, match='Unknown user nobody@x.at'):
            _manager(_two_player_info(_anna(), _max()), registry, source_file,
                     config=config).upload()
        assert 'admin/loginAs' not in registry.call_names()

    def test_no_token_no_credentials(self, source_file):
        registry = FakeRegistry()
        registry.token = None
        with pytest.raises(LoginError):
            _manager(_two_player_info(_anna(), _max()), registry, source_file).upload()
        assert registry.calls == []


class TestNotPlayed:

    def test_marked_before_publish(self, tournament_info, registry, reference_db, source_file):
        _manager(
            tournament_info, registry, source_file,
            reference=reference_db, not_played=[('Open Double', 2)],
        ).upload()
        sent = next(c[1] for c in registry.calls if c[0] == 'createOrReplaceTournament')
        match = sent['competitions'][0]['phases'][0]['matches'][0]
        assert match['played'] is False
        assert all(g['played'] is False for g in match['games'])

    def test_marked_teams_are_reported_by_name(self, tournament_info, registry, reference_db,
                                               source_file):
        result = _manager(
            tournament_info, registry, source_file,
            reference=reference_db, not_played=[('Open Double', 2)],
        ).upload()
        assert result.not_played == ['Open Double: Josef GRUBER und Eva Bauer']

    def test_team_without_matches_is_left_alone(self, tournament_info, registry, reference_db,
                                                source_file):
        tournament_info.tournament.competitions[0].teams.append(
            Team(rank=3, start_number=3, players=[]))
        result = _manager(
            tournament_info, registry, source_file,
            reference=reference_db, not_played=[('Open Double', 3)],
        ).upload()
        assert result.not_played == ['Open Double: Team 3 (keine Spiele)']
        sent = next(c[1] for c in registry.calls if c[0] == 'createOrReplaceTournament')
        assert sent['competitions'][0]['phases'][0]['matches'][0]['played'] is True
