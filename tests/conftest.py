"""Shared test fixtures."""

from pathlib import Path

import pytest

from uploader import PlayerInfo, RegistryMatch
from uploader.reference import read_reference
from uploader.tournament import load_tournament_info


DATA_DIR = Path(__file__).resolve().parent / 'data'


class FakeRegistry:
    """In-memory stand-in for RegistryClient.

    Players are found by license number, or by (first, last, birthday)
    when they carry no license. Every call is recorded in `calls`.
    """

    def __init__(self, players=None, states=None, next_id=1000):
        self.server_url = 'http://registry.test'
        self.token = 'token-1'
        self.players: list[RegistryMatch] = list(players or [])
        self.states = list(states or [
            {'type': 0},
            {'type': 3, 'result': {'data': {'type': 'create'}}},
        ])
        self.next_id = next_id
        self.update_result = True
        self.admin = False
        self.users = [{'id': 'u1', 'email': 'admin@verband.at'}, {'id': 'u2', 'email': 'club@graz.at'}]
        self.calls: list[tuple] = []

    def _matches(self, info: PlayerInfo) -> dict[int, RegistryMatch]:
        found = {}
        for p in self.players:
            if info.itsf_license_number is not None and (
                    p.itsf_license_number == info.itsf_license_number
                    or p.already_absorbed(info.itsf_license_number)):
                found[p.id] = p
            elif (info.first_name, info.last_name, info.birthday) == \
                    (p.first_name, p.last_name, p.birthday) and info.first_name is not None:
                found[p.id] = p
        return found

    def login(self, email, password):
        self.calls.append(('login', email))
        self.token = 'token-login'
        return self.token

    def is_admin(self):
        self.calls.append(('isAdmin',))
        return self.admin

    def list_users(self):
        self.calls.append(('admin/users',))
        return self.users

    def login_as(self, user_id):
        self.calls.append(('admin/loginAs', user_id))
        self.token = f'token-{user_id}'
        return self.token

    def search_players(self, players):
        self.calls.append(('searchPlayers', [p.tmp_id for p in players]))
        results = {}
        for index, info in enumerate(players):
            found = self._matches(info)
            if found:
                results[index] = found
        return results

    def add_players(self, players):
        self.calls.append(('addPlayers', [p.tmp_id for p in players]))
        created = []
        for p in players:
            self.next_id += 1
            self.players.append(RegistryMatch(
                id=self.next_id, first_name=p.first_name, last_name=p.last_name,
                birthday=p.birthday, itsf_license_number=p.itsf_license_number,
            ))
            created.append({'id': self.next_id, 'tmpId': p.tmp_id})
        return created

    def update_players(self, updates):
        self.calls.append(('updatePlayers', [u.to_json() for u in updates]))
        return self.update_result

    def upload_file(self, path, user_identifier, extension):
        self.calls.append(('uploadFile', user_identifier, extension))
        return True

    def create_or_replace_tournament(self, tournament):
        self.calls.append(('createOrReplaceTournament', tournament.to_json()))
        return 'job-1'

    def get_async_request_state(self, async_id):
        self.calls.append(('getAsyncRequestState', async_id))
        return self.states.pop(0)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the test data directory."""
    return DATA_DIR


@pytest.fixture
def tournament_info():
    """A freshly decoded tournament with four players."""
    return load_tournament_info(DATA_DIR / 'tournament.json')


@pytest.fixture(scope='session')
def reference_db():
    """The reference export from tests/data."""
    return read_reference(DATA_DIR / 'reference.csv')


@pytest.fixture
def source_file(tmp_path) -> Path:
    f = tmp_path / 'vienna.fast'
    f.write_bytes(b'<ffft/>')
    return f


@pytest.fixture
def registry():
    """Registry that already knows Anna Huber (license 12345)."""
    return FakeRegistry(players=[
        RegistryMatch(id=501, first_name='Anna', last_name='Huber',
                      birthday='1990-04-03', itsf_license_number=12345),
    ])
