"""Upload orchestration: reconcile players, remap the graph, publish."""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional

from uploader import PlayerInfo, ResolutionResult
from uploader.client import RegistryClient
from uploader.config import UploadConfig
from uploader.enrichment import enrich, license_numbers
from uploader.errors import EnrichmentFailure, LoginError
from uploader.mutator import create_players, update_players
from uploader.participation import (
    find_competition,
    find_team,
    played_state,
    set_team_played,
    team_matches,
    team_name,
)
from uploader.publish import Publisher
from uploader.reference import ReferenceDatabase
from uploader.remap import check_totality, remap_references
from uploader.resolver import resolve
from uploader.tournament import TournamentInfo

log = logging.getLogger(__name__)


@dataclass
class UploadResult:
    """Outcome of one successful upload attempt."""

    outcome: str                                   # 'create' or 'replace'
    players: list[PlayerInfo]
    id_map: dict[int, int]
    name_map: dict[int, str]
    token: Optional[str] = None
    issues: dict[int, list[str]] = field(default_factory=dict)
    created: set[int] = field(default_factory=set)   # tmp ids
    updated: set[int] = field(default_factory=set)   # tmp ids
    not_played: list[str] = field(default_factory=list)


class UploadManager:
    """Runs one upload attempt for a decoded tournament.

    Stages run strictly in order and only when they have work:
    search, reference lookup with a second search, create, update,
    remap, participation edits, publish. Any failure aborts the rest;
    registry changes already made are not rolled back.
    """

    def __init__(
        self,
        tournament_info: TournamentInfo,
        file_path: str | Path,
        client: RegistryClient,
        reference: Optional[ReferenceDatabase] = None,
        config: Optional[UploadConfig] = None,
        extension: str = 'fast',
        not_played: Iterable[tuple[str, int]] = (),
        on_progress: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.tournament_info = tournament_info
        self.file_path = Path(file_path)
        self.client = client
        self.reference = reference
        self.config = config or UploadConfig(server_url=client.server_url)
        self.extension = extension
        self.not_played = list(not_played)
        self.on_progress = on_progress
        self.sleep = sleep

    def _progress(self, message: str) -> None:
        log.info(message)
        if self.on_progress is not None:
            self.on_progress(message)

    def login(self) -> str:
        """Make sure the client carries a bearer token and return it.

        With a login-as target configured, an admin account switches to
        that user; the returned token is then the switched one.
        """
        if not self.client.token:
            if not self.config.has_credentials:
                raise LoginError('Not logged in and no login credentials configured')
            self._progress('Logging in ...')
            self.client.login(self.config.email, self.config.password)
        if self.config.login_as:
            self.switch_user(self.config.login_as)
        return self.client.token

    def switch_user(self, target: str) -> None:
        """Impersonate another user, given by id or email.

        Raises:
            LoginError: If the account is no admin or the user is unknown.
        """
        if not self.client.is_admin():
            raise LoginError(f'Login as {target} requires an admin account')
        for user in self.client.list_users():
            if target in (str(user.get('id')), user.get('email')):
                self._progress(f"Logging in as {user.get('email') or user['id']} ...")
                self.client.login_as(str(user['id']))
                return
        raise LoginError(f'Unknown user {target}')

    def search_players(self, players: list[PlayerInfo]) -> ResolutionResult:
        self._progress('Searching players in the database ...')
        search_results = self.client.search_players(players)
        return resolve(players, search_results, self.config.license_policy)

    def search_with_reference(self, result: ResolutionResult) -> None:
        """Name the unnamed players from the reference and search them once more.

        Raises:
            EnrichmentFailure: If names are still missing, or the second
                search again reports players without name.
        """
        if self.reference is None:
            raise EnrichmentFailure(
                'Players not found in reference database: '
                f'{license_numbers(result.new_players_without_name)} (no reference database given)'
            )
        self._progress('Loading player names from the reference database ...')
        enrich(result.new_players_without_name, self.reference)

        second = self.search_players(result.new_players_without_name)
        if second.new_players_without_name:
            raise EnrichmentFailure('Every player should have a name after second iteration')
        result.merge(second)

    def reconcile(self) -> tuple[ResolutionResult, set[int], set[int]]:
        """Resolve, enrich, create and update until every player has a registry id.

        Returns:
            The final result plus the tmp ids of created and updated players.
        """
        players = list(self.tournament_info.player_infos.values())
        result = self.search_players(players)

        if result.new_players_without_name:
            self.search_with_reference(result)

        created: set[int] = set()
        if result.new_players:
            created = {p.tmp_id for p in result.new_players}
            self._progress('Adding new players to the database ...')
            create_players(self.client, result)

        updated: set[int] = set()
        if result.to_update:
            updated = {u.tmp_id for u in result.to_update}
            self._progress('Updating players in the database ...')
            update_players(self.client, result)

        check_totality(players, result.id_map)
        return result, created, updated

    def apply_not_played(self, name_map: dict[int, str]) -> list[str]:
        """Mark the configured teams as not played.

        Returns:
            One line per team, naming its players.
        """
        tournament = self.tournament_info.tournament
        marked = []
        for competition_name, start_number in self.not_played:
            comp = find_competition(tournament, competition_name)
            name = team_name(find_team(comp, start_number), name_map) or f'Team {start_number}'
            if played_state(team_matches(comp, start_number, only_played=False)) == 'empty':
                log.warning("%s: Team %d (%s) hat keine Spiele", comp.name, start_number, name)
                marked.append(f'{comp.name}: {name} (keine Spiele)')
                continue
            set_team_played(comp, start_number, False)
            marked.append(f'{comp.name}: {name}')
        return marked

    def upload(self) -> UploadResult:
        """Run the whole upload attempt.

        Returns:
            UploadResult including the (possibly refreshed) token.

        Raises:
            UploadError: Any failure, with a human-readable message.
        """
        token = self.login()
        result, created, updated = self.reconcile()
        remap_references(self.tournament_info.tournament, result.id_map)
        not_played = self.apply_not_played(result.name_map) if self.not_played else []

        publisher = Publisher(
            self.client,
            poll_interval=self.config.poll_interval,
            poll_timeout=self.config.poll_timeout,
            on_progress=self.on_progress,
            sleep=self.sleep,
        )
        outcome = publisher.publish(self.tournament_info.tournament, self.file_path, self.extension)

        return UploadResult(
            outcome=outcome,
            players=list(self.tournament_info.player_infos.values()),
            id_map=result.id_map,
            name_map=result.name_map,
            token=self.client.token or token,
            issues=result.issues,
            created=created,
            updated=updated,
            not_played=not_played,
        )
