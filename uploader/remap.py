"""Rewrite temporary player ids throughout the tournament graph."""

import logging
from dataclasses import dataclass

from uploader import PlayerInfo
from uploader.errors import MissingMappingError
from uploader.tournament import Tournament

log = logging.getLogger(__name__)


@dataclass
class ReferenceSite:
    """One list of player ids inside the graph."""

    label: str
    ids: list[int]


def collect_reference_sites(tournament: Tournament) -> list[ReferenceSite]:
    """List every roster and per-game participant list of the tournament."""
    sites: list[ReferenceSite] = []
    for comp in tournament.competitions:
        for team in comp.teams:
            sites.append(ReferenceSite(f'{comp.name}/team {team.start_number}', team.players))
        for phase in comp.phases:
            for match in phase.matches:
                for game in match.games:
                    prefix = f'{comp.name}/phase {phase.phase_number}/match {match.match_number}' \
                             f'/game {game.game_number}'
                    sites.append(ReferenceSite(prefix + ' A', game.players_a))
                    sites.append(ReferenceSite(prefix + ' B', game.players_b))
    return sites


def check_totality(player_infos: list[PlayerInfo], id_map: dict[int, int]) -> None:
    """Make sure every parsed player was found or added.

    Raises:
        MissingMappingError: For the first player without a registry id.
    """
    for info in player_infos:
        if info.tmp_id not in id_map:
            raise MissingMappingError(
                info.tmp_id, f"Couldn't find or add player {info.display()}"
            )


def remap_references(tournament: Tournament, id_map: dict[int, int]) -> int:
    """Replace every temporary id in the graph with its registry id.

    All sites are validated before the first one is rewritten, so a missing
    mapping leaves the graph untouched.

    Args:
        tournament: The tournament whose references are rewritten in place.
        id_map: Temporary id -> registry id.

    Returns:
        Number of rewritten references.

    Raises:
        MissingMappingError: If a referenced id has no mapping.
    """
    sites = collect_reference_sites(tournament)
    for site in sites:
        for player_id in site.ids:
            if player_id not in id_map:
                raise MissingMappingError(player_id, f'Missing id {player_id} in {site.label}')

    count = 0
    for site in sites:
        site.ids[:] = [id_map[player_id] for player_id in site.ids]
        count += len(site.ids)

    log.info("%d Spielerreferenzen in %d Listen ersetzt", count, len(sites))
    return count
