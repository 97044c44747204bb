"""Marking teams that did not actually play their matches."""

import logging

from uploader.tournament import Competition, Match, Phase, Team, Tournament

log = logging.getLogger(__name__)


def find_competition(tournament: Tournament, name: str) -> Competition:
    for comp in tournament.competitions:
        if comp.name == name:
            return comp
    raise KeyError(f"Bewerb '{name}' nicht gefunden")


def find_team(competition: Competition, start_number: int) -> Team:
    for team in competition.teams:
        if team.start_number == start_number:
            return team
    raise KeyError(f"Team {start_number} nicht in '{competition.name}'")


def team_name(team: Team, name_map: dict[int, str]) -> str:
    """Join the display names of a team's players."""
    return ' und '.join(name_map.get(pid, str(pid)) for pid in team.players)


def _unique_rank(phase: Phase, start_number: int) -> int | None:
    rank = None
    for ranking in phase.rankings:
        if start_number in ranking.team_start_numbers:
            rank = ranking.unique_rank
    return rank


def team_matches(
    competition: Competition,
    start_number: int,
    only_played: bool = True,
) -> list[tuple[Match, Phase]]:
    """Find the matches a team took part in, per phase via its unique rank."""
    found: list[tuple[Match, Phase]] = []
    for phase in competition.phases:
        rank = _unique_rank(phase, start_number)
        if rank is None:
            continue
        for match in phase.matches:
            if only_played and not match.played:
                continue
            if rank in match.rankings_a_unique_ranks + match.rankings_b_unique_ranks:
                found.append((match, phase))
    return found


def set_match_played(match: Match, played: bool) -> None:
    match.played = played
    for game in match.games:
        game.played = played


def set_team_played(competition: Competition, start_number: int, played: bool) -> int:
    """Set the played flag on all matches of a team.

    Returns:
        Number of changed matches.
    """
    matches = team_matches(competition, start_number, only_played=False)
    for match, _ in matches:
        set_match_played(match, played)
    log.info(
        "%s, Team %d: %d Spiele als %s markiert",
        competition.name, start_number, len(matches), 'gespielt' if played else 'nicht gespielt',
    )
    return len(matches)


def played_state(matches: list[tuple[Match, Phase]]) -> str:
    """Summarize played flags: 'none', 'some', 'all' or 'empty'."""
    if not matches:
        return 'empty'
    played = [match.played for match, _ in matches]
    if all(played):
        return 'all'
    if any(played):
        return 'some'
    return 'none'
