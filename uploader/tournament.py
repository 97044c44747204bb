"""Tournament graph as produced by the file decoder and sent to the server."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from uploader import PlayerInfo

log = logging.getLogger(__name__)

# Mode attributes shared by tournament, competition, phase, match and game
MODE_KEYS = ('gameMode', 'organizingMode', 'scoreMode', 'teamMode', 'table')

# Ranking type -> ranking system id on the server
RANKING_SYSTEMS: dict[str, str] = {
    'Open Single': 'd08eda56-a7ee-11eb-8243-0242ac140002',
    'Open Double': 'dc264cb5-a7ee-11eb-8243-0242ac140002',
    'Women Single': 'e6456a1e-a7ee-11eb-8243-0242ac140002',
    'Women Double': 'e8fc01a0-a7ee-11eb-8243-0242ac140002',
    'Junior Single': 'edba2a8b-a7ee-11eb-8243-0242ac140002',
    'Junior Double': 'f06e92ce-a7ee-11eb-8243-0242ac140002',
    'Senior Single': 'f4f95737-a7ee-11eb-8243-0242ac140002',
    'Senior Double': 'f7972e41-a7ee-11eb-8243-0242ac140002',
    'Classic': 'fbb021e4-a7ee-11eb-8243-0242ac140002',
    'Women Classic': '42c15405-e499-11ee-bd3f-00163e334dfa',
    'Mixed': 'fe9448f4-a7ee-11eb-8243-0242ac140002',
}


def ranking_system_id(ranking_type: str) -> Optional[str]:
    """Return the server's ranking system id for a ranking type, or None."""
    return RANKING_SYSTEMS.get(ranking_type)


def _modes(data: dict) -> dict[str, str]:
    return {k: data[k] for k in MODE_KEYS if data.get(k) is not None}


def _optional(**values) -> dict:
    return {k: v for k, v in values.items() if v is not None}


@dataclass
class Game:
    game_number: int
    players_a: list[int]
    players_b: list[int]
    result_a: int = 0
    result_b: int = 0
    result: str = 'NOT_YET_FINISHED'
    played: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    modes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> 'Game':
        return cls(
            game_number=data['gameNumber'],
            players_a=list(data['playersA']),
            players_b=list(data['playersB']),
            result_a=data.get('resultA', 0),
            result_b=data.get('resultB', 0),
            result=data.get('result', 'NOT_YET_FINISHED'),
            played=data.get('played', True),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            modes=_modes(data),
        )

    def to_json(self) -> dict:
        return {
            'gameNumber': self.game_number,
            'playersA': self.players_a,
            'playersB': self.players_b,
            'resultA': self.result_a,
            'resultB': self.result_b,
            'result': self.result,
            'played': self.played,
            **_optional(startTime=self.start_time, endTime=self.end_time),
            **self.modes,
        }


@dataclass
class Match:
    match_number: int
    rankings_a_unique_ranks: list[int]
    rankings_b_unique_ranks: list[int]
    games: list[Game] = field(default_factory=list)
    result_a: int = 0
    result_b: int = 0
    result: str = 'NOT_YET_FINISHED'
    played: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    modes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> 'Match':
        return cls(
            match_number=data['matchNumber'],
            rankings_a_unique_ranks=list(data['rankingsAUniqueRanks']),
            rankings_b_unique_ranks=list(data['rankingsBUniqueRanks']),
            games=[Game.from_json(g) for g in data.get('games', [])],
            result_a=data.get('resultA', 0),
            result_b=data.get('resultB', 0),
            result=data.get('result', 'NOT_YET_FINISHED'),
            played=data.get('played', True),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            modes=_modes(data),
        )

    def to_json(self) -> dict:
        return {
            'matchNumber': self.match_number,
            'rankingsAUniqueRanks': self.rankings_a_unique_ranks,
            'rankingsBUniqueRanks': self.rankings_b_unique_ranks,
            'resultA': self.result_a,
            'resultB': self.result_b,
            'result': self.result,
            'played': self.played,
            'games': [g.to_json() for g in self.games],
            **_optional(startTime=self.start_time, endTime=self.end_time),
            **self.modes,
        }


@dataclass
class Ranking:
    rank: int
    unique_rank: int
    team_start_numbers: list[int]
    name: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> 'Ranking':
        return cls(
            rank=data['rank'],
            unique_rank=data['uniqueRank'],
            team_start_numbers=list(data['teamStartNumbers']),
            name=data.get('name'),
        )

    def to_json(self) -> dict:
        return {
            'rank': self.rank,
            'uniqueRank': self.unique_rank,
            'teamStartNumbers': self.team_start_numbers,
            **_optional(name=self.name),
        }


@dataclass
class Phase:
    phase_number: int
    rankings: list[Ranking] = field(default_factory=list)
    matches: list[Match] = field(default_factory=list)
    next_phase_numbers: list[int] = field(default_factory=list)
    name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    modes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> 'Phase':
        return cls(
            phase_number=data['phaseNumber'],
            rankings=[Ranking.from_json(r) for r in data.get('rankings', [])],
            matches=[Match.from_json(m) for m in data.get('matches', [])],
            next_phase_numbers=list(data.get('nextPhaseNumbers', [])),
            name=data.get('name'),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            modes=_modes(data),
        )

    def to_json(self) -> dict:
        return {
            'phaseNumber': self.phase_number,
            'nextPhaseNumbers': self.next_phase_numbers,
            'rankings': [r.to_json() for r in self.rankings],
            'matches': [m.to_json() for m in self.matches],
            **_optional(name=self.name, startTime=self.start_time, endTime=self.end_time),
            **self.modes,
        }


@dataclass
class Team:
    rank: int
    start_number: int
    players: list[int]
    name: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict) -> 'Team':
        return cls(
            rank=data['rank'],
            start_number=data['startNumber'],
            players=list(data['players']),
            name=data.get('name'),
        )

    def to_json(self) -> dict:
        return {
            'rank': self.rank,
            'startNumber': self.start_number,
            'players': self.players,
            **_optional(name=self.name),
        }


@dataclass
class Competition:
    name: str
    teams: list[Team] = field(default_factory=list)
    phases: list[Phase] = field(default_factory=list)
    ranking_systems: list[str] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    modes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> 'Competition':
        systems = []
        for entry in data.get('rankingSystems', []):
            # Decoders may name the ranking type instead of the system id
            systems.append(ranking_system_id(entry) or entry)
        return cls(
            name=data['name'],
            teams=[Team.from_json(t) for t in data.get('teams', [])],
            phases=[Phase.from_json(p) for p in data.get('phases', [])],
            ranking_systems=systems,
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            modes=_modes(data),
        )

    def to_json(self) -> dict:
        return {
            'name': self.name,
            'teams': [t.to_json() for t in self.teams],
            'phases': [p.to_json() for p in self.phases],
            'rankingSystems': self.ranking_systems,
            **_optional(startTime=self.start_time, endTime=self.end_time),
            **self.modes,
        }


@dataclass
class Tournament:
    name: str
    user_identifier: str
    competitions: list[Competition] = field(default_factory=list)
    tournament_list_id: Optional[str] = None
    finished: Optional[bool] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    modes: dict[str, str] = field(default_factory=dict)
    # The server processes the upload as an asynchronous job
    is_async: bool = True

    @classmethod
    def from_json(cls, data: dict) -> 'Tournament':
        return cls(
            name=data['name'],
            user_identifier=data['userIdentifier'],
            competitions=[Competition.from_json(c) for c in data.get('competitions', [])],
            tournament_list_id=data.get('tournamentListId'),
            finished=data.get('finished'),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            modes=_modes(data),
        )

    def to_json(self) -> dict:
        return {
            'async': self.is_async,
            'name': self.name,
            'userIdentifier': self.user_identifier,
            'competitions': [c.to_json() for c in self.competitions],
            **_optional(
                tournamentListId=self.tournament_list_id,
                finished=self.finished,
                startTime=self.start_time,
                endTime=self.end_time,
            ),
            **self.modes,
        }


@dataclass
class TournamentInfo:
    """Decoded tournament plus its players keyed by temporary id."""

    tournament: Tournament
    player_infos: dict[int, PlayerInfo] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> 'TournamentInfo':
        infos = {}
        for raw in data.get('playerInfos', {}).values():
            info = PlayerInfo.from_json(raw)
            if info.tmp_id in infos:
                raise ValueError(f"Doppelte temporaere Spieler-ID {info.tmp_id}")
            infos[info.tmp_id] = info
        return cls(tournament=Tournament.from_json(data['tournament']), player_infos=infos)


def load_tournament_info(path: str | Path) -> TournamentInfo:
    """Read a decoded tournament from its JSON document.

    Args:
        path: Path to the JSON file written by the file decoder.

    Returns:
        The TournamentInfo.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is malformed.
    """
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Datei {path} ist kein gueltiges JSON: {exc}") from exc
    try:
        info = TournamentInfo.from_json(data)
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"Unvollstaendiges Turnier in {path}: {exc}") from exc

    log.info(
        "Turnier '%s' gelesen: %d Bewerbe, %d Spieler",
        info.tournament.name, len(info.tournament.competitions), len(info.player_infos),
    )
    return info
