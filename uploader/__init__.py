"""Core module for tournament-upload: player records and resolution results."""

from dataclasses import dataclass, field
from typing import Optional

# Year the vendor software writes for unknown birthdays
BIRTHDAY_SENTINEL_YEAR = '1900'
BIRTHDAY_REPLACEMENT_YEAR = '1902'


def normalize_birthday(birthday: Optional[str]) -> Optional[str]:
    """Shift the placeholder year 1900 forward to 1902, keeping month and day."""
    if birthday is not None and birthday[:4] == BIRTHDAY_SENTINEL_YEAR:
        return BIRTHDAY_REPLACEMENT_YEAR + birthday[4:]
    return birthday


def _describe(first_name: Optional[str], last_name: Optional[str],
              license_number: Optional[int]) -> str:
    res = ''
    if first_name is not None and last_name is not None:
        res = f'{first_name} {last_name}'
    if license_number is not None:
        res += f'({license_number})' if res else str(license_number)
    return res


@dataclass
class PlayerInfo:
    """A participant of the parsed tournament before registry reconciliation."""

    tmp_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[str] = None           # YYYY-MM-DD
    itsf_license_number: Optional[int] = None

    def __post_init__(self):
        self.birthday = normalize_birthday(self.birthday)

    def set_birthday(self, birthday: Optional[str]) -> None:
        self.birthday = normalize_birthday(birthday)

    @property
    def has_name(self) -> bool:
        """True if the record carries enough data to create a registry entry."""
        return (
            self.first_name is not None
            and self.last_name is not None
            and self.birthday is not None
        )

    def display(self) -> str:
        return _describe(self.first_name, self.last_name, self.itsf_license_number)

    def to_json(self) -> dict:
        return {
            'tmpId': self.tmp_id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'birthday': self.birthday,
            'itsfLicenseNumber': self.itsf_license_number,
        }

    @classmethod
    def from_json(cls, data: dict) -> 'PlayerInfo':
        return cls(
            tmp_id=int(data['tmpId']),
            first_name=data.get('firstName'),
            last_name=data.get('lastName'),
            birthday=data.get('birthday'),
            itsf_license_number=data.get('itsfLicenseNumber'),
        )


@dataclass
class RegistryMatch:
    """A player already stored in the remote registry."""

    id: int
    first_name: str
    last_name: str
    birthday: Optional[str] = None
    itsf_license_number: Optional[int] = None
    # License numbers of records merged into this one
    absorbed_license_numbers: set[int] = field(default_factory=set)

    def already_absorbed(self, license_number: int) -> bool:
        """Check whether a license number was taken over by a prior merge."""
        return license_number in self.absorbed_license_numbers

    @property
    def display_name(self) -> str:
        return f'{self.first_name} {self.last_name}'

    def to_update_payload(self, tmp_id: int) -> dict:
        """Build the updatePlayers record carrying both ids."""
        return {
            'id': self.id,
            'tmpId': tmp_id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'birthday': self.birthday,
            'itsfLicenseNumber': self.itsf_license_number,
        }

    @classmethod
    def from_json(cls, data: dict) -> 'RegistryMatch':
        return cls(
            id=int(data['id']),
            first_name=data.get('firstName'),
            last_name=data.get('lastName'),
            birthday=data.get('birthday'),
            itsf_license_number=data.get('itsfLicenseNumber'),
            absorbed_license_numbers=set(data.get('itsfLicenseNumbersBeforeMerge') or []),
        )


@dataclass
class ReferencePerson:
    """Name data from the reference database; None means unknown."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    birthday: Optional[str] = None


@dataclass
class PlayerUpdate:
    """A registry record whose license number gets corrected."""

    match: RegistryMatch
    tmp_id: int

    def to_json(self) -> dict:
        return self.match.to_update_payload(self.tmp_id)


@dataclass
class ResolutionResult:
    """Classified output of one resolver pass."""

    to_update: list[PlayerUpdate] = field(default_factory=list)
    id_map: dict[int, int] = field(default_factory=dict)            # tmp id -> registry id
    new_players: list[PlayerInfo] = field(default_factory=list)
    new_players_without_name: list[PlayerInfo] = field(default_factory=list)
    name_map: dict[int, str] = field(default_factory=dict)          # registry id -> display name
    issues: dict[int, list[str]] = field(default_factory=dict)      # tmp id -> issue codes

    def merge(self, other: 'ResolutionResult') -> None:
        """Fold a second-pass result into this one, consuming the unnamed list."""
        self.to_update.extend(other.to_update)
        self.id_map.update(other.id_map)
        self.new_players.extend(other.new_players)
        self.name_map.update(other.name_map)
        self.issues.update(other.issues)
        self.new_players_without_name = list(other.new_players_without_name)
