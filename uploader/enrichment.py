"""Fill in missing player names from the reference database."""

import logging
from collections import defaultdict

from uploader import PlayerInfo
from uploader.errors import EnrichmentFailure
from uploader.reference import ReferenceDatabase

log = logging.getLogger(__name__)


def license_numbers(players: list[PlayerInfo]) -> str:
    """List license numbers, or '#tmp_id' for players without one."""
    return ', '.join(
        str(p.itsf_license_number) if p.itsf_license_number is not None else f'#{p.tmp_id}'
        for p in players
    )


def enrich(without_name: list[PlayerInfo], reference: ReferenceDatabase) -> None:
    """Complete name and birthday of players in place, matched by license number.

    Several local players may carry the same license number; all of them
    receive the reference data. Fields the reference does not know keep
    their current value.

    Args:
        without_name: Players lacking first name, last name or birthday.
        reference: The reference database to consult.

    Raises:
        EnrichmentFailure: If any player is still missing name data afterwards.
    """
    by_license: dict[int, list[PlayerInfo]] = defaultdict(list)
    for player in without_name:
        if player.itsf_license_number is not None:
            by_license[player.itsf_license_number].append(player)

    found = reference.lookup_by_license(list(by_license)) if by_license else {}

    for license_number, person in found.items():
        for player in by_license.get(license_number, []):
            if person.first_name is not None:
                player.first_name = person.first_name
            if person.last_name is not None:
                player.last_name = person.last_name
            if person.birthday is not None:
                player.set_birthday(person.birthday)

    not_found = [p for p in without_name if not p.has_name]
    if not_found:
        raise EnrichmentFailure(
            f'Players not found in reference database: {license_numbers(not_found)}'
        )

    log.info("%d Spieler aus der Referenz ergaenzt", len(without_name))
