"""Commit resolver output to the remote registry."""

import logging

from uploader import ResolutionResult
from uploader.client import RegistryClient
from uploader.errors import RegistryMutationFailure

log = logging.getLogger(__name__)


def create_players(client: RegistryClient, result: ResolutionResult) -> list[int]:
    """Add the new players and merge their registry ids into the result.

    Every returned record must name the temporary id it was created for,
    and every requested player must come back.

    Args:
        client: Registry client.
        result: Resolution result; its new players are consumed.

    Returns:
        Registry ids of the created players, in request order.

    Raises:
        RegistryMutationFailure: If the response does not cover the request.
    """
    created = client.add_players(result.new_players)
    for record in created or []:
        if record.get('tmpId') is None:
            raise RegistryMutationFailure('addPlayers returned without tmpIds')
        if record.get('id') is None:
            raise RegistryMutationFailure(f"addPlayers returned no id for tmpId {record['tmpId']}")
        result.id_map[int(record['tmpId'])] = int(record['id'])

    ids: list[int] = []
    for player in result.new_players:
        if player.tmp_id not in result.id_map:
            raise RegistryMutationFailure(
                f'player {player.display()} was not added to the database'
            )
        registry_id = result.id_map[player.tmp_id]
        result.name_map[registry_id] = f'{player.first_name} {player.last_name}'
        ids.append(registry_id)

    log.info("%d Spieler in der Datenbank angelegt", len(ids))
    result.new_players = []
    return ids


def update_players(client: RegistryClient, result: ResolutionResult) -> bool:
    """Send the queued license corrections.

    Raises:
        RegistryMutationFailure: If the server answers with anything but true.
    """
    if client.update_players(result.to_update) is not True:
        raise RegistryMutationFailure('Update players in the database was unsuccessful!')
    log.info("%d Spieler in der Datenbank aktualisiert", len(result.to_update))
    result.to_update = []
    return True
