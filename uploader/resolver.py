"""Classification of local players against registry search results."""

import dataclasses
import logging

from uploader import PlayerInfo, PlayerUpdate, RegistryMatch, ResolutionResult
from uploader.errors import AmbiguousIdentityError, LicenseConflictError
from uploader.scoring import detect_issues

log = logging.getLogger(__name__)


def _candidates(search_results: dict[int, dict[int, RegistryMatch]], index: int) -> list[RegistryMatch]:
    return list(search_results.get(index, {}).values())


def _needs_license_update(local: PlayerInfo, match: RegistryMatch) -> bool:
    number = local.itsf_license_number
    return (
        number is not None
        and number != match.itsf_license_number
        and not match.already_absorbed(number)
    )


def _check_preconditions(
    inputs: list[PlayerInfo],
    search_results: dict[int, dict[int, RegistryMatch]],
    license_policy: str,
) -> None:
    """Reject the whole batch before anything is classified."""
    ambiguous: list[str] = []
    conflicts: list[str] = []
    for index, local in enumerate(inputs):
        found = _candidates(search_results, index)
        if len(found) > 1:
            ambiguous.append(local.display())
        elif len(found) == 1 and license_policy == 'strict':
            match = found[0]
            if match.itsf_license_number is not None and _needs_license_update(local, match):
                conflicts.append(f'{local.display()} != {match.itsf_license_number}')

    if ambiguous:
        raise AmbiguousIdentityError(ambiguous)
    if conflicts:
        raise LicenseConflictError(conflicts)


def resolve(
    inputs: list[PlayerInfo],
    search_results: dict[int, dict[int, RegistryMatch]],
    license_policy: str = 'update',
) -> ResolutionResult:
    """Classify every local player by its registry candidates.

    Each input ends up in exactly one of: the id map (unique match), the
    new players (no match, complete data) or the players without name
    (no match, incomplete data). A unique match whose license number
    differs from the local one queues a license update, unless a prior
    registry merge already absorbed the local number.

    Args:
        inputs: Local players in the order they were searched.
        search_results: Search index -> registry id -> candidate.
        license_policy: 'update' adopts differing local license numbers,
            'strict' rejects them when the registry already has one.

    Returns:
        The ResolutionResult of this pass.

    Raises:
        AmbiguousIdentityError: If any player has more than one candidate.
        LicenseConflictError: Under the strict policy, on a license conflict.
    """
    _check_preconditions(inputs, search_results, license_policy)

    result = ResolutionResult()
    for index, local in enumerate(inputs):
        found = _candidates(search_results, index)

        if not found:
            if local.has_name:
                result.new_players.append(local)
            else:
                result.new_players_without_name.append(local)
            continue

        match = found[0]
        issues = detect_issues(local, match)
        if _needs_license_update(local, match):
            corrected = dataclasses.replace(match, itsf_license_number=local.itsf_license_number)
            result.to_update.append(PlayerUpdate(match=corrected, tmp_id=local.tmp_id))
            log.info(
                "Lizenznummer von %s wird aktualisiert: %s -> %s",
                match.display_name, match.itsf_license_number, local.itsf_license_number,
            )
        if issues:
            result.issues[local.tmp_id] = issues
            log.warning("Abweichungen fuer %s: %s", local.display(), ', '.join(issues))

        result.id_map[local.tmp_id] = match.id
        result.name_map[match.id] = match.display_name

    log.info(
        "Aufloesung abgeschlossen: %d gefunden, %d neu, %d ohne Namen, %d zu aktualisieren",
        len(result.id_map), len(result.new_players),
        len(result.new_players_without_name), len(result.to_update),
    )
    return result
