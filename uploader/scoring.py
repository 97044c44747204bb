"""Issue detection between a local player and its registry match."""

import unicodedata
from typing import Optional

from rapidfuzz.distance import JaroWinkler

from uploader import PlayerInfo, RegistryMatch

# Below these similarities a name difference is reported as a mismatch
LASTNAME_THRESHOLD = 0.85
FIRSTNAME_THRESHOLD = 0.80


def normalize_name(text: str) -> str:
    """Normalize a name for tolerant comparison.

    Removes accents/diacritics via NFD decomposition, strips spaces,
    hyphens, dots, commas and semicolons, then uppercases.

    Args:
        text: Raw name string.

    Returns:
        Normalized string for comparison.
    """
    decomposed = unicodedata.normalize('NFD', text)
    stripped = ''.join(ch for ch in decomposed if unicodedata.category(ch) != 'Mn')
    for ch in (' ', '-', '.', ',', ';'):
        stripped = stripped.replace(ch, '')
    return stripped.upper()


def name_similarity(a: str, b: str) -> float:
    """Jaro-Winkler similarity of two normalized names (0.0-1.0)."""
    norm_a = normalize_name(a)
    norm_b = normalize_name(b)
    if norm_a == norm_b:
        return 1.0
    return JaroWinkler.similarity(norm_a, norm_b)


def _split_date(value: str) -> Optional[tuple[str, str, str]]:
    parts = value.split('-')
    if len(parts) != 3:
        return None
    return parts[0], parts[1], parts[2][:2]


def is_day_month_swapped(local: str, registry: str) -> bool:
    """Check if day and month are swapped between two ISO birthdays.

    Only flags a swap when day != month (otherwise swapping is a no-op).
    """
    a = _split_date(local)
    b = _split_date(registry)
    if a is None or b is None:
        return False
    return a[0] == b[0] and a[1] == b[2] and a[2] == b[1] and a[1] != a[2]


def detect_license_issues(local: PlayerInfo, match: RegistryMatch) -> list[str]:
    """Classify a license number difference.

    Returns:
        ['LICENSE_UPDATED'] for a genuine change, ['LICENSE_MERGED'] when a
        prior registry merge already absorbed the local number, else [].
    """
    number = local.itsf_license_number
    if number is None or number == match.itsf_license_number:
        return []
    if match.already_absorbed(number):
        return ['LICENSE_MERGED']
    return ['LICENSE_UPDATED']


def detect_issues(local: PlayerInfo, match: RegistryMatch) -> list[str]:
    """Detect all differences between a local player and its registry match.

    The codes are informational; they never change how a player is resolved.

    Args:
        local: Player from the parsed tournament.
        match: The unique registry candidate.

    Returns:
        List of issue codes.
    """
    issues = detect_license_issues(local, match)

    if local.first_name is not None and local.last_name is not None:
        ln_sim = name_similarity(local.last_name, match.last_name or '')
        fn_sim = name_similarity(local.first_name, match.first_name or '')
        swapped = (
            name_similarity(local.last_name, match.first_name or '') == 1.0
            and name_similarity(local.first_name, match.last_name or '') == 1.0
        )
        if ln_sim < 1.0 and fn_sim < 1.0 and swapped:
            issues.append('NAME_SWAPPED')
        elif ln_sim < LASTNAME_THRESHOLD or fn_sim < FIRSTNAME_THRESHOLD:
            issues.append('NAME_MISMATCH')
        else:
            if ln_sim < 1.0:
                issues.append('LASTNAME_FUZZY')
            if fn_sim < 1.0:
                issues.append('FIRSTNAME_FUZZY')

    if local.birthday is not None and match.birthday is not None \
            and local.birthday[:10] != match.birthday[:10]:
        if is_day_month_swapped(local.birthday, match.birthday):
            issues.append('DAY_MONTH_SWAPPED')
        else:
            issues.append('BIRTHDAY_MISMATCH')

    return issues
