"""Reference player database used to fill in missing names by license number."""

import csv
import io
import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Protocol

from uploader import ReferencePerson

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

REQUIRED_COLUMNS = {'Extern ID', 'Last Name', 'First Name', 'DoB', 'MoB', 'YoB'}


class ReferenceDatabase(Protocol):
    """Anything that can look up name data for license numbers."""

    def lookup_by_license(self, license_numbers: Iterable[int]) -> dict[int, ReferencePerson]:
        ...


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs into single spaces and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def _int_or_zero(value: str) -> int:
    return int(value) if value else 0


def _birthday(day: int, month: int, year: int) -> Optional[str]:
    if not (day and month and year):
        return None
    return f'{year:04d}-{month:02d}-{day:02d}'


class CsvReferenceDatabase:
    """Reference database backed by a tab-separated ITSF player export.

    Several export rows may share a license number; the last one wins.
    """

    def __init__(self, people: dict[int, ReferencePerson]):
        self.people = people

    def __len__(self) -> int:
        return len(self.people)

    def lookup_by_license(self, license_numbers: Iterable[int]) -> dict[int, ReferencePerson]:
        wanted = set(license_numbers)
        found = {n: self.people[n] for n in wanted if n in self.people}
        log.info("%d von %d Lizenznummern in der Referenz gefunden", len(found), len(wanted))
        return found


def read_reference(path: str | Path) -> CsvReferenceDatabase:
    """Read the reference export.

    Handles UTF-16LE (with BOM) and UTF-8 encoded files automatically.
    Fields are trimmed and whitespace-normalized; empty names stay unknown.

    Args:
        path: Path to the CSV file.

    Returns:
        CsvReferenceDatabase keyed by license number.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    encoding = detect_encoding(path)

    with open(path, 'r', encoding=encoding) as f:
        content = f.read()

    content = content.lstrip('\ufeff')

    reader = csv.DictReader(io.StringIO(content), delimiter='\t')

    if reader.fieldnames is None:
        raise ValueError(f"Datei {path} ist leer oder hat keine Header-Zeile.")
    actual_cols = {normalize_whitespace(c) for c in reader.fieldnames}
    missing = REQUIRED_COLUMNS - actual_cols
    if missing:
        raise ValueError(
            f"Fehlende Spalten in {path}: {', '.join(sorted(missing))}"
        )

    people: dict[int, ReferencePerson] = {}
    for row_num, row in enumerate(reader, start=2):
        cleaned = {normalize_whitespace(k): normalize_whitespace(v or '')
                   for k, v in row.items() if k is not None}
        try:
            license_number = int(cleaned['Extern ID'])
            people[license_number] = ReferencePerson(
                first_name=cleaned.get('First Name') or None,
                last_name=cleaned.get('Last Name') or None,
                birthday=_birthday(
                    _int_or_zero(cleaned.get('DoB', '')),
                    _int_or_zero(cleaned.get('MoB', '')),
                    _int_or_zero(cleaned.get('YoB', '')),
                ),
            )
        except (ValueError, KeyError) as exc:
            log.warning("Zeile %d in %s uebersprungen: %s", row_num, path, exc)

    log.info("%d Referenzspieler gelesen aus %s", len(people), path)
    return CsvReferenceDatabase(people)
