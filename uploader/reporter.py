"""Report generation for upload results (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from uploader.pipeline import UploadResult

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [
    'Tmp_ID',
    'First_Name',
    'Last_Name',
    'Birthday',
    'License',
    'Registry_ID',
    'Registry_Name',
    'Status',
    'Issues',
]


def _status(result: UploadResult, tmp_id: int) -> str:
    if tmp_id in result.created:
        return 'CREATED'
    if tmp_id in result.updated:
        return 'UPDATED'
    return 'FOUND'


def _rows(result: UploadResult) -> list[dict]:
    rows = []
    for player in result.players:
        registry_id = result.id_map.get(player.tmp_id)
        issues = result.issues.get(player.tmp_id, [])
        rows.append({
            'Tmp_ID': str(player.tmp_id),
            'First_Name': player.first_name or '',
            'Last_Name': player.last_name or '',
            'Birthday': player.birthday or '',
            'License': str(player.itsf_license_number) if player.itsf_license_number is not None else '',
            'Registry_ID': str(registry_id) if registry_id is not None else '',
            'Registry_Name': result.name_map.get(registry_id, '') if registry_id is not None else '',
            'Status': _status(result, player.tmp_id),
            'Issues': ', '.join(issues),
            '_issues': set(issues),
        })
    return rows


def write_csv_report(result: UploadResult, output_path: Path) -> None:
    """Write the player resolution as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) and semicolon delimiter for
    compatibility with German Excel.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    rows = _rows(result)
    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(
            f, fieldnames=CSV_COLUMNS, delimiter=';', extrasaction='ignore',
        )
        writer.writeheader()
        writer.writerows(rows)

    log.info("CSV-Report geschrieben: %s (%d Zeilen)", output_path, len(rows))


def write_html_report(result: UploadResult, output_path: Path, tournament_name: str = '') -> None:
    """Write the player resolution as an HTML report using Jinja2."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    html = template.render(
        tournament_name=tournament_name,
        outcome=result.outcome,
        rows=_rows(result),
        stats=compute_stats(result),
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML-Report geschrieben: %s", output_path)


def compute_stats(result: UploadResult) -> dict:
    """Compute summary statistics of an upload."""
    statuses = [_status(result, p.tmp_id) for p in result.players]
    all_issues = [code for codes in result.issues.values() for code in codes]
    return {
        'total': len(result.players),
        'found': statuses.count('FOUND'),
        'created': statuses.count('CREATED'),
        'updated': statuses.count('UPDATED'),
        'with_issues': sum(1 for codes in result.issues.values() if codes),
        'license_merged': all_issues.count('LICENSE_MERGED'),
        'name_mismatch': all_issues.count('NAME_MISMATCH'),
        'birthday_mismatch': all_issues.count('BIRTHDAY_MISMATCH'),
    }


def print_summary(result: UploadResult, tournament_name: str = '') -> None:
    """Print a summary of the upload to stdout."""
    stats = compute_stats(result)
    outcome = 'neu angelegt' if result.outcome == 'create' else 'ersetzt'

    print(f"\n=== Upload: {tournament_name} ({outcome}) ===")
    print(f"Spieler gesamt:            {stats['total']:>5}")
    print(f"In Datenbank gefunden:     {stats['found']:>5}")
    print(f"Neu angelegt:              {stats['created']:>5}")
    print(f"Lizenz aktualisiert:       {stats['updated']:>5}")
    print("---")
    print(f"Mit Abweichungen:          {stats['with_issues']:>5}")
    print(f"  - Lizenz zusammengefuehrt: {stats['license_merged']:>3}")
    print(f"  - Name abweichend:       {stats['name_mismatch']:>5}")
    print(f"  - Geburtstag abweichend: {stats['birthday_mismatch']:>5}")
    if result.not_played:
        print("---")
        print("Als nicht gespielt markiert:")
        for line in result.not_played:
            print(f"  - {line}")
    print()
