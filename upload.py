"""tournament-upload – CLI-Tool zum Hochladen geparster Turniere in die Spielerdatenbank."""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from uploader.client import RegistryClient
from uploader.config import EnvironmentConfig
from uploader.errors import UploadError
from uploader.participation import find_competition, find_team
from uploader.pipeline import UploadManager
from uploader.reference import read_reference
from uploader.reporter import write_csv_report, write_html_report, print_summary
from uploader.tournament import load_tournament_info


def parse_not_played(value: str) -> tuple[str, int]:
    """Parse 'BEWERB:STARTNUMMER' into its parts."""
    name, sep, number = value.rpartition(':')
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"Erwartet BEWERB:STARTNUMMER, nicht '{value}'")
    try:
        return name, int(number)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Ungueltige Startnummer in '{value}'") from None


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Abgleich der Turnierspieler mit der Spielerdatenbank und Upload des Turniers.',
        prog='upload.py',
    )
    parser.add_argument(
        '--tournament', required=True, type=Path,
        help='Pfad zum geparsten Turnier (JSON)',
    )
    parser.add_argument(
        '--file', required=True, type=Path,
        help='Pfad zur Original-Turnierdatei',
    )
    parser.add_argument(
        '--extension', default='fast',
        help='Dateityp der Turnierdatei (Standard: fast)',
    )
    parser.add_argument(
        '--reference', type=Path,
        help='Pfad zur Referenz-CSV-Datei (ITSF-Spielerexport)',
    )
    parser.add_argument(
        '--not-played', action='append', default=[], type=parse_not_played,
        metavar='BEWERB:STARTNUMMER',
        help='Team hat im Bewerb nicht gespielt (mehrfach moeglich)',
    )
    parser.add_argument(
        '--login-as', metavar='BENUTZER',
        help='Als anderer Benutzer hochladen (ID oder E-Mail, nur fuer Admins)',
    )
    parser.add_argument(
        '--report', type=Path,
        help='Pfad fuer den Report (CSV)',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Zusaetzlich einen HTML-Report erzeugen',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Zusammenfassung auf stdout ausgeben',
    )
    return parser


def main() -> None:
    """Main entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    parser = build_parser()
    args = parser.parse_args()

    if args.html and not args.report:
        parser.error('--report ist erforderlich bei Verwendung von --html.')

    try:
        config = EnvironmentConfig.load()
    except ValueError as exc:
        parser.error(str(exc))
    if args.login_as:
        config = dataclasses.replace(config, login_as=args.login_as)

    info = load_tournament_info(args.tournament)
    for competition_name, start_number in args.not_played:
        try:
            find_team(find_competition(info.tournament, competition_name), start_number)
        except KeyError as exc:
            parser.error(exc.args[0])

    reference = read_reference(args.reference) if args.reference else None
    client = RegistryClient(config.server_url, token=config.token, timeout=config.request_timeout)
    manager = UploadManager(
        info, args.file, client,
        reference=reference,
        config=config,
        extension=args.extension,
        not_played=args.not_played,
    )

    try:
        result = manager.upload()
    except UploadError as exc:
        logging.error("Upload fehlgeschlagen: %s", exc)
        print(exc, file=sys.stderr)
        sys.exit(1)

    if args.report:
        write_csv_report(result, args.report)
        if args.html:
            write_html_report(result, args.report.with_suffix('.html'), info.tournament.name)

    if args.summary:
        print_summary(result, info.tournament.name)


if __name__ == '__main__':
    main()
