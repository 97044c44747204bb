"""Thin client for the remote player registry and tournament store."""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import requests

from uploader import PlayerInfo, PlayerUpdate, RegistryMatch
from uploader.errors import ApiError, LoginError
from uploader.tournament import Tournament

log = logging.getLogger(__name__)

TOKEN_HEADER = 'jwt-token'
JSON_CONTENT_TYPE = 'application/json; charset=utf-8'

# index of the searched player -> registry id -> candidate
SearchResults = dict[int, dict[int, RegistryMatch]]


def _error_message(response: requests.Response) -> Optional[str]:
    """Extract the validation message the server sends with HTTP 422."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get('status') == 422 and 'message' in body:
        return str(body['message'])
    return None


def _entries(value: Any, key: Optional[str] = None) -> list[tuple[Any, Any]]:
    """Key/value pairs of a JSON map the server may have encoded as a list.

    Empty or densely indexed maps arrive as arrays; those are keyed by
    position, or by the given field of each element.
    """
    if not value:
        return []
    if isinstance(value, list):
        if key is not None:
            return [(item[key], item) for item in value]
        return list(enumerate(value))
    return list(value.items())


class RegistryClient:
    """Issues named remote operations; one call either completes or fails."""

    def __init__(
        self,
        server_url: str,
        token: Optional[str] = None,
        timeout: float = 3600.0,
        session: Optional[requests.Session] = None,
    ):
        self.server_url = server_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()
        self.user_id: Optional[str] = None

    def _headers(self, json_body: bool = True) -> dict[str, str]:
        headers = {'Accept': 'application/json'}
        if json_body:
            headers['Content-Type'] = JSON_CONTENT_TYPE
        if self.token:
            headers['Authorization'] = 'bearer ' + self.token
        return headers

    def _send(self, command: str, method: str = 'POST', payload: Any = None,
              files: Optional[dict] = None, form: Optional[dict] = None) -> requests.Response:
        url = f'{self.server_url}/{command}'
        if files is not None:
            # requests sets the multipart content type itself
            headers = self._headers(json_body=False)
            body = form
        else:
            headers = self._headers()
            body = json.dumps(payload) if payload is not None else None
        try:
            response = self.session.request(
                method, url, data=body, files=files, headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.error("Anfrage %s %s fehlgeschlagen: %s", method, url, exc)
            raise ApiError('Unknown Error') from exc

        if not response.ok:
            message = _error_message(response)
            log.error("Anfrage %s %s: HTTP %d", method, url, response.status_code)
            raise ApiError(message or 'Unknown Error', response.status_code)
        return response

    def request(self, command: str, payload: Any = None, method: str = 'POST',
                files: Optional[dict] = None, form: Optional[dict] = None) -> Any:
        """Send one request and return the decoded JSON response.

        Args:
            command: Path of the operation below the server url.
            payload: JSON-serializable body, or None.
            method: HTTP method.

        Returns:
            The decoded response body.

        Raises:
            ApiError: On transport failures, non-2xx answers or undecodable bodies.
        """
        response = self._send(command, method, payload, files=files, form=form)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError('Unknown Error', response.status_code) from exc

    # Authentication

    def login(self, email: str, password: str) -> str:
        """Log in and keep the returned bearer token."""
        try:
            response = self._send('login', 'POST', {'email': email, 'password': password})
        except ApiError as exc:
            if exc.status_code == 401:
                raise LoginError('Wrong Login Credentials', 401) from exc
            raise
        token = response.headers.get(TOKEN_HEADER)
        if not token:
            raise LoginError('Login response did not contain a token', response.status_code)
        self.token = token
        try:
            self.user_id = response.json().get('id')
        except ValueError:
            self.user_id = None
        log.info("Angemeldet als %s", email)
        return token

    def is_admin(self) -> bool:
        return bool(self.request('isAdmin', method='GET').get('isAdmin'))

    def list_users(self) -> list[dict]:
        return self.request('admin/users', method='GET')

    def login_as(self, user_id: str) -> str:
        """Switch to another user's token (admins only)."""
        if user_id == self.user_id:
            return self.token
        response = self._send('admin/loginAs', 'POST', {'userId': user_id})
        token = response.headers.get(TOKEN_HEADER)
        if not token:
            raise LoginError('loginAs response did not contain a token', response.status_code)
        self.token = token
        self.user_id = user_id
        log.info("Angemeldet als Benutzer %s", user_id)
        return token

    # Registry

    def search_players(self, players: list[PlayerInfo]) -> SearchResults:
        raw = self.request('searchPlayers', [p.to_json() for p in players])
        results: SearchResults = {}
        # JSON object keys arrive as strings
        for index, candidates in _entries(raw):
            results[int(index)] = {
                int(pid): RegistryMatch.from_json(data) for pid, data in _entries(candidates, key='id')
            }
        return results

    def add_players(self, players: list[PlayerInfo]) -> list[dict]:
        return self.request('addPlayers', [p.to_json() for p in players])

    def update_players(self, updates: list[PlayerUpdate]) -> bool:
        return self.request('updatePlayers', [u.to_json() for u in updates])

    # Tournament store

    def upload_file(self, path: str | Path, user_identifier: str, extension: str) -> bool:
        path = Path(path)
        with open(path, 'rb') as f:
            return self.request(
                'uploadFile',
                files={'tournamentFile': (path.name, f)},
                form={'userIdentifier': user_identifier, 'extension': extension},
            )

    def create_or_replace_tournament(self, tournament: Tournament) -> str:
        """Submit the tournament and return the id of the asynchronous job."""
        response = self.request('createOrReplaceTournament', tournament.to_json())
        try:
            return str(response['async-id'])
        except (KeyError, TypeError) as exc:
            raise ApiError('Unknown Error') from exc

    def get_async_request_state(self, async_id: str) -> dict:
        return self.request(f'getAsyncRequestState/{async_id}', method='GET')
