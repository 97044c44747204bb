"""Publishing the remapped tournament and tracking the server-side job."""

import enum
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from uploader.client import RegistryClient
from uploader.errors import PublishFailure, UploadError
from uploader.tournament import Tournament

log = logging.getLogger(__name__)

# Job status codes below TERMINAL_STATUS are still running
PROCESSING_STATUS = 2
TERMINAL_STATUS = 3

SUCCESS_KINDS = ('create', 'replace')
PUBLISH_FAILED_MESSAGE = 'An error occurred when trying to upload the tournament!'

OUTCOME_MESSAGES = {
    'create': 'Successfully created the tournament in the database!',
    'replace': 'Replaced the tournament in the database!',
}


class PublishState(enum.Enum):
    IDLE = 'Idle'
    FILE_UPLOADED = 'FileUploaded'
    TOURNAMENT_SUBMITTED = 'TournamentSubmitted'
    POLLING = 'Polling'
    SUCCEEDED = 'Succeeded'
    FAILED = 'Failed'


@dataclass
class AsyncJob:
    """Snapshot of a remote long-running operation."""

    async_id: str
    status: int
    progress: Optional[float] = None
    result_kind: Optional[str] = None
    result_data: Optional[dict] = None

    @property
    def is_terminal(self) -> bool:
        return self.status >= TERMINAL_STATUS

    @property
    def percent(self) -> Optional[int]:
        """Rounded progress, only reported while processing."""
        if self.status != PROCESSING_STATUS or self.progress is None:
            return None
        return round(self.progress * 100)

    @classmethod
    def from_json(cls, async_id: str, data: dict) -> 'AsyncJob':
        result = data.get('result')
        payload = result.get('data') if isinstance(result, dict) else None
        kind = payload.get('type') if isinstance(payload, dict) else None
        progress = data.get('progress')
        return cls(
            async_id=async_id,
            status=int(data['type']),
            progress=float(progress) if progress is not None else None,
            result_kind=kind,
            result_data=payload if isinstance(payload, dict) else None,
        )


class Publisher:
    """Uploads the source file, submits the tournament and polls the job.

    Idle -> FileUploaded -> TournamentSubmitted -> Polling -> Succeeded/Failed.
    """

    def __init__(
        self,
        client: RegistryClient,
        poll_interval: float = 1.0,
        poll_timeout: Optional[float] = None,
        on_progress: Optional[Callable[[str], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.on_progress = on_progress
        self.sleep = sleep
        self.clock = clock
        self.state = PublishState.IDLE
        self.history: list[PublishState] = [PublishState.IDLE]

    def _transition(self, state: PublishState) -> None:
        log.debug("Veroeffentlichung: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _progress(self, message: str) -> None:
        log.info(message)
        if self.on_progress is not None:
            self.on_progress(message)

    def upload_file(self, path: str | Path, user_identifier: str, extension: str) -> None:
        self._progress('Uploading tournament file ...')
        if self.client.upload_file(path, user_identifier, extension) is not True:
            raise PublishFailure('Unsuccessful request: uploadFile')
        self._transition(PublishState.FILE_UPLOADED)

    def submit(self, tournament: Tournament) -> str:
        self._progress('Uploading tournament to the database ...')
        async_id = self.client.create_or_replace_tournament(tournament)
        self._transition(PublishState.TOURNAMENT_SUBMITTED)
        return async_id

    def wait_for_result(self, async_id: str) -> AsyncJob:
        """Poll the job until it reaches a terminal status.

        Raises:
            PublishFailure: If the poll timeout expires first.
            ApiError: If a poll request fails; it is not retried.
        """
        self._transition(PublishState.POLLING)
        started = self.clock()
        while True:
            state = self.client.get_async_request_state(async_id)
            try:
                job = AsyncJob.from_json(async_id, state)
            except (KeyError, TypeError, ValueError) as exc:
                raise PublishFailure(PUBLISH_FAILED_MESSAGE) from exc
            if job.is_terminal:
                return job
            if job.percent is not None:
                self._progress(f'{job.percent}% done')
            if self.poll_timeout is not None and self.clock() - started >= self.poll_timeout:
                raise PublishFailure(
                    f'Tournament job {async_id} did not finish within {self.poll_timeout:g} seconds'
                )
            self.sleep(self.poll_interval)

    def publish(self, tournament: Tournament, path: str | Path, extension: str = 'fast') -> str:
        """Run the whole publish sequence.

        Args:
            tournament: Fully remapped tournament.
            path: Source file, bound to the tournament's user identifier.
            extension: Source file type as understood by the server.

        Returns:
            'create' or 'replace'.

        Raises:
            PublishFailure: If the job ends without a recognized success kind.
            ApiError: On any failing remote call.
        """
        try:
            self.upload_file(path, tournament.user_identifier, extension)
            async_id = self.submit(tournament)
            job = self.wait_for_result(async_id)
            if job.result_kind not in SUCCESS_KINDS:
                log.error("Job %s endete mit Status %d ohne Ergebnis %r",
                          async_id, job.status, job.result_kind)
                raise PublishFailure(PUBLISH_FAILED_MESSAGE)
        except UploadError:
            self._transition(PublishState.FAILED)
            raise

        self._progress('100% done')
        self._progress(OUTCOME_MESSAGES[job.result_kind])
        self._transition(PublishState.SUCCEEDED)
        return job.result_kind
