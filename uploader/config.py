"""Environment configuration for the uploader."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

LICENSE_POLICIES = ('update', 'strict')


@dataclass(frozen=True)
class UploadConfig:
    server_url: str
    email: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    request_timeout: float = 3600.0
    poll_interval: float = 1.0
    poll_timeout: Optional[float] = 3600.0    # None: poll until the job ends
    license_policy: str = 'update'
    login_as: Optional[str] = None            # user id or email, admins only

    @property
    def has_credentials(self) -> bool:
        return bool(self.email and self.password)


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative.")
    return value


class EnvironmentConfig:
    """Loads and validates the upload configuration from the environment."""

    @staticmethod
    def load() -> UploadConfig:
        load_dotenv(find_dotenv(usecwd=True))

        server_url = os.getenv("UPLOAD_SERVER_URL")
        if not server_url:
            raise ValueError("UPLOAD_SERVER_URL must be set in the environment variables.")

        email = os.getenv("UPLOAD_LOGIN_EMAIL") or None
        password = os.getenv("UPLOAD_LOGIN_PASSWORD") or None
        if bool(email) != bool(password):
            raise ValueError("UPLOAD_LOGIN_EMAIL and UPLOAD_LOGIN_PASSWORD must be set together.")

        policy = os.getenv("UPLOAD_LICENSE_POLICY", "update").strip().lower()
        if policy not in LICENSE_POLICIES:
            raise ValueError(
                f"UPLOAD_LICENSE_POLICY must be one of {', '.join(LICENSE_POLICIES)}."
            )

        poll_timeout = _read_float("UPLOAD_POLL_TIMEOUT", 3600.0)

        return UploadConfig(
            server_url=server_url.rstrip('/'),
            email=email,
            password=password,
            token=os.getenv("UPLOAD_TOKEN") or None,
            request_timeout=_read_float("UPLOAD_REQUEST_TIMEOUT", 3600.0),
            poll_interval=_read_float("UPLOAD_POLL_INTERVAL", 1.0),
            poll_timeout=poll_timeout or None,
            license_policy=policy,
            login_as=os.getenv("UPLOAD_LOGIN_AS") or None,
        )
