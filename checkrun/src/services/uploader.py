"""
Upload static-analysis results (SARIF) to a results endpoint.
"""

import base64
import gzip
import logging
import os
from typing import Optional

import httpx

from checkrun.src.config import Settings, get_settings
from checkrun.src.services.command import CommandResult, LaunchError

logger = logging.getLogger(__name__)

def encode_sarif(content: bytes) -> str:
    """Gzip and base64-encode a SARIF document for upload."""
    return base64.b64encode(gzip.compress(content)).decode("ascii")

class ResultsUploader:
    def __init__(
        self,
        default_target: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.default_target = default_target if default_target is not None else settings.upload_url
        self.token = token if token is not None else settings.upload_token
        self.timeout = timeout or settings.upload_timeout
        self.transport = transport

    def _headers(self):
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def upload(
        self,
        path: str,
        target: Optional[str] = None,
        commit_sha: Optional[str] = None,
        ref: Optional[str] = None,
    ) -> CommandResult:
        """
        Upload a results file.
        A missing file or unreachable target raises LaunchError;
        a rejected upload is returned as a non-zero result.
        """
        target = target or self.default_target
        if not target:
            raise LaunchError("No upload target configured")

        if not os.path.isfile(path):
            raise LaunchError(f"Results file not found: {path}")

        try:
            with open(path, "rb") as f:
                sarif = encode_sarif(f.read())
        except OSError as e:
            raise LaunchError(f"Cannot read results file {path}: {e}") from e

        payload = {"sarif": sarif}
        if commit_sha:
            payload["commit_sha"] = commit_sha
        if ref:
            payload["ref"] = ref

        logger.info(f"Uploading {path} to {target}")

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(target, json=payload, headers=self._headers())
        except httpx.TransportError as e:
            raise LaunchError(f"Failed to reach upload target {target}: {e}") from e

        if response.is_success:
            return CommandResult(exit_code=0, stdout=response.text)

        logger.warning(f"Upload rejected with HTTP {response.status_code}")
        return CommandResult(
            exit_code=1,
            stderr=f"HTTP {response.status_code}: {response.text}",
        )
