"""HTTP calls against the target system."""

from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .auth import AuthHeaderProvider
from .convert import encode_payload, resolve_content_type
from .endpoints import render_endpoint
from .errors import ConfigurationError, RemoteRejection, TransportError
from .logging_config import get_logger
from .models import Job, TargetConfig

logger = get_logger("jobrelay.gateway")


def build_session(repetitions: int = 0) -> requests.Session:
    """Session that retries connection failures ``repetitions`` times per call."""
    session = requests.Session()
    if repetitions:
        retry = Retry(total=repetitions, connect=repetitions, read=0, backoff_factor=0)
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
    return session


class ExternalGateway:
    """Performs the writable check, the write and the revision lookup."""

    def __init__(
        self,
        target: TargetConfig,
        auth: Optional[AuthHeaderProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        if not target.base_url:
            raise ConfigurationError("target base_url is not configured")
        self.target = target
        self.auth = auth
        self.session = session or build_session(target.repetitions)

    def _url(self, template: str, job: Job) -> str:
        return self.target.base_url + render_endpoint(template, job)

    def _headers(self, content_type: str) -> Dict[str, str]:
        headers = {
            "Content-Type": content_type,
            "User-Agent": self.target.user_agent,
        }
        if self.auth is not None:
            # AuthError propagates and fails this attempt
            headers["Authorization"] = self.auth.get_auth_header()
        return headers

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(method, url, timeout=self.target.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    def check_writable(self, job: Job) -> bool:
        """Ask whether the job's object accepts writes.

        200 means writable. 404 and every other status mean "not now" and
        are not errors; only transport and auth failures raise.
        """
        url = self._url(self.target.endpoints.check, job)
        response = self._request("GET", url, headers=self._headers("application/json"))

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            logger.warning("Target object not found", uid=job.uid, url=url)
            return False
        logger.debug("Object not writable", uid=job.uid, status=response.status_code, body=response.text)
        return False

    def write_data(self, job: Job) -> None:
        """PUT the job's payload; raises RemoteRejection on any non-2xx status."""
        template = self.target.endpoints.write or self.target.endpoints.check
        url = self._url(template, job)
        content_type = resolve_content_type(job, self.target.content_type)
        body = encode_payload(job, content_type)

        response = self._request("PUT", url, data=body, headers=self._headers(content_type.mime_type))
        if not 200 <= response.status_code < 300:
            raise RemoteRejection(response.status_code, response.text)

    def latest_revision(self, job: Job) -> Optional[str]:
        """Look up the object's current revision.

        Returns None when no revision endpoint is configured, or when the
        remote system does not report one.
        """
        if not self.target.endpoints.revision:
            return None
        url = self._url(self.target.endpoints.revision, job)
        response = self._request("GET", url, headers=self._headers("application/json"))

        if response.status_code == 404:
            logger.warning("Target object not found", uid=job.uid, url=url)
            return None
        if response.status_code != 200:
            logger.debug("Revision lookup refused", uid=job.uid, status=response.status_code, body=response.text)
            return None

        try:
            revision = response.json().get(self.target.revision_field)
        except (ValueError, AttributeError) as e:
            raise RemoteRejection(response.status_code, f"unparseable revision response: {e}") from e
        return str(revision) if revision else None
