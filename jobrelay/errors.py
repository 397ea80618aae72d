"""Exceptions raised while accepting and delivering jobs."""


class JobRelayError(Exception):
    """Base class for all jobrelay errors."""


class TransportError(JobRelayError):
    """The remote system or token endpoint could not be reached."""


class RemoteRejection(JobRelayError):
    """The remote system answered with a non-success status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"remote rejected request, status: {status}, body: {body}")


class SerializationError(JobRelayError):
    """A job payload could not be encoded for the wire."""


class AuthError(JobRelayError):
    """An Authorization header could not be produced."""


class ConfigurationError(JobRelayError):
    """Startup configuration is missing or invalid."""


class PersistenceError(JobRelayError):
    """The pending-job snapshot could not be read or written."""


class QueueFullError(JobRelayError):
    """The worker queue has no free capacity."""


class DuplicateJobError(JobRelayError):
    """A job with the same uid is already pending."""

    def __init__(self, uid: str):
        self.uid = uid
        super().__init__(f"job {uid} is already pending")
