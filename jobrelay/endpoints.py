"""Rendering of endpoint templates such as ``/objects/{uid}/writable``."""

from string import Formatter
from urllib.parse import quote

from .errors import ConfigurationError
from .models import Job

TEMPLATE_FIELDS = ("uid", "content_type")


def validate_template(template: str) -> None:
    """Reject templates that reference anything but job fields."""
    try:
        fields = [name for _, name, _, _ in Formatter().parse(template) if name is not None]
    except ValueError as e:
        raise ConfigurationError(f"invalid endpoint template {template!r}: {e}") from e
    for name in fields:
        if name not in TEMPLATE_FIELDS:
            raise ConfigurationError(
                f"endpoint template {template!r} references unknown field {name!r}"
            )


def render_endpoint(template: str, job: Job) -> str:
    """Interpolate job fields into a template, quoting each value as a path segment."""
    content_type = job.content_type.value if job.content_type else ""
    values = {
        "uid": quote(job.uid, safe=""),
        "content_type": quote(content_type, safe=""),
    }
    return template.format(**values)
