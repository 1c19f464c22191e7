"""Exception hierarchy shared across deskwatch components."""

from __future__ import annotations


class DeskwatchError(Exception):
    """Base class for all deskwatch errors."""


class ConfigurationError(DeskwatchError):
    """A required setting (API key, webhook URL) is missing."""


class MalformedPayloadError(DeskwatchError):
    """An inbound webhook body could not be parsed into an event."""


class TrackerError(DeskwatchError):
    """The Linear API call failed (transport, HTTP status, GraphQL errors or unusable data)."""


class NotFoundError(TrackerError):
    """The Linear API returned no entity for the requested id."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id
