"""Entity models for the webhook-mirror domain layer."""

from webhook_mirror.entities.events import PushEvent, UnhandledEvent, WebhookEvent, decode_event
from webhook_mirror.entities.mapping import RefKind, RefSelector, RepoMapping, SshAuth
from webhook_mirror.entities.outcome import OutcomeKind, SyncOutcome

__all__ = [
    "OutcomeKind",
    "PushEvent",
    "RefKind",
    "RefSelector",
    "RepoMapping",
    "SshAuth",
    "SyncOutcome",
    "UnhandledEvent",
    "WebhookEvent",
    "decode_event",
]
