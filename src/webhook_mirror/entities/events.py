"""Decoded webhook notifications.

Push is the only event kind that drives a sync; everything else decodes to
``UnhandledEvent`` and is logged by the dispatcher.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from webhook_mirror.errors import PayloadError

GITHUB_EVENT_HEADER = "X-GitHub-Event"
GITLAB_EVENT_HEADER = "X-Gitlab-Event"

_GITLAB_PUSH_EVENTS = {"Push Hook", "Tag Push Hook"}

# Keys under "repository" that may carry a clone/browse URL (GitHub, GitLab)
_URL_KEYS = ("ssh_url", "clone_url", "git_url", "html_url", "url", "git_ssh_url", "git_http_url")


@dataclass(frozen=True)
class PushEvent:
    """A push to some ref of a remote repository."""

    ref: str
    repository_urls: tuple[str, ...]
    after: str | None = None
    kind: Literal["push"] = "push"

    def matches_url(self, url: str) -> bool:
        wanted = url.rstrip("/")
        return any(candidate.rstrip("/") == wanted for candidate in self.repository_urls)


@dataclass(frozen=True)
class UnhandledEvent:
    """Any event kind other than push (ping, issues, ...)."""

    name: str
    kind: Literal["unhandled"] = "unhandled"


WebhookEvent = PushEvent | UnhandledEvent


def header_value(headers: Mapping[str, str], name: str) -> str:
    """Case-insensitive lookup returning "" when the header is absent."""
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
        return ""
    return value


def event_name(headers: Mapping[str, str]) -> str:
    """Event type announced by the sender, or "" when none is present."""
    return header_value(headers, GITHUB_EVENT_HEADER) or header_value(headers, GITLAB_EVENT_HEADER)


def _is_push(name: str) -> bool:
    # no event header: plain push hook
    return name in ("", "push") or name in _GITLAB_PUSH_EVENTS


def _repository_urls(data: dict[str, Any]) -> tuple[str, ...]:
    urls: list[str] = []
    for section in ("repository", "project"):
        repo = data.get(section)
        if not isinstance(repo, dict):
            continue
        for key in _URL_KEYS:
            value = repo.get(key)
            if isinstance(value, str) and value and value not in urls:
                urls.append(value)
    return tuple(urls)


def decode_event(headers: Mapping[str, str], body: bytes) -> WebhookEvent:
    """Decode a webhook request into a typed event.

    Raises:
        PayloadError: The body of a push event is not a JSON object with a ref.
    """
    name = event_name(headers)
    if not _is_push(name):
        return UnhandledEvent(name=name)

    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PayloadError(f"invalid JSON payload: {e}") from e

    if not isinstance(data, dict):
        raise PayloadError("payload is not a JSON object")

    ref = data.get("ref")
    if not isinstance(ref, str) or not ref:
        raise PayloadError("payload has no ref")

    after = data.get("after") or data.get("checkout_sha")
    return PushEvent(
        ref=ref,
        repository_urls=_repository_urls(data),
        after=after if isinstance(after, str) else None,
    )
