"""Error types raised by handlers, services and the router."""

from __future__ import annotations


class FuukaError(Exception):
    """Base class for bot errors."""


class ConfigError(FuukaError, ValueError):
    """Configuration is missing or invalid."""


class PreconditionUnmet(FuukaError):
    """A handler cannot run with the message it was given."""


class RequiresReply(PreconditionUnmet):
    def __init__(self) -> None:
        super().__init__("Replying to a event is required for this command.")


class MissingParticipant(PreconditionUnmet):
    def __init__(self, name: str) -> None:
        super().__init__(f"cannot resolve room member {name!r}")
        self.name = name


class InvalidUserId(PreconditionUnmet):
    def __init__(self, value: str) -> None:
        super().__init__(f"{value!r} is neither a user id nor a room member")
        self.value = value


class UnresolvedReplyTarget(PreconditionUnmet):
    """The replied-to event exists but its sender could not be fetched."""

    def __init__(self, event_id: str) -> None:
        super().__init__(f"cannot resolve the sender of {event_id}")
        self.event_id = event_id


class ServiceFailure(FuukaError):
    """An external service call failed or returned an unusable payload."""

    def __init__(self, service: str, message: str, *, status: int | None = None):
        detail = f"{service}: {message}"
        if status is not None:
            detail = f"{detail} (HTTP {status})"
        super().__init__(detail)
        self.service = service
        self.status = status


class TemplateRenderFailure(FuukaError):
    def __init__(self, template: str, message: str) -> None:
        super().__init__(f"failed to render {template}: {message}")
        self.template = template


class DispatchError(FuukaError):
    """A matched handler failed; wraps the cause."""

    def __init__(self, route: str, cause: BaseException) -> None:
        super().__init__(f"route {route!r} failed: {cause}")
        self.route = route
        self.cause = cause
