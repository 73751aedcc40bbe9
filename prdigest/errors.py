"""Error taxonomy for the PR digest bot."""


class DigestBotError(Exception):
    """Base class for errors surfaced to chat users."""


class ValidationError(DigestBotError):
    """Raised when a digest request cannot be accepted as given."""


class ScheduleSyntaxError(ValidationError):
    """Raised when a schedule expression does not parse.

    Carries the original text and the underlying parser message.
    """

    def __init__(self, text: str, message: str):
        self.text = text
        self.message = message
        super().__init__(f'Invalid schedule "{text}": {message}')


class FetchError(DigestBotError):
    """Raised when a GitHub request fails."""


class NotFoundError(DigestBotError):
    """Raised when a subscription id does not exist."""


class AuthorizationError(DigestBotError):
    """Raised when a room tries to modify a subscription it does not own."""


class SchedulerError(DigestBotError):
    """Raised on arming an armed request or disarming an idle one."""
