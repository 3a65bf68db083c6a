"""Error taxonomy shared by the API clients, stores and flows."""


class SimpleGithubError(Exception):
    """Base error. ``message`` is safe to show to the user."""

    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(SimpleGithubError):
    """Transport failure, unexpected status or undecodable body."""

    default_message = "Network error"


class AuthError(SimpleGithubError):
    """The OAuth provider rejected the token exchange."""

    default_message = "Failed to get access token"


class Unauthenticated(SimpleGithubError):
    """An authenticated call was attempted without a stored token."""

    default_message = "Not signed in"


class NotFound(SimpleGithubError):
    default_message = "Not found"


class EmptyResult(SimpleGithubError):
    """A search matched nothing. A domain condition, not a failure."""

    default_message = "No search result"


class InvalidQuery(SimpleGithubError):
    default_message = "Search query must not be empty"


class MissingCode(SimpleGithubError):
    default_message = "No code exists"


class MissingLoginData(SimpleGithubError):
    default_message = "No login info exists"


class InvalidTransition(SimpleGithubError):
    default_message = "Operation not allowed in the current state"


class ConfigurationError(SimpleGithubError):
    default_message = "Application is not configured"
