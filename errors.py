class MucPayError(Exception):
    """Base class for everything the map app raises on purpose."""


class FetchError(MucPayError):
    """Venue data could not be fetched or parsed."""


class RetryExhausted(MucPayError):
    def __init__(self, last_error, attempts, user_message):
        super().__init__(f"Giving up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts
        self.user_message = user_message


class DbError(MucPayError):
    """A write to the vote store failed."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code
