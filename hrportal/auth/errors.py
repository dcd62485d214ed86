class AuthenticationError(Exception):
    """No usable session; the caller must sign in again."""


class ProvisioningError(AuthenticationError):
    """The profile row could not be read back or created."""


class UpstreamError(AuthenticationError):
    """The database could not be reached while resolving the role."""


class IdentityExistsError(Exception):
    """An identity with this email is already registered."""


class PageRedirect(Exception):
    """Raised by page guards; converted into a redirect response."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location
