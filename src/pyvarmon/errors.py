"""Error types for pyvarmon polling."""


class ExpvarError(Exception):
    """Base class for errors raised while polling an introspection endpoint."""


class FetchError(ExpvarError):
    """The endpoint could not be reached (refused, timed out, DNS failure...)."""


class VarsNotFoundError(ExpvarError):
    """The target answered 404: it is up but does not expose its vars."""

    def __init__(self, addr: str = "") -> None:
        self.addr = addr
        super().__init__("vars not found - introspection not enabled on target")


class ParseError(ExpvarError):
    """The payload is not valid JSON or does not have the expected shape."""
