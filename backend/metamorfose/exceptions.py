"""Error taxonomy shared by the gateway, service and HTTP layers."""


class MetamorfoseError(Exception):
    """Base class for errors raised by this service."""


class ValidationError(MetamorfoseError):
    """Bad or missing input, e.g. a blank identifier or an unknown job type."""


class GatewayError(MetamorfoseError):
    """A call into the PL/SQL procedure layer failed.

    ``str(error)`` is safe to show to clients; the database error that
    caused it is kept as ``__cause__`` for server-side logging only.
    """
