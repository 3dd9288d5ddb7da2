"""Probe-local error taxonomy. These never escape a probe."""


class ProbeError(Exception):
    kind = "probe"


class TransportError(ProbeError):
    """Connection failure, timeout or a non-2xx status."""

    kind = "transport"


class DecodeError(ProbeError):
    """Response body is not a JSON object."""

    kind = "decode"


class ResponseShapeError(ProbeError):
    """Well-formed response lacking a field the probe needs."""

    kind = "response_shape"


class TokenCountError(Exception):
    pass
