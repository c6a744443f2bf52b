"""
Lane-Sketch – Geometry Errors
"""


class InvalidArgument(ValueError):
    """A precondition on a geometry or lane call was violated (bad lane count,
    degenerate segment, unknown lane index, negative distance...)."""


class AlreadyFinalized(RuntimeError):
    """A finalized curve set (or finished road) was asked to change."""
