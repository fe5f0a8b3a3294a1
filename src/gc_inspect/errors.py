"""Exception hierarchy for gc-inspect.

Per-line parsing never raises: unrecognized lines, unresolvable timestamps and
malformed numbers degrade to "no data". The exceptions below signal defects in
the static catalogues or bad input handed over by a caller.
"""

from __future__ import annotations


class GcInspectError(Exception):
    """Base class for all gc-inspect errors."""


class CatalogueError(GcInspectError):
    """An event shape populated data its declared traits do not allow."""


class InvalidAnalysisLevelError(GcInspectError):
    """A finding key does not start with one of error, warn or info."""


class StartDateError(GcInspectError, ValueError):
    """The JVM start date supplied by the caller could not be parsed."""
