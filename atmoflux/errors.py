"""
Exception types raised by the flux table engine.

Each error also derives from the built-in exception callers would
naturally catch (ValueError, FileNotFoundError, RuntimeError).

License: MIT
"""


class FluxError(Exception):
    """Base class for all flux table errors."""


class InvalidGeometryError(FluxError, ValueError):
    """Bin edges are non-monotonic, non-finite or the bin count is zero."""


class FileOpenError(FluxError, FileNotFoundError):
    """A flux table file could not be opened."""


class MalformedRecordError(FluxError, ValueError):
    """A data row has missing or unparsable numeric fields."""


class EmptyTableError(FluxError, ValueError):
    """Sampling was attempted on a table with zero integral."""


class UnsupportedSpeciesError(FluxError, ValueError):
    """The neutrino species has no table or column."""


class DriverStateError(FluxError, RuntimeError):
    """The driver is not in a state that allows the requested call."""


class SamplingError(FluxError, RuntimeError):
    """No point could be drawn inside the requested energy range."""
