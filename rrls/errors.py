"""Error taxonomy for the streaming ridge modules.

ConfigInvalid       -> fatal, raised before a module is configured.
DimensionMismatch   -> recoverable, the offending sample is dropped.
PretrainLoadFailed  -> caller decides (default: continue with a fresh estimator).
DegenerateVariance  -> recoverable per output dimension (raw MSE is reported).
"""


class RRLSError(Exception):
    """Base class for all errors raised by this package."""


class ConfigInvalid(RRLSError, ValueError):
    pass


class DimensionMismatch(RRLSError, ValueError):
    def __init__(self, what, expected, got):
        self.what = what
        self.expected = expected
        self.got = got
        super().__init__(f"{what}: expected length {expected}, got {got}")


class PretrainLoadFailed(RRLSError, RuntimeError):
    pass


class DegenerateVariance(RRLSError, ValueError):
    def __init__(self, dims):
        self.dims = tuple(int(i) for i in dims)
        super().__init__(f"zero target variance in output dimension(s) {list(self.dims)}")


__all__ = ["RRLSError", "ConfigInvalid", "DimensionMismatch",
           "PretrainLoadFailed", "DegenerateVariance"]
