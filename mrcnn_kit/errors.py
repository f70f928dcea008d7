class MaskRcnnError(Exception):
    """
    Base class for every failure raised by mrcnn_kit.
    """


class ConfigError(MaskRcnnError, ValueError):
    """A required config key is missing or cannot be parsed."""


class UnsupportedModeError(MaskRcnnError, ValueError):
    """Resize mode other than 'none', 'square' or 'pad64'."""


class DimensionError(MaskRcnnError, ValueError):
    """Image or shape dimensions violate a resize/normalization precondition."""


class EmptyResultError(MaskRcnnError):
    """
    The detection table holds no valid rows.

    Terminal for post-processing: nothing was detected, so there is nothing to
    unmold. Callers usually treat it as an empty result rather than a crash.
    """


class ReconstructionError(MaskRcnnError, ValueError):
    """A detection box is degenerate or falls outside the output canvas."""
