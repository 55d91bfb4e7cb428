"""Error taxonomy for Authentica.

Only :class:`MalformedImage` and :class:`ConfigurationError` abort an
analysis request.  The other two are raised at the point of failure and
converted into neutral results by the component that owns them.
"""


class AuthenticaError(Exception):
    """Base class for all errors raised by this library."""


class MalformedImage(AuthenticaError, ValueError):
    """
    Raised when a raster cannot be analyzed at all.

    Covers zero or negative dimensions, an unsupported channel count,
    a pixel buffer shorter than ``width * height * channels`` and bytes
    the codec cannot decode.  There is no partial result for such an
    image.
    """


class CodecFailure(AuthenticaError):
    """
    Raised when the lossy codec cannot re-encode or re-decode a raster.

    The ELA analyzer catches this and reports a neutral score with the
    error attached instead of failing the whole assessment.
    """


class UnsupportedContentType(AuthenticaError):
    """Raised when no comparator exists for a content type."""


class ConfigurationError(AuthenticaError, ValueError):
    """
    Raised for invalid request configuration.

    Weights that sum to zero, negative or unknown weight keys, unknown
    signal names and unknown analyzer parameters all end up here.  It is
    raised before any analyzer runs.
    """
