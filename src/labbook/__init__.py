"""labbook package initialization."""

from ._build_info import APP_VERSION

__all__ = []

# Expose the package version; the release pipeline updates ``APP_VERSION``
# so installed builds report the correct release number.
__version__ = APP_VERSION
