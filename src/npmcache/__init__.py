"""npmcache - cache installed npm dependency trees locally and in S3."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("npmcache")
except PackageNotFoundError:
    # Package is not installed, so version is not available
    __version__ = "0.0.0+unknown"
