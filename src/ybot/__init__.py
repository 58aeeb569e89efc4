"""Discord chat bot with pluggable command modules."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ybot")
except PackageNotFoundError:
    __version__ = "0.0.0"
