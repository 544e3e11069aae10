"""unidb - engine-agnostic database introspection and query execution."""

from unidb.__about__ import __version__

__all__ = ["__version__"]
