"""layoutdump - Decode raw C struct buffers using a BTF type graph."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("layoutdump")
except PackageNotFoundError:
    __version__ = "(local)"
