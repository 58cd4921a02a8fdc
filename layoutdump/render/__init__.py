"""Presenters for value trees and type graphs."""

from .header import render as render_header
from .text import render_json as render_json
from .text import render_tree as render_tree

__all__ = ["render_header", "render_json", "render_tree"]
