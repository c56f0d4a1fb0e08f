"""
Server-side request routing built on the exclusive dispatch table.
"""

from .router import Route, Router, read_json_body

__all__ = ["Route", "Router", "read_json_body"]
