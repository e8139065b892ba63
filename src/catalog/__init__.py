"""Registered policies and the objects they target."""

from .catalog import Kind, MatchParameters, PolicyCatalog, QueryCollection

__all__ = [
    "Kind",
    "MatchParameters",
    "PolicyCatalog",
    "QueryCollection",
]
