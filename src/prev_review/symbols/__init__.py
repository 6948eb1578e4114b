"""
Symbol-level context.

Optional Serena MCP integration that finds the function or class enclosing a
changed line.
"""

from .models import SerenaMode, SymbolInfo
from .serena import (
    SerenaClient,
    SerenaLauncher,
    is_serena_available,
    resolve_serena_launcher,
)

__all__ = [
    "SerenaMode",
    "SymbolInfo",
    "SerenaClient",
    "SerenaLauncher",
    "is_serena_available",
    "resolve_serena_launcher",
]
