"""Tool interfaces and registrations for the stdio bridge."""

from .builtin import register_builtin_tools
from .registry import ToolDispatchError, ToolHandler, ToolRegistry

__all__ = ["ToolDispatchError", "ToolHandler", "ToolRegistry", "register_builtin_tools"]
