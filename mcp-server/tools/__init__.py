from tools.registry import ToolInvoker, register_tools

__all__ = ["ToolInvoker", "register_tools"]
