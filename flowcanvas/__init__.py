"""
FlowCanvas - graph-state and interaction engine for a visual flow editor.
"""

__version__ = "0.1.0"
