"""todocore - todo.txt task engine."""

__version__ = "0.3.0"
