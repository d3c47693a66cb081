"""Visual regression suite harness for the ToDo web app."""

__version__ = "0.1.0"
