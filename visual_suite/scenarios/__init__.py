"""Scenarios module - ToDo app test bodies."""

from .todo import SCENARIOS, Scenario

__all__ = ["SCENARIOS", "Scenario"]
