"""Artifact renderers."""

from .todo_list import render_todo_list, order_sections

__all__ = ['render_todo_list', 'order_sections']
