"""Taskboard — shared, time-boxed task management backend.

Users register and sign in, then create tasks that can be shared with
other users. Access to a task is governed by its assignment list.
"""

__version__ = "0.1.0"
