"""
Claude Monitor - live session tracking for remote Claude Code hooks.

- core:   event log, session registry, sweeper, persistence, queries
- routes: Starlette HTTP handlers
- cli:    serve / inspect / generate-key
"""

__version__ = "0.1.0"
