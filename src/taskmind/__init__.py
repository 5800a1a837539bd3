"""
taskmind: background classification of conversational logs into tasks.

Subpackages:
- store: SQLite-backed logs, tasks and team roster
- classifier: conversation parsing, classification engine and scheduler loop
- llm: OpenAI-compatible classifier oracle (+ offline fallback)
- cli: composition root and console entry point
"""

__version__ = "0.1.0"
