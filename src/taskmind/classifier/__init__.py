"""
Classification subsystem.

Components:
- history.py: conversation_context parsing + single/multi-turn dispatch
- engine.py: drain the pending logs, classify each one, materialize tasks
- scheduler.py: fixed-cadence, single-flight loop that drives the engine
"""
