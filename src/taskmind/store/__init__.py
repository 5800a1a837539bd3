"""
Storage subsystem.

Components:
- models.py: data structures (LogRecord, Task, TeamMember, enums)
- base.py: shared SQLite connection + schema helpers
- log_store.py: logs and tasks (the classifier's record store)
- team_store.py: team roster and workload ledger
"""
