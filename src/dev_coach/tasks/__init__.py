"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus)
- task_store.py: SQLite-backed storage + the single-active-task status machine
- task_api.py: (message, error) helpers used by the command layer
"""
