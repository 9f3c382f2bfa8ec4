"""
Storage subsystem.

Components:
- kv.py: string key-value backends (JSON file, in-memory)
- models.py: data structures (User, CurrentUser, Task, Subtask, Translation)
- migrations.py: upgrade of legacy task records on load
- store.py: PersistenceStore (users, session, per-user task collections)
"""
