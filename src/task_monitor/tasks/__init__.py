"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, RecurringType, NotificationType)
- recurrence.py: is a recurring task active on a date, next occurrence
- occurrence_sync.py: keeps recurring tasks' due dates on the current occurrence
- due_scanner.py: overdue / due-soon classification
- task_store.py: SQLite-backed storage (whole-collection replace + explicit edits)
- task_scheduler.py: timer-driven monitor tying sync, scan, gate and notifier together
- task_api.py: user actions that may notify (complete, set due date)
- task_views.py: read-only list helpers (per-date view, grouping, search)
"""
