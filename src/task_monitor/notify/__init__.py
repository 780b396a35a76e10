"""
Notification subsystem.

Components:
- settings_provider.py: user notification preferences (JSON file, re-read per cycle)
- dedup_store.py: last-sent timestamps per (task, type)
- gate.py: quiet hours + toggles + dedup decision
- messages.py: title/body/options rendering
- notifiers.py, matrix_notifier.py: transports
"""
