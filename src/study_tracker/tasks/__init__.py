"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, Category, Priority) + validation/classification
- task_views.py: derived view state (stats, display order) as pure functions of `now`
- reminders.py: reminder scheduling on top of the Notifier port
- task_repository.py: single writer of the task collection in the durable store
"""
