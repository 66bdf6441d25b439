"""
Core app - Shared abstractions and utilities.

This app provides platform-agnostic interfaces for:
- Task execution (TaskService)
- Demo data seeding (manage.py seed)

These abstractions allow switching between:
- Local development (sync execution)
- AWS Lambda + SQS (production)
- Celery + Redis
"""
