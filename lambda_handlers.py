"""
Lambda Handlers - Entry points for AWS Lambda functions.

This module provides Lambda handlers for:
1. SQS Task Processing - Consumes messages from the task queue
2. Django API (via Mangum) - HTTP requests through API Gateway
3. Scheduled Events - EventBridge triggers for occurrence generation
   and care plan reminders

The handlers use Django's setup to access models and services.
"""

import os
import json
import logging

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

import django
django.setup()

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


def sqs_task_handler(event, context):
    """
    AWS Lambda handler for SQS task messages.

    Event structure:
    {
        "Records": [
            {"body": "{\"task_id\": \"...\", \"task_name\": \"...\", \"payload\": {...}}"}
        ]
    }

    A failing record re-raises so SQS redelivers it (and eventually
    routes it to the dead-letter queue).
    """
    from apps.core.backends.local_backend import TASK_HANDLERS

    processed = 0
    skipped = 0

    for record in event.get('Records', []):
        message = json.loads(record['body'])
        task_id = message.get('task_id', 'unknown')
        task_name = message['task_name']
        payload = message.get('payload', {})

        handler = TASK_HANDLERS.get(task_name)
        if handler is None:
            logger.error(f"No handler for task: {task_name} (id={task_id})")
            skipped += 1
            continue

        logger.info(f"Processing task {task_name} (id={task_id})")
        try:
            result = handler(**payload)
        except Exception as e:
            logger.exception(f"Task {task_name} (id={task_id}) failed: {e}")
            raise
        logger.info(f"Task {task_name} completed: {result}")
        processed += 1

    return {
        'statusCode': 200,
        'body': json.dumps({'processed': processed, 'skipped': skipped}),
    }


def scheduled_generate_occurrences(event, context):
    """
    EventBridge scheduled handler: materialize upcoming schedule occurrences.

    Schedule: daily at 01:00 UTC
    """
    from apps.core.task_service import TaskService
    from apps.tenants.models import Tenant

    queued = 0
    for tenant_id in Tenant.objects.filter(is_active=True).values_list('id', flat=True):
        TaskService.generate_all_occurrences(tenant_id=tenant_id)
        queued += 1

    logger.info(f"Queued occurrence generation for {queued} tenants")
    return {'statusCode': 200, 'body': json.dumps({'tenants_queued': queued})}


def scheduled_care_plan_reminders(event, context):
    """
    EventBridge scheduled handler: notify caregivers of due follow-ups.

    Schedule: daily at 07:00 UTC
    """
    from apps.members.care_service import send_care_plan_reminders

    sent = send_care_plan_reminders()
    return {'statusCode': 200, 'body': json.dumps({'reminders_sent': sent})}


# =============================================================================
# Django API Handler (Mangum)
# =============================================================================

_asgi_handler = None


def api_handler(event, context):
    """AWS Lambda handler for HTTP requests via API Gateway."""
    global _asgi_handler

    if _asgi_handler is None:
        from config.asgi import get_lambda_handler
        _asgi_handler = get_lambda_handler()

    return _asgi_handler(event, context)
