"""
Lambda Task Backend - Async execution via AWS SQS + Lambda.

Messages are sent to SQS and consumed by lambda_handlers.sqs_task_handler,
which dispatches them to the same handler registry the local backend uses.

Environment Variables:
    TASK_QUEUE_URL: SQS queue URL for task messages
    AWS_REGION: AWS region (default: us-east-1)
"""

import os
import json
import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskServiceInterface

logger = logging.getLogger(__name__)

# SQS rejects DelaySeconds above 15 minutes
MAX_SQS_DELAY_SECONDS = 900


class LambdaTaskService(TaskServiceInterface):
    """Execute tasks via AWS SQS + Lambda."""

    def __init__(self):
        self._sqs_client = None
        self._queue_url = os.getenv('TASK_QUEUE_URL')

    @property
    def sqs_client(self):
        """Lazy initialization of SQS client."""
        if self._sqs_client is None:
            import boto3
            self._sqs_client = boto3.client(
                'sqs',
                region_name=os.getenv('AWS_REGION', 'us-east-1')
            )
        return self._sqs_client

    def build_message(self, task_id: str, task_name: str, payload: Dict[str, Any]) -> str:
        return json.dumps({
            "task_id": task_id,
            "task_name": task_name,
            "payload": payload,
        })

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via SQS."""
        if not self._queue_url:
            raise RuntimeError(
                "TASK_QUEUE_URL environment variable not set. "
                "Cannot send tasks to Lambda backend."
            )

        task_id = str(uuid.uuid4())
        logger.info(f"[LAMBDA] Sending task {task_name} to SQS (id={task_id})")

        try:
            response = self.sqs_client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=self.build_message(task_id, task_name, payload),
                DelaySeconds=min(delay_seconds, MAX_SQS_DELAY_SECONDS),
                MessageAttributes={
                    'TaskName': {'DataType': 'String', 'StringValue': task_name},
                    'TaskId': {'DataType': 'String', 'StringValue': task_id},
                },
            )
        except Exception as e:
            logger.exception(f"[LAMBDA] Failed to send task {task_name}: {e}")
            raise

        logger.info(f"[LAMBDA] Task {task_name} queued. SQS MessageId: {response['MessageId']}")
        return task_id
