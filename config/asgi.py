"""
ASGI config for the Shepherd project.

Served by Uvicorn/Daphne in containers, or wrapped by Mangum on AWS Lambda
(see lambda_handlers.api_handler).
"""
import os

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

from django.core.asgi import get_asgi_application

# Initialized at import time so Lambda pays the cost during container startup
application = get_asgi_application()


def get_lambda_handler():
    """Return a Mangum-wrapped handler for API Gateway events."""
    from mangum import Mangum
    return Mangum(application, lifespan="off")
