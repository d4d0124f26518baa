"""Celery task definitions package.

Modules are registered through the ``include`` list of the Celery app.
"""
