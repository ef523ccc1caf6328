"""Project package for the CI build health service."""

from config.celery import app as celery_app

__all__ = ["celery_app"]
