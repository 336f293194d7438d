"""Lifecycle orchestration for Cloud Run and Cloud Batch jobs."""

__version__ = "0.3.0"
