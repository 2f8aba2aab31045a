"""
Utility modules for GCS Publish.

This package provides shared utilities used by the publish and sync stages:
- logging: Structured logging, action tags and entry/exit decorators
- config: PublishConfig and required-field validation
- config_loader: YAML workflow files
- files: Input file records, object key normalization and hashing
- metadata: Content-type and content-encoding derivation
- metrics: Prometheus instrumentation
"""

from gcs_publish.utils.logging import get_logger, log_action, log_function_call

__all__ = ["get_logger", "log_action", "log_function_call"]
