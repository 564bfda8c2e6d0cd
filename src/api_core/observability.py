"""
Centralized observability utilities for the shared API core.

This module provides configured instances of AWS Lambda Powertools for logging,
tracing, and metrics collection shared by the router, middleware and clients.
"""

from aws_lambda_powertools.logging import Logger
from aws_lambda_powertools.metrics import Metrics
from aws_lambda_powertools.tracing import Tracer

# Metrics namespace for request and error KPIs
METRICS_NAMESPACE = 'ServerlessApiCore'

# JSON output format, service name can be set by environment variable "POWERTOOLS_SERVICE_NAME"
logger: Logger = Logger()

# Disabled by setting POWERTOOLS_TRACE_DISABLED to "True"
tracer: Tracer = Tracer()

# Namespace and service name can be set by environment variables:
# - POWERTOOLS_METRICS_NAMESPACE
# - POWERTOOLS_SERVICE_NAME
metrics: Metrics = Metrics(namespace=METRICS_NAMESPACE)
