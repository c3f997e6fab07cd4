"""
Global pytest Configuration and Fixtures

Shared fixtures for the order intake test suite:
- Raw order payloads (the valid reference order and its variants)
- Sanitizer configuration built from ``TestingConfig`` with monitoring and
  metrics switched off, so tests inject their own collaborators
- A Flask application initialized through ``init_app``
- A mocked monitoring collaborator and an isolated Prometheus registry
"""

import dataclasses
from typing import Any, Dict
from unittest.mock import Mock

import pytest
import structlog
from flask import Flask
from prometheus_client import CollectorRegistry

from storefront.config.settings import SanitizerConfig, TestingConfig, init_app
from storefront.monitoring.metrics import SanitizationMetrics


# ============================================================================
# ORDER PAYLOAD FIXTURES
# ============================================================================

@pytest.fixture
def valid_order_data() -> Dict[str, Any]:
    """Reference order that passes every sanitizer."""
    return {
        'lastName': "O'Brien",
        'firstName': 'jean-paul',
        'email': 'JEAN.PAUL@EXAMPLE.COM',
        'phone': '+253 77 86 00 64',
        'paymentMethod': '550e8400-e29b-41d4-a716-446655440000',
        'accountName': 'Jean Paul Account',
        'accountNumber': 'ACC12345',
        'applicationId': '660e8400-e29b-41d4-a716-446655440001',
        'applicationFee': '70000',
    }


@pytest.fixture
def order_factory(valid_order_data):
    """Build variants of the reference order with selected fields replaced or removed."""
    def factory(remove=(), **overrides) -> Dict[str, Any]:
        order = dict(valid_order_data)
        order.update(overrides)
        for field_name in remove:
            order.pop(field_name, None)
        return order
    return factory


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def sanitizer_config() -> SanitizerConfig:
    return dataclasses.replace(
        SanitizerConfig.from_object(TestingConfig),
        monitoring_enabled=False,
        metrics_enabled=False,
    )


@pytest.fixture
def app():
    """Flask application configured for testing."""
    flask_app = Flask('storefront-tests')
    init_app(flask_app, 'testing')

    yield flask_app

    structlog.reset_defaults()


# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================

@pytest.fixture
def mock_reporter() -> Mock:
    """Monitoring collaborator double accepting every event."""
    reporter = Mock(spec=['capture_message', 'capture_exception'])
    reporter.capture_message.return_value = True
    reporter.capture_exception.return_value = True
    return reporter


@pytest.fixture
def metrics_registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(metrics_registry) -> SanitizationMetrics:
    return SanitizationMetrics(registry=metrics_registry)
