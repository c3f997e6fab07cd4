"""
Configuration Package

Environment-specific Flask configuration classes loaded with python-dotenv and the
frozen ``SanitizerConfig`` consumed by the order sanitization pipeline.
"""

from storefront.config.settings import (
    BaseConfig,
    DevelopmentConfig,
    ProductionConfig,
    SanitizerConfig,
    TestingConfig,
    get_config,
    get_sanitizer_config,
    init_app,
    validate_configuration,
)

__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'ProductionConfig',
    'SanitizerConfig',
    'TestingConfig',
    'get_config',
    'get_sanitizer_config',
    'init_app',
    'validate_configuration',
]
