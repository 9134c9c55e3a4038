from .base import CONFIG_BY_NAME, Config, DevelopmentConfig, ProductionConfig, TestingConfig
from .monitoring import (
    MONITORING_CONFIG_BY_NAME,
    DevelopmentMonitoringConfig,
    MonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)

__all__ = [
    "CONFIG_BY_NAME",
    "Config",
    "DevelopmentConfig",
    "ProductionConfig",
    "TestingConfig",
    "MONITORING_CONFIG_BY_NAME",
    "MonitoringConfig",
    "DevelopmentMonitoringConfig",
    "ProductionMonitoringConfig",
    "TestingMonitoringConfig",
]
