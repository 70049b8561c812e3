"""
Unit Tests - Settings and Logging
"""
import logging

import pytest
import structlog

from salesrecon.config.logging import configure_logging
from salesrecon.config.settings import AnalyticsSettings, MonitoringSettings, Settings, StorageSettings
from salesrecon.domain.models import EngineConfig


class TestSettings:
    """Tests for process settings"""
    
    def test_defaults(self, test_settings):
        """Test the test fixture settings"""
        assert test_settings.app_env == "testing"
        assert test_settings.is_development is False
        assert test_settings.storage.backend == "file"
    
    def test_invalid_env(self):
        """Test unknown environments are rejected"""
        with pytest.raises(ValueError):
            Settings(app_env="moon")
    
    def test_backend_normalised(self):
        """Test backend names are case-insensitive"""
        assert StorageSettings(backend="Redis").backend == "redis"
    
    def test_engine_config_seeded_from_analytics(self):
        """Test analytics settings seed the engine configuration"""
        config = EngineConfig.from_settings(AnalyticsSettings(lookback_days=14, overstock_days=90))
        
        assert config.lookback_days == 14
        assert config.thresholds.overstock_days == 90
        assert config.platform_rules == {}


class TestLogging:
    """Tests for configure_logging"""
    
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)
    
    def test_installs_single_handler(self, test_settings):
        """Test the root logger gets exactly one stdout handler"""
        handler = configure_logging("debug", settings=test_settings)
        
        root = logging.getLogger()
        assert root.handlers == [handler]
        assert root.level == logging.DEBUG
        assert logging.getLogger("uvicorn.access").handlers == []
    
    def test_events_carry_service_context(self, capsys):
        """Test rendered events include the service name and keyword context"""
        settings = Settings(app_env="testing", monitoring=MonitoringSettings(LOG_FORMAT="json"))
        configure_logging("INFO", settings=settings)
        
        structlog.get_logger("salesrecon.test").info("Import committed", created=2)
        
        output = capsys.readouterr().out
        assert '"event": "Import committed"' in output
        assert '"created": 2' in output
        assert '"service": "salesrecon"' in output
