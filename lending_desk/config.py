"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import Optional


class LendingDeskConfig(BaseSettings):
    """Lending desk configuration"""
    
    # Database configuration
    database_url: str = "sqlite:///lending_desk.db"  # or memory://
    
    # API configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8090
    
    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_file: Optional[str] = None  # If None, logs to stdout
    
    # Engine rules
    projection_horizon_months: int = 6
    schedule_safety_cap: int = 120  # ~10 years of monthly installments
    paid_threshold: Decimal = Decimal("0.99")
    overpayment_tolerance: Decimal = Decimal("1.0001")
    allocation_tolerance: Decimal = Decimal("0.01")
    upcoming_window_days: int = 30
    
    # Labels
    unassigned_investor_label: str = "Unassigned investors"
    legacy_owner_label: str = "Owner"
    legacy_partner_label: str = "Partner"
    
    # Feature flags
    enable_audit_logging: bool = True
    
    class Config:
        env_prefix = "LENDING_DESK_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = LendingDeskConfig()


def get_config() -> LendingDeskConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LendingDeskConfig:
    """Reload configuration from environment"""
    global config
    config = LendingDeskConfig()
    return config
