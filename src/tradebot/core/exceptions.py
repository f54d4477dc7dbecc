"""Custom exceptions for trading bot."""


class TradingBotError(Exception):
    """Base exception for trading bot errors."""
    pass


class ConfigurationError(TradingBotError):
    """Configuration error."""
    pass


class StrategyError(TradingBotError):
    """Strategy construction error."""
    pass


class ConnectorError(TradingBotError):
    """Connector error."""
    pass


class OrderError(TradingBotError):
    """Order error."""
    pass


class StateManagementError(TradingBotError):
    """Invalid bot state transition."""
    pass


class BacktestError(TradingBotError):
    """Backtest invariant violated."""
    pass


class DataValidationError(TradingBotError):
    """Data validation error."""
    pass
