"""Configuration management using Pydantic."""

import math
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from tradebot.connectors.exchange_info import StaticExchangeInfo
from tradebot.core.bot import TradingBot
from tradebot.core.models import SymbolFilter
from tradebot.strategies.factory import StrategyName


class BotConfig(BaseModel):
    """Bot configuration."""

    symbol: str = Field(default="BTCUSDT", min_length=1, description="Trading symbol")
    quantity: float = Field(default=0.0, ge=0, description="Fixed order quantity")
    use_fixed_quantity: bool = Field(default=False, description="Trade a fixed quantity instead of trade_amount")
    interval: str = Field(default="1h", description="Candle interval")
    interval_seconds: int = Field(default=60, gt=0, description="Polling interval in seconds")
    initial_capital: float = Field(default=10000.0, gt=0, description="Initial capital")
    trade_amount: float = Field(default=1000.0, ge=0, description="Quote amount per trade")
    currency: str = Field(default="USDT", description="Quote currency")
    trading_fees: float = Field(default=0.1, ge=0, le=100, description="Fee in percent per fill")
    minimum_profit_threshold: float = Field(default=0.0, ge=0, description="Minimum profit in percent before selling")

    @field_validator('symbol')
    @classmethod
    def validate_symbol(cls, v):
        return v.upper()

    @model_validator(mode='after')
    def validate_sizing(self) -> 'BotConfig':
        if self.use_fixed_quantity and self.quantity <= 0:
            raise ValueError('quantity must be positive when use_fixed_quantity is set')
        return self

    def create_bot(self, strategy: 'StrategyConfig') -> TradingBot:
        return TradingBot(
            symbol=self.symbol,
            quantity=self.quantity,
            strategy_name=strategy.name,
            interval_seconds=self.interval_seconds,
            initial_capital=self.initial_capital,
            trade_amount=self.trade_amount,
            currency=self.currency,
            trading_fees=self.trading_fees,
            minimum_profit_threshold=self.minimum_profit_threshold,
            use_fixed_quantity=self.use_fixed_quantity,
            strategy_params=strategy.parameters,
        )


class StrategyConfig(BaseModel):
    """Strategy configuration."""

    name: str = Field(default="MovingAverage", description="MovingAverage, RSI or Breakout")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Strategy parameters")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        try:
            return StrategyName(v).value
        except ValueError:
            names = ", ".join(s.value for s in StrategyName)
            raise ValueError(f'strategy must be one of: {names}')


class BacktestingConfig(BaseModel):
    """Backtesting configuration."""

    data_file: Optional[str] = Field(default=None, description="CSV file with historical candles")
    start_date: Optional[str] = Field(default=None, description="Backtest start date (YYYY-MM-DD)")
    end_date: Optional[str] = Field(default=None, description="Backtest end date (YYYY-MM-DD)")
    interval: str = Field(default="30m", description="Candle interval for generated data")
    candles: int = Field(default=500, gt=0, description="Number of generated candles when no data file is set")
    initial_capital: float = Field(default=10000.0, gt=0, description="Initial capital for backtesting")
    trade_amount: float = Field(default=5000.0, ge=0, description="Quote amount per trade, 0 for all capital")
    trading_fees: float = Field(default=0.01, ge=0, le=100, description="Fee in percent per fill")
    minimum_profit_threshold: float = Field(default=2.0, ge=0, description="Minimum profit in percent before selling")
    record_decisions: bool = Field(default=False, description="Keep every decision in the result")
    output_file: Optional[str] = Field(default=None, description="Write the result as JSON")

    @field_validator('start_date', 'end_date')
    @classmethod
    def validate_dates(cls, v):
        if v is None:
            return v
        try:
            datetime.strptime(v, '%Y-%m-%d')
        except ValueError:
            raise ValueError('Date must be in YYYY-MM-DD format')
        return v

    @model_validator(mode='after')
    def validate_date_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError('start_date must not be after end_date')
        return self


class SymbolFilterConfig(BaseModel):
    """Exchange rules for one symbol. Unset limits mean no restriction."""

    symbol: str
    min_quantity: float = Field(default=0.0, ge=0)
    max_quantity: Optional[float] = Field(default=None, gt=0)
    step_size: Optional[float] = Field(default=None, gt=0)
    min_price: float = Field(default=0.0, ge=0)
    max_price: Optional[float] = Field(default=None, gt=0)
    tick_size: Optional[float] = Field(default=None, gt=0)
    min_notional: float = Field(default=0.0, ge=0)

    def to_symbol_filter(self) -> SymbolFilter:
        return SymbolFilter(
            symbol=self.symbol.upper(),
            min_quantity=self.min_quantity,
            max_quantity=self.max_quantity if self.max_quantity is not None else math.inf,
            step_size=self.step_size,
            min_price=self.min_price,
            max_price=self.max_price if self.max_price is not None else math.inf,
            tick_size=self.tick_size,
            min_notional=self.min_notional,
        )


class ExchangeConfig(BaseModel):
    """Exchange metadata configuration."""

    name: str = Field(default="binance", description="Exchange name")
    exchange_info_file: Optional[str] = Field(default=None, description="Saved exchangeInfo response")
    symbols: List[SymbolFilterConfig] = Field(default_factory=list, description="Symbol filters")

    def create_exchange_info(self) -> StaticExchangeInfo:
        if self.exchange_info_file:
            info = StaticExchangeInfo.from_file(self.exchange_info_file)
        else:
            info = StaticExchangeInfo()
        for symbol in self.symbols:
            info.add(symbol.to_symbol_filter())
        return info


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file: Optional[str] = Field(default=None, description="Log file path")
    rotation: bool = Field(default=True, description="Enable log rotation")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']:
            raise ValueError('level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL')
        return v.upper()


class TradingBotConfig(BaseModel):
    """Main trading bot configuration."""

    mode: str = Field(default="dry-run", description="Trading mode: dry-run, backtest, live")
    confirm_live: bool = Field(default=False, description="Confirmation required for live mode")
    bot: BotConfig = Field(default_factory=BotConfig)
    strategy: StrategyConfig = Field(default_factory=StrategyConfig)
    exchange: ExchangeConfig = Field(default_factory=ExchangeConfig)
    backtesting: BacktestingConfig = Field(default_factory=BacktestingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode='after')
    def validate_config(self) -> 'TradingBotConfig':
        """Validate configuration consistency."""
        if self.mode not in ['dry-run', 'backtest', 'live']:
            raise ValueError('mode must be one of: dry-run, backtest, live')
        if self.mode == 'live' and not self.confirm_live:
            raise ValueError(
                'Live mode requires confirm_live=true. '
                'Set confirm_live: true in config.yaml to enable live trading.'
            )
        return self


def load_config(config_path: str) -> TradingBotConfig:
    """Load configuration from YAML file."""
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file, 'r') as f:
        config_data = yaml.safe_load(f) or {}

    return TradingBotConfig(**config_data)
