"""Main entrypoint for the trading bot."""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from tradebot.backtest.data_loader import (
    end_of_day_ms,
    filter_candles_by_date,
    load_candles_csv,
    save_result_json,
)
from tradebot.backtest.engine import run_backtest
from tradebot.connectors.mock import MockConnector, PaperOrderGateway
from tradebot.core.config import TradingBotConfig, load_config
from tradebot.core.engine import TradingEngine
from tradebot.core.exceptions import ConfigurationError, TradingBotError
from tradebot.core.logger import setup_logger, get_logger
from tradebot.core.models import SymbolFilter
from tradebot.exchange.order_validator import OrderValidator, validate_order
from tradebot.strategies.factory import StrategyName, build_strategy


def parse_strategy_params(pairs: Optional[List[str]]) -> Dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; values are read as YAML scalars."""
    params = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ConfigurationError(f"strategy parameter must be KEY=VALUE, got {pair!r}")
        params[key.strip()] = yaml.safe_load(value)
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crypto trading decision and simulation engine")
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (defaults built in when omitted)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Log level (overrides config)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    backtest = subparsers.add_parser('backtest', help='Replay historical candles through a strategy')
    backtest.add_argument('--strategy', choices=[s.value for s in StrategyName], help='Strategy name')
    backtest.add_argument('--param', action='append', metavar='KEY=VALUE', help='Strategy parameter')
    backtest.add_argument('--symbol', type=str, help='Trading symbol')
    backtest.add_argument('--data', type=str, help='CSV file with historical candles')
    backtest.add_argument('--start', type=str, metavar='YYYY-MM-DD', help='First day of the backtest (overrides config)')
    backtest.add_argument('--end', type=str, metavar='YYYY-MM-DD', help='Last day of the backtest (overrides config)')
    backtest.add_argument('--candles', type=int, help='Number of generated candles without --data')
    backtest.add_argument('--interval', type=str, help='Interval of generated candles')
    backtest.add_argument('--seed', type=int, default=None, help='Seed for generated candles')
    backtest.add_argument('--capital', type=float, help='Initial capital')
    backtest.add_argument('--amount', type=float, help='Amount per trade, 0 for all capital')
    backtest.add_argument('--fees', type=float, help='Trading fees in percent')
    backtest.add_argument('--min-profit', type=float, help='Minimum profit in percent before selling')
    backtest.add_argument('--output', type=str, help='Write the result as JSON')

    validate = subparsers.add_parser('validate', help='Check an order against exchange rules')
    validate.add_argument('--symbol', type=str, required=True)
    validate.add_argument('--quantity', type=float, required=True)
    validate.add_argument('--price', type=float, required=True)
    validate.add_argument('--min-qty', type=float, help='Minimum quantity (ad-hoc filter)')
    validate.add_argument('--max-qty', type=float, help='Maximum quantity (ad-hoc filter)')
    validate.add_argument('--step-size', type=float, help='Quantity step (ad-hoc filter)')
    validate.add_argument('--tick-size', type=float, help='Price tick (ad-hoc filter)')
    validate.add_argument('--min-notional', type=float, help='Minimum notional (ad-hoc filter)')

    dry_run = subparsers.add_parser('dry-run', help='Run the polling loop on generated data with paper orders')
    dry_run.add_argument('--cycles', type=int, default=10, help='Number of cycles to run')
    dry_run.add_argument('--seed', type=int, default=None, help='Seed for generated candles')

    return parser


def cmd_backtest(args: argparse.Namespace, config: TradingBotConfig) -> int:
    logger = get_logger()
    settings = config.backtesting
    strategy_name = args.strategy or config.strategy.name
    params = dict(config.strategy.parameters) if not args.strategy else {}
    params.update(parse_strategy_params(args.param))
    strategy = build_strategy(strategy_name, params)
    symbol = (args.symbol or config.bot.symbol).upper()

    start_date = args.start or settings.start_date
    end_date = args.end or settings.end_date

    data_file = args.data or settings.data_file
    if data_file:
        candles = load_candles_csv(data_file)
    else:
        count = args.candles or settings.candles
        interval = args.interval or settings.interval
        logger.info(f"No data file given, generating {count} {interval} candles for {symbol}")
        candles = MockConnector(seed=args.seed).generate(
            symbol, count, interval, end_time_ms=end_of_day_ms(end_date) if end_date else None
        )

    if start_date or end_date:
        candles = filter_candles_by_date(candles, start_date, end_date)
        if not candles:
            raise ConfigurationError(
                f"no candles between {start_date or 'start'} and {end_date or 'end'}"
            )

    result = run_backtest(
        strategy,
        candles,
        initial_capital=args.capital if args.capital is not None else settings.initial_capital,
        trading_fees=args.fees if args.fees is not None else settings.trading_fees,
        minimum_profit_threshold=(
            args.min_profit if args.min_profit is not None else settings.minimum_profit_threshold
        ),
        trade_amount=args.amount if args.amount is not None else settings.trade_amount,
        symbol=symbol,
        record_decisions=settings.record_decisions,
    )

    print("\n".join(result.summary()))
    output = args.output or settings.output_file
    if output:
        save_result_json(result, output)
    return 0


def cmd_validate(args: argparse.Namespace, config: TradingBotConfig) -> int:
    adhoc = [args.min_qty, args.max_qty, args.step_size, args.tick_size, args.min_notional]
    if any(value is not None for value in adhoc):
        symbol_filter = SymbolFilter(
            symbol=args.symbol.upper(),
            min_quantity=args.min_qty or 0.0,
            max_quantity=args.max_qty if args.max_qty is not None else float('inf'),
            step_size=args.step_size,
            tick_size=args.tick_size,
            min_notional=args.min_notional or 0.0,
        )
        result = validate_order(symbol_filter, args.quantity, args.price)
    else:
        validator = OrderValidator(config.exchange.create_exchange_info())
        result = validator.validate(args.symbol, args.quantity, args.price)

    print(f"valid:     {result.is_valid}")
    print(f"quantity:  {result.original_quantity} -> {result.formatted_quantity}")
    for warning in result.warnings:
        print(f"warning:   {warning}")
    for error in result.validation_errors:
        print(f"error:     {error}")
    return 0 if result.is_valid else 2


def cmd_dry_run(args: argparse.Namespace, config: TradingBotConfig) -> int:
    logger = get_logger()
    bot = config.bot.create_bot(config.strategy)
    strategy = build_strategy(config.strategy.name, config.strategy.parameters)

    exchange_info = config.exchange.create_exchange_info()
    if exchange_info.get_symbol_filter(bot.symbol) is None:
        logger.warning(f"No exchange rules configured for {bot.symbol}, orders are unrestricted")
        exchange_info.add(SymbolFilter(symbol=bot.symbol))

    engine = TradingEngine(
        bot=bot,
        strategy=strategy,
        market_data=MockConnector(seed=args.seed),
        validator=OrderValidator(exchange_info),
        order_gateway=PaperOrderGateway(fee_rate=bot.trading_fees),
        interval=config.bot.interval,
        sleep=lambda seconds: None,
    )
    bot.start()
    try:
        engine.run(max_cycles=args.cycles)
    finally:
        bot.stop()

    decisions = [log.decision.value for log in engine.decision_logs]
    print(f"{len(decisions)} cycles: " + ", ".join(decisions))
    print(f"final state: {bot}")
    return 0


COMMANDS = {
    'backtest': cmd_backtest,
    'validate': cmd_validate,
    'dry-run': cmd_dry_run,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main function."""
    args = build_parser().parse_args(argv)

    try:
        # Load configuration
        config = load_config(args.config) if args.config else TradingBotConfig()

        # Override log level if specified
        if args.log_level:
            config.logging.level = args.log_level

        setup_logger(
            level=config.logging.level,
            log_format=config.logging.format,
            log_file=config.logging.file,
            rotation=config.logging.rotation
        )

        logger = get_logger()
        logger.info(f"Configuration loaded from {Path(args.config) if args.config else 'defaults'}")
        return COMMANDS[args.command](args, config)

    except FileNotFoundError as e:
        print(f"Error: {e}")
        return 1
    except ValidationError as e:
        print(f"Configuration error: {e}")
        return 1
    except (TradingBotError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
