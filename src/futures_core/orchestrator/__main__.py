"""Allow running the bot as: python -m futures_core.orchestrator [--config path]."""

import argparse

from futures_core.orchestrator.runner import main

parser = argparse.ArgumentParser(description="MEXC futures trading bot")
parser.add_argument("--config", default=None, help="Path to config.yaml")
parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
parser.add_argument("--max-symbols", type=int, default=None, help="Trade at most N scanned symbols")
args = parser.parse_args()
main(config_path=args.config, once=args.once, max_symbols=args.max_symbols)
