"""Analysis engines: structure, liquidity, momentum, confluence, scoring, signals, backtest."""
