"""Non-custodial TON wallet engine: keys, balances, transfers, swaps and confirmation."""

__version__ = "0.1.0"
