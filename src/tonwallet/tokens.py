"""Jetton registry: master contracts and decimals of the tokens the wallet tracks."""

from tonwallet.types import Asset

ZERO_ADDRESS = "EQAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAM9c"
STONFI_ROUTER = "EQB3ncyBUTjZUA5EnFKR5_EnOMI9V1tTEAAPaiU71gc4TiUt"

# Jetton masters on mainnet
JETTONS: dict[str, Asset] = {
    "USDT": Asset.jetton("USDT", "EQCxE6mUtQJKFnGfaROTKOt1lZbDiiX1kCixRv7Nw2Id_sDs", 6),
    "USDC": Asset.jetton("USDC", "EQC61IQRl0_la95t27xhIpjxZt32vl1QQVF2UgTNuvD18W-4", 6),
    "NOT": Asset.jetton("NOT", "EQAvlWFDxGF2lXm67y4yzC17wYKD9A0guwPkMs1gOsM__NOT", 9),
    "STON": Asset.jetton("STON", "EQA2kCVNwVsil2EM2mB0SkXytxCqQjS4mttjDpnXmwG9T6bO", 9),
}


def get_jetton(symbol: str) -> Asset:
    """Look up a registered jetton by symbol.

    Raises:
        ValueError: If the symbol is not registered.
    """
    asset = JETTONS.get(symbol.upper())
    if asset is None:
        raise ValueError(
            f"Unknown jetton {symbol!r}. Supported: {', '.join(sorted(JETTONS))}"
        )
    return asset


def tracked_jettons(symbols: list[str]) -> list[Asset]:
    """Resolve configured symbols to assets, in configuration order."""
    return [get_jetton(symbol) for symbol in symbols]
