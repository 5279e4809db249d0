"""Display formatting for money amounts."""

# Currency symbol mapping
CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
    "CHF": "Fr",
    "CNY": "¥",
    "INR": "₹",
    "MXN": "MX$",
    "DOP": "$",
}


def currency_symbol(currency: str) -> str:
    """Symbol for a currency code, or the code itself plus a space if unknown."""
    code = currency.strip().upper()
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} "
    return symbol


def format_currency(amount: float, currency: str) -> str:
    """Format an amount as currency string, e.g. '$1,234.56' or 'XYZ 0.00'."""
    return f"{currency_symbol(currency)}{amount:,.2f}"


def format_compact(amount: float, currency: str) -> str:
    """Format in compact form for tight spaces, e.g. '$1.50K', '€2.00M'."""
    if amount >= 1_000_000:
        number = f"{amount / 1_000_000:.2f}M"
    elif amount >= 1_000:
        number = f"{amount / 1_000:.2f}K"
    else:
        number = f"{amount:.2f}"
    return f"{currency_symbol(currency)}{number}"
