"""arzlive — live currency, gold and crypto prices for the Iranian market."""

__version__ = "0.1.0"
