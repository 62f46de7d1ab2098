"""AgriMarket: produce marketplace backend with vendor/farmer price negotiation."""

__version__ = "1.0.0"
