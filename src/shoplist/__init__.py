"""ShopList - shopping list persistence and format engine."""

__version__ = "0.1.0"
