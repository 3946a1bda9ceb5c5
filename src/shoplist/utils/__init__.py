"""Utility helpers for ShopList."""
