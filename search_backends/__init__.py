"""Retailer price search backends sharing the PriceQuote contract."""
