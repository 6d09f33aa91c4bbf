"""Storefront services: money, currency tables, exchange rates, catalog."""
