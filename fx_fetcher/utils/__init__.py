"""Shared helpers for :mod:`fx_fetcher`."""
