"""Upstream clients and the transforms applied to their payloads."""
