"""Shared utilities: decimals, timestamps, logging, sanitization."""
