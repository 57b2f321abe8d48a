"""Parsers turning uploaded statements into candidate transactions."""
