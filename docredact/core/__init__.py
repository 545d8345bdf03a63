# docredact/core/__init__.py

"""Core domain models and utilities used across the redaction system.

This package provides entity definitions, domain types, exceptions, and the
rule-table loader shared by the rest of the application.
"""
