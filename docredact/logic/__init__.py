# docredact/logic/__init__.py

"""Detection logic: pattern matching, merging, filtering and context rules.

Everything here is a pure function over text and entities.
"""
