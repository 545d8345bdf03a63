# docredact/engine/__init__.py

"""Engine package providing the entity scorer, worker, and async adapter.

This package contains the presidio/spaCy integration and the isolated
worker that runs named-entity recognition outside the caller's thread.
"""
