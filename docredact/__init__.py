# docredact/__init__.py

"""Context-aware PII detection and redaction for resumes and documents."""

__version__ = "0.1.0"
