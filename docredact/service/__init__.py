# docredact/service/__init__.py

"""Service layer: configuration, the detection pipeline and live sessions."""
