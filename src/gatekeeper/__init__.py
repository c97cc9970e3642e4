"""
Catalog gatekeeper service.

This package exposes products, click events and wisdom notes over HTTP while
persisting each collection as a whole JSON document in a version-controlled
remote store (GitHub repository contents).
"""
