"""Consistency and propagation engine for business-partner relations."""
