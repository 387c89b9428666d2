"""Security module: staff audit trail."""
