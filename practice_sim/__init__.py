"""36-month financial simulation engine for a multi-doctor medical practice."""
