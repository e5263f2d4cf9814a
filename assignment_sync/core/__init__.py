"""Settings, error taxonomy and credential checks."""
