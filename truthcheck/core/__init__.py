"""Settings, logging, metrics and shared data models."""
