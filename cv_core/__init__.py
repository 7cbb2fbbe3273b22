"""Core services for localized content versioning and resolution."""
