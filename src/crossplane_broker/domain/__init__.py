"""Domain layer: labels, models, exceptions and ports."""
