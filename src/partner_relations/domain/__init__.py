"""Domain layer: model, validation, services and ports."""
