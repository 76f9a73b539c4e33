"""Task-specific model evaluation."""
