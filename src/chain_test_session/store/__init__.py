"""Session store backends."""
