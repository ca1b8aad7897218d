"""Chain clients and transaction watching."""
