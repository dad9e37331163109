"""Web screens for the delivery app."""
