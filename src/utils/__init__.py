"""Small shared helpers (money rounding, dates, display formatting)."""
