"""Identity provider integration."""
