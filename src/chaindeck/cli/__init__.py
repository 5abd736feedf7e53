"""Command-line interface for chaindeck."""
