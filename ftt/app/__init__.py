"""Command line interface for ftt."""
