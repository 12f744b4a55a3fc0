"""Command line interface for procwrap."""
