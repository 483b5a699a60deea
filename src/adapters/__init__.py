"""Adapters connecting the core to files, formatting, and delivery channels."""
