"""Persistent graph store adapters."""
