"""Utility functions for the inventory kernel."""
