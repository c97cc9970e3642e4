"""Clients for external generative models."""
