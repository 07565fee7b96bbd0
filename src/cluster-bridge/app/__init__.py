"""Cluster Bridge service."""
