"""Keeps provisioned dashboards in sync with JSON definition files on disk."""

__version__ = "0.1.0"
