"""Shared schema package for the tenancy admin API."""
