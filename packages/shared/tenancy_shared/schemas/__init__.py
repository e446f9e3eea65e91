"""Schemas shared between the admin server and its clients."""
