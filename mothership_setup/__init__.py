"""Mothership automated setup: two-host DigitalOcean bring-up driven by docker-machine."""

__version__ = "0.1.0"
