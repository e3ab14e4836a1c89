"""CLI module for portalbus."""
