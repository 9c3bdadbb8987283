"""Publish pipeline internals: reconciliation, stages and configuration."""
