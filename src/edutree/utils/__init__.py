"""Shared utilities for edutree."""
