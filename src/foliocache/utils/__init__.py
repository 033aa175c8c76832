"""Shared helpers for foliocache."""
